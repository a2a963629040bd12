"""Data types shared by the provider client, user store and backend."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class User:
    """Local user record. `access_token` is a secret and is kept out of repr."""

    id: str
    email: str
    name: Optional[str]
    access_token: str = field(repr=False)

    def public_dict(self) -> dict:
        """Fields that are safe to return to a client."""
        return {"id": self.id, "email": self.email, "name": self.name}


@dataclass(frozen=True)
class Profile:
    email: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Credentials:
    """Callback credentials: the code plus the echoed and remembered CSRF states."""

    code: str
    client_state: Optional[str]
    server_state: Optional[str]
