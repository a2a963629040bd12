"""
FastAPI app: Google OAuth2 login bound to a local user table and a cookie session.

Decisions:
- .env is loaded before settings are read so OAUTH_*, DATABASE_URL and
  SESSION_SECRET are available. A missing required value raises ConfigError
  here, at import time, so the server never starts half-configured.
- Run with: uvicorn main:app
"""

from dotenv import load_dotenv
from fastapi import Depends

from oauth_login import User, configure_logging, create_app, load_settings, require_login

load_dotenv()

settings = load_settings()
configure_logging(settings.log_level)

app = create_app(settings)


@app.get("/")
async def home(user: User = Depends(require_login())):
    return {"logged_in": True, "user": user.public_dict()}
