"""
Logging setup.

Uses loguru's global logger. configure_logging() swaps the default sink for a
stderr sink at the configured level and installs a patcher that scrubs bearer
tokens and access_token values, so a stray exception message carrying a
provider response cannot leak a token into the logs.
"""

import re
import sys

from loguru import logger

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_TOKEN_FIELD_RE = re.compile(r"""((?:access|refresh)_token["']?\s*[:=]\s*["']?)[^"'&\s,}]+""")

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def redact(message: str) -> str:
    """Replace token material in a log message with a placeholder."""
    message = _BEARER_RE.sub(r"\1[REDACTED]", message)
    return _TOKEN_FIELD_RE.sub(r"\1[REDACTED]", message)


def _redact_record(record) -> None:
    record["message"] = redact(record["message"])


def configure_logging(level: str = "DEBUG") -> None:
    logger.configure(
        handlers=[{"sink": sys.stderr, "level": level, "format": LOG_FORMAT}],
        patcher=_redact_record,
    )
    logger.debug(f"Logging configured at {level}")
