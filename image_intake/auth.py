"""API key authentication (keys configured in the environment)."""

import secrets
from dataclasses import dataclass

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from image_intake.config import get_settings
from image_intake.observability import get_logger

logger = get_logger("auth")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass
class AuthInfo:
    """Authentication information returned after successful validation."""

    api_key: str
    client_name: str | None = None
    api_key_prefix: str | None = None  # First 8 chars for audit logging

    @classmethod
    def from_key(cls, api_key: str, client_name: str | None = None) -> "AuthInfo":
        """Create AuthInfo from API key, extracting prefix for logging."""
        prefix = api_key[:8] if len(api_key) >= 8 else api_key
        return cls(
            api_key=api_key,
            client_name=client_name,
            api_key_prefix=f"{prefix}_",
        )


def _matches_any(api_key: str, keys: list[str]) -> bool:
    return any(secrets.compare_digest(api_key, key) for key in keys)


async def require_api_key(api_key: str | None = Security(api_key_header)) -> AuthInfo:
    """Validate the API key from the X-API-Key header.

    With no keys configured the service runs open (dev mode).
    Raises 401 if the key is missing or unknown.
    """
    settings = get_settings()
    keys = settings.api_keys_list

    if not keys:
        logger.debug("auth_dev_mode", reason="no_keys_configured")
        return AuthInfo.from_key("no-auth", client_name="dev-mode")

    if not api_key:
        logger.warning("auth_missing_key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Include 'X-API-Key' header.",
        )

    if _matches_any(api_key, keys):
        logger.debug("auth_master_key", client="master-key")
        return AuthInfo.from_key(api_key, client_name="master-key")

    logger.warning(
        "auth_invalid_key",
        key_prefix=api_key[:8] if len(api_key) >= 8 else api_key,
        key_length=len(api_key),
    )
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid API key.",
    )
