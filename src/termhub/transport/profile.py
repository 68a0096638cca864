"""Remote connection profiles and their validation."""

import base64
import binascii
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuthMethod(str, Enum):
    """How a remote profile authenticates."""

    PASSWORD = "password"
    KEY = "key"


class RemoteProfile(BaseModel):
    """Connection details for a remote shell session."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    host: str
    port: int = 22
    username: str
    auth_method: AuthMethod = AuthMethod.PASSWORD
    password: str | None = Field(default=None, repr=False)
    private_key: str | None = Field(default=None, repr=False)
    passphrase: str | None = Field(default=None, repr=False)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize without credential material."""
        return self.model_dump(
            mode="json", exclude={"password", "private_key", "passphrase"}
        )


def validate_credentials(profile: RemoteProfile) -> str | None:
    """Check that a profile carries the credential its auth method needs."""
    if profile.auth_method is AuthMethod.PASSWORD:
        if not profile.password:
            return "Password is required for password authentication"
    else:
        if not profile.private_key:
            return "Private key is required for key authentication"
        if not looks_like_private_key(profile.private_key):
            return "Invalid private key format"
    return None


def _has_pem_markers(text: str) -> bool:
    return "BEGIN" in text and "PRIVATE KEY" in text


def looks_like_private_key(key: str) -> bool:
    """Whether key text is a PEM private key, or a base64-encoded one."""
    if _has_pem_markers(key):
        return True
    try:
        decoded = base64.b64decode(key.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False
    return _has_pem_markers(decoded)


def validate_profile(profile: RemoteProfile) -> str | None:
    """Check a profile before connecting.

    Returns:
        A human-readable error message, or None if the profile is usable
    """
    error = validate_credentials(profile)
    if error:
        return error

    if not profile.username:
        return "Username is required"

    if not profile.host:
        return "Host is required"

    if profile.port <= 0 or profile.port > 65535:
        return "Port must be between 1 and 65535"

    return None
