"""Remote connection boundary: profiles, key parsing and SSH connections."""

from .connection import ConnectionHandle, establish_connection
from .keys import KeyStrategy, parse_private_key
from .profile import AuthMethod, RemoteProfile, validate_credentials, validate_profile

__all__ = [
    "AuthMethod",
    "ConnectionHandle",
    "KeyStrategy",
    "RemoteProfile",
    "establish_connection",
    "parse_private_key",
    "validate_credentials",
    "validate_profile",
]
