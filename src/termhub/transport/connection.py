"""Remote shell connection establishment over paramiko."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone

import paramiko

from ..utils.logging import (
    AuthError,
    ConfigError,
    LogContext,
    NetworkError,
    get_logger,
)
from .keys import parse_private_key
from .profile import (
    AuthMethod,
    RemoteProfile,
    validate_credentials,
    validate_profile,
)

logger = get_logger(__name__, LogContext.TRANSPORT)

DEFAULT_CONNECT_TIMEOUT = 10.0


@dataclass
class ConnectionHandle:
    """An established, authenticated SSH connection."""

    profile_id: str
    client: paramiko.SSHClient
    connected_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    closed: bool = False

    def close(self) -> None:
        """Close the underlying client. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self.client.close()
        logger.debug("Connection closed", profile_id=self.profile_id)


def _connect(profile: RemoteProfile, timeout: float) -> ConnectionHandle:
    connect_kwargs = {
        "hostname": profile.host,
        "port": profile.port,
        "username": profile.username,
        "timeout": timeout,
        "allow_agent": False,
        "look_for_keys": False,
    }
    if profile.auth_method is AuthMethod.KEY:
        connect_kwargs["pkey"] = parse_private_key(
            profile.private_key or "", profile.passphrase
        )
    else:
        connect_kwargs["password"] = profile.password

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    try:
        client.connect(**connect_kwargs)
    except paramiko.AuthenticationException as e:
        client.close()
        raise AuthError(
            f"Authentication failed for {profile.username}@{profile.host}",
            context={"profile_id": profile.id},
        ) from e
    except (OSError, paramiko.SSHException) as e:
        client.close()
        raise NetworkError(
            f"Unable to connect to {profile.host}:{profile.port}: {e}",
            context={"profile_id": profile.id},
        ) from e

    return ConnectionHandle(profile_id=profile.id, client=client)


async def establish_connection(
    profile: RemoteProfile | None, timeout: float = DEFAULT_CONNECT_TIMEOUT
) -> ConnectionHandle:
    """Validate a profile and open an SSH connection for it.

    The blocking paramiko handshake runs in a worker thread.

    Raises:
        ConfigError: If the profile is missing or malformed
        AuthError: If credentials are missing, unparseable or rejected
        NetworkError: If the socket connection fails
    """
    if profile is None:
        raise ConfigError("A remote profile is required")

    credential_error = validate_credentials(profile)
    if credential_error:
        logger.warning(
            "Profile credentials rejected", profile_id=profile.id, error=credential_error
        )
        raise AuthError(credential_error, context={"profile_id": profile.id})

    error = validate_profile(profile)
    if error:
        logger.warning("Profile validation failed", profile_id=profile.id, error=error)
        raise ConfigError(error, context={"profile_id": profile.id})

    logger.info(
        "Establishing connection",
        profile_id=profile.id,
        host=profile.host,
        port=profile.port,
    )

    handle = await asyncio.to_thread(_connect, profile, timeout)

    logger.info("Connection established", profile_id=profile.id)
    return handle
