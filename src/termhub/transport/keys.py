"""
Private key parsing for remote shell profiles.

Keys are tried against an ordered list of strategies: the key text with
the profile passphrase, the key text without a passphrase, and finally
the key text base64-decoded back to PEM. The first strategy that yields a
key wins; if none does, a single AuthError reports every failure.
"""

import base64
import binascii
import io
from collections.abc import Callable
from dataclasses import dataclass

import paramiko

from ..utils.logging import AuthError, LogContext, get_logger

logger = get_logger(__name__, LogContext.TRANSPORT)

KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)


@dataclass(frozen=True)
class KeyStrategy:
    """A named way of turning key text into a paramiko key."""

    name: str
    parse: Callable[[str, str | None], paramiko.PKey]


def _load_pem(text: str, passphrase: str | None) -> paramiko.PKey:
    errors = []
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(text), password=passphrase)
        except paramiko.PasswordRequiredException:
            raise
        except (paramiko.SSHException, ValueError) as e:
            errors.append(f"{key_class.__name__}: {e}")
    raise paramiko.SSHException("; ".join(errors))


def _with_passphrase(key: str, passphrase: str | None) -> paramiko.PKey:
    if not passphrase:
        raise paramiko.SSHException("no passphrase supplied")
    return _load_pem(key, passphrase)


def _without_passphrase(key: str, passphrase: str | None) -> paramiko.PKey:
    return _load_pem(key, None)


def _base64_decoded(key: str, passphrase: str | None) -> paramiko.PKey:
    try:
        decoded = base64.b64decode(key.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise paramiko.SSHException(f"not base64-encoded PEM: {e}") from e
    return _load_pem(decoded, passphrase or None)


DEFAULT_STRATEGIES: tuple[KeyStrategy, ...] = (
    KeyStrategy("with_passphrase", _with_passphrase),
    KeyStrategy("without_passphrase", _without_passphrase),
    KeyStrategy("base64", _base64_decoded),
)


def parse_private_key(
    key: str,
    passphrase: str | None = None,
    strategies: tuple[KeyStrategy, ...] = DEFAULT_STRATEGIES,
) -> paramiko.PKey:
    """Parse a private key, trying each strategy in order.

    Raises:
        AuthError: If no strategy could load the key
    """
    if not key or not key.strip():
        raise AuthError("Private key is empty")

    failures: dict[str, str] = {}
    for strategy in strategies:
        try:
            pkey = strategy.parse(key, passphrase)
        except (paramiko.SSHException, ValueError) as e:
            failures[strategy.name] = str(e)
            continue

        logger.debug(
            "Parsed private key",
            strategy=strategy.name,
            key_type=pkey.get_name(),
        )
        return pkey

    logger.warning("Private key could not be parsed", strategies=list(failures))
    raise AuthError("Unable to parse private key", context={"failures": failures})
