"""CRM login storage in the OS keychain.

``config.KeychainSettingsSource`` reads these values into ``settings`` and
``scripts.store_crm_credentials`` writes them. Only the historical sync
record source needs a CRM login; destination passcodes live on
``Connection`` rows instead.
"""

import logging

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "cet-sync"

# Ordered as the store script prompts for them
CREDENTIAL_KEYS: tuple[str, ...] = (
    "SF_USERNAME",
    "SF_PASSWORD",
    "SF_SECURITY_TOKEN",
    "SF_DOMAIN",
)


def _known(key: str, action: str) -> bool:
    if key in CREDENTIAL_KEYS:
        return True
    logger.warning("Refusing to %s %s: not a CRM credential", action, key)
    return False


def get_credential(key: str) -> str | None:
    """Stored value for ``key``; ``None`` when absent or the backend fails."""
    try:
        return keyring.get_password(KEYRING_SERVICE, key)
    except KeyringError:
        logger.debug("Keychain read of %s failed", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Save one CRM credential. Blank values and unknown keys are refused.

    Returns:
        ``True`` when the keychain accepted the value.
    """
    if not _known(key, "store"):
        return False
    if not (value or "").strip():
        logger.warning("Refusing to store a blank %s", key)
        return False
    try:
        keyring.set_password(KEYRING_SERVICE, key, value)
    except KeyringError:
        logger.warning("Keychain rejected %s", key, exc_info=True)
        return False
    logger.info("%s saved to keychain", key)
    return True


def delete_credential(key: str) -> bool:
    if not _known(key, "delete"):
        return False
    try:
        keyring.delete_password(KEYRING_SERVICE, key)
    except KeyringError:
        # Also raised when nothing was stored under the key
        logger.debug("Keychain delete of %s failed", key, exc_info=True)
        return False
    logger.info("%s removed from keychain", key)
    return True


def stored_keys() -> list[str]:
    """Credential names that currently have a value in the keychain."""
    return [key for key in CREDENTIAL_KEYS if get_credential(key)]
