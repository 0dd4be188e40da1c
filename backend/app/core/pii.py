"""
Encryption helpers for personal contact fields stored at rest.
"""
import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from app.core.config import settings

logger = logging.getLogger(__name__)


def _cipher(key: Optional[str] = None) -> Fernet:
    return Fernet((key or settings.PII_ENCRYPTION_KEY).encode("utf-8"))


def encrypt_contact(value: Optional[str], key: Optional[str] = None) -> Optional[str]:
    """Encrypt a contact value (e-mail, phone) for storage."""
    if value is None:
        return None
    return _cipher(key).encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_contact(value: Optional[str], key: Optional[str] = None) -> Optional[str]:
    """
    Decrypt a stored contact value.

    Values that are not valid tokens (legacy plaintext rows) are returned
    unchanged.
    """
    if not value or not isinstance(value, str):
        return value
    try:
        return _cipher(key).decrypt(value.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        logger.warning("Contact value could not be decrypted; returning stored value")
        return value
