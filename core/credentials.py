"""
Credential Cipher - AES-256-GCM for OAuth tokens stored at rest.

The stored form is hex(iv || tag || ciphertext) with a 16-byte IV and a
16-byte tag. The key is a 32-byte string shared with the auth service,
which writes the encrypted tokens.
"""
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.exceptions import ConfigError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16


class CredentialCipher:

    def __init__(self, key: str):
        key_bytes = key.encode('utf-8')
        if len(key_bytes) != KEY_LENGTH:
            raise ConfigError(f"Encryption key must be {KEY_LENGTH} bytes, got {len(key_bytes)}")
        self._aesgcm = AESGCM(key_bytes)

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aesgcm.encrypt(iv, plaintext.encode('utf-8'), None)
        # cryptography appends the tag; the stored layout puts it before the ciphertext
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return (iv + tag + ciphertext).hex()

    def decrypt(self, token_hex: str) -> str:
        """
        Raises:
            InvalidTag: Wrong key or tampered data
            ValueError: Not hex, truncated, or not UTF-8
        """
        data = bytes.fromhex(token_hex)
        if len(data) < IV_LENGTH + TAG_LENGTH:
            raise ValueError("Encrypted credential is truncated")

        iv = data[:IV_LENGTH]
        tag = data[IV_LENGTH:IV_LENGTH + TAG_LENGTH]
        ciphertext = data[IV_LENGTH + TAG_LENGTH:]
        return self._aesgcm.decrypt(iv, ciphertext + tag, None).decode('utf-8')


def reveal_credential(
    cipher: Optional[CredentialCipher],
    token_enc: Optional[str],
    owner: str
) -> Optional[str]:
    """
    Decrypt a stored credential for use in one provider call.

    Returns None when nothing is stored or it cannot be decrypted, which
    sends the provider down its unauthenticated path.
    """
    if not token_enc:
        return None
    if cipher is None:
        logger.warning(f"No encryption key configured, ignoring stored credential of {owner}")
        return None
    try:
        return cipher.decrypt(token_enc)
    except (InvalidTag, ValueError) as e:
        logger.warning(f"Could not decrypt stored credential of {owner}: {type(e).__name__}")
        return None
