"""
Credential encryption — encrypt / decrypt workspace OAuth clients at rest.

Blobs are ``base64(tag || iv || ciphertext)`` where the ciphertext is
AES-256-CBC (PKCS#7) and the tag is HMAC-SHA3-512 over ``iv || ciphertext``.
The 16-byte passphrase is NUL-padded to the 32-byte AES-256 key length,
which keeps blobs compatible with OpenSSL-produced ones.

Both keys are generated on first use and persisted through the
``SettingsContext`` before they are ever used.  Decryption is fail-closed:
a blob that does not authenticate decrypts to ``""``.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from sso.models import GlobalSettings
from sso.registry import SettingsContext

logger = logging.getLogger(__name__)

PASSPHRASE_LENGTH = 16  # AES block / IV length
HASH_KEY_LENGTH = 64
TAG_LENGTH = 64  # SHA3-512 digest size
_AES_KEY_LENGTH = 32


class VaultKeyError(RuntimeError):
    """Raised when freshly generated vault keys could not be persisted."""


class CryptoVault:
    """Encrypts credential strings under lazily generated, persisted keys."""

    def __init__(self, context: SettingsContext) -> None:
        self._context = context

    # ── Keys ────────────────────────────────────────────────────────────

    async def get_passphrase(self) -> bytes:
        return await self._key("passphrase", PASSPHRASE_LENGTH)

    async def get_hmac_key(self) -> bytes:
        return await self._key("hash_key", HASH_KEY_LENGTH)

    async def _key(self, field: str, length: int) -> bytes:
        settings = await self._context.get()
        if not getattr(settings, field):

            def generate(current: GlobalSettings):
                if getattr(current, field):
                    return None  # generated concurrently
                setattr(current, field, base64.b64encode(os.urandom(length)).decode())
                return current

            if not await self._context.update(generate):
                raise VaultKeyError(f"could not persist generated {field}")
            logger.info("Generated new vault %s (%d bytes)", field, length)
            settings = await self._context.get()
        return base64.b64decode(getattr(settings, field))

    # ── Cipher ──────────────────────────────────────────────────────────

    async def encrypt(self, plaintext: str) -> str:
        key = (await self.get_passphrase()).ljust(_AES_KEY_LENGTH, b"\0")
        hash_key = await self.get_hmac_key()

        iv = os.urandom(PASSPHRASE_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        message = encryptor.update(padded) + encryptor.finalize()

        mac = hmac.HMAC(hash_key, hashes.SHA3_512())
        mac.update(iv + message)
        return base64.b64encode(mac.finalize() + iv + message).decode("ascii")

    async def decrypt(self, blob: str) -> str:
        """Return the plaintext, or ``""`` if ``blob`` fails to authenticate."""
        try:
            raw = base64.b64decode(blob or "", validate=True)
        except (binascii.Error, ValueError):
            logger.warning("Rejected credential blob: not valid base64")
            return ""
        if len(raw) < TAG_LENGTH + 2 * PASSPHRASE_LENGTH:
            logger.warning("Rejected credential blob: truncated")
            return ""

        tag, content = raw[:TAG_LENGTH], raw[TAG_LENGTH:]
        try:
            hash_key = await self.get_hmac_key()
            key = (await self.get_passphrase()).ljust(_AES_KEY_LENGTH, b"\0")
        except VaultKeyError as exc:
            logger.error("Vault keys unavailable: %s", exc)
            return ""

        mac = hmac.HMAC(hash_key, hashes.SHA3_512())
        mac.update(content)
        try:
            mac.verify(tag)
        except InvalidSignature:
            logger.warning("Rejected credential blob: integrity check failed")
            return ""

        iv, message = content[:PASSPHRASE_LENGTH], content[PASSPHRASE_LENGTH:]
        try:
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(message) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
        except ValueError:
            logger.warning("Rejected credential blob: malformed ciphertext")
            return ""
