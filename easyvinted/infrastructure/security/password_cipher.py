"""
AES-GCM protection of stored marketplace passwords.

Stored format: base64( salt[16] | iv[12] | ciphertext+tag ), with the AES-256
key derived from the deployment's encryption key by PBKDF2-HMAC-SHA256
(100 000 iterations) and the per-password salt.

Example:
    >>> cipher = PasswordCipher("deployment-secret")
    >>> token = cipher.encrypt("hunter2")
    >>> cipher.decrypt(token)
    'hunter2'
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from easyvinted.utils.exceptions import DecryptionError

SALT_LENGTH = 16
IV_LENGTH = 12
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000


class PasswordCipher:
    """Encrypt and decrypt passwords with a key derived from a shared secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Encryption secret cannot be empty")
        self._secret = secret.encode("utf-8")

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        return kdf.derive(self._secret)

    def encrypt(self, password: str) -> str:
        """Encrypt a password into the stored base64 format."""
        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        ciphertext = AESGCM(self._derive_key(salt)).encrypt(iv, password.encode("utf-8"), None)
        return base64.b64encode(salt + iv + ciphertext).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a stored password.

        Raises:
            DecryptionError: If the token is malformed or the secret is wrong.
        """
        try:
            raw = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("Encrypted password is not valid base64") from e

        # 16-byte GCM tag at minimum after salt and IV
        if len(raw) < SALT_LENGTH + IV_LENGTH + 16:
            raise DecryptionError("Encrypted password is too short")

        salt = raw[:SALT_LENGTH]
        iv = raw[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
        ciphertext = raw[SALT_LENGTH + IV_LENGTH:]

        try:
            plaintext = AESGCM(self._derive_key(salt)).decrypt(iv, ciphertext, None)
        except InvalidTag as e:
            raise DecryptionError("Wrong encryption key or corrupted password") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Decrypted password is not valid UTF-8") from e
