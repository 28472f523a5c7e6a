"""
Per-user marketplace credentials stored in ``user_settings``.

The password column holds the AES-GCM token produced by PasswordCipher and
is decrypted only when the credentials are requested.
"""

from __future__ import annotations

from typing import Optional

from supabase import AsyncClient

from easyvinted.domain.entities.credentials import VintedCredentials
from easyvinted.domain.interfaces.repository_interface import CredentialStoreInterface
from easyvinted.infrastructure.security.password_cipher import PasswordCipher
from easyvinted.utils.logger import get_logger

from .supabase_client import SupabaseRepository

logger = get_logger(__name__)


class SupabaseCredentialStore(SupabaseRepository, CredentialStoreInterface):
    """Credentials over the ``user_settings`` table."""

    def __init__(
        self,
        client: AsyncClient,
        cipher: PasswordCipher,
        table: str = "user_settings",
    ):
        super().__init__(client, table)
        self.cipher = cipher

    async def get_credentials(self, user_id: str) -> Optional[VintedCredentials]:
        """
        Fetch and decrypt a user's marketplace credentials.

        Raises:
            DecryptionError: If the stored password cannot be decrypted.
        """
        rows = await self._execute(
            self.table()
            .select("vinted_email, vinted_password_encrypted")
            .eq("user_id", user_id)
            .limit(1),
            f"fetch credentials of user {user_id}",
        )
        if not rows:
            logger.info(f"No settings row for user {user_id}")
            return None

        row = rows[0]
        email = row.get("vinted_email")
        encrypted = row.get("vinted_password_encrypted")
        if not email or not encrypted:
            logger.info(f"User {user_id} has not configured Vinted credentials")
            return None

        return VintedCredentials(email=email, password=self.cipher.decrypt(encrypted))
