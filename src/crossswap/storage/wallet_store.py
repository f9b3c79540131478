"""Persistent wallet store: encryption at rest.

Session-form wallets (`WalletRecord`, plaintext secrets) are only ever
written to the database as password-encrypted envelopes. The password is
supplied per call and never stored.

PBKDF2 key derivation is CPU heavy, so encryption runs in a worker thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from crossswap.chains import ChainFamily
from crossswap.crypto import DecryptionError, EncryptionService
from crossswap.errors import AuthenticationError, NotFoundError, PersistenceError
from crossswap.storage.database import get_db
from crossswap.storage.models import StoredWallet
from crossswap.storage.repository import AccountRepository
from crossswap.wallets.base import WalletRecord

logger = logging.getLogger(__name__)


@dataclass
class WalletSummary:
    """Non-secret view of a stored wallet."""

    id: int
    address: str
    chain_family: ChainFamily
    public_key: Optional[str]
    has_private_key: bool
    has_mnemonic: bool
    contract_deployed: Optional[bool]


async def _encrypt(secret: Optional[str], password: str) -> Optional[str]:
    if not secret:
        return None
    return await asyncio.to_thread(EncryptionService.encrypt, secret, password)


async def _decrypt(envelope: Optional[str], password: str) -> Optional[str]:
    if not envelope:
        return None
    try:
        return await asyncio.to_thread(EncryptionService.decrypt, envelope, password)
    except DecryptionError as e:
        raise AuthenticationError("Wrong password: wallet could not be decrypted.") from e


def _summary(row: StoredWallet) -> WalletSummary:
    return WalletSummary(
        id=row.id,
        address=row.address,
        chain_family=ChainFamily(row.chain_family),
        public_key=row.public_key,
        has_private_key=bool(row.encrypted_key),
        has_mnemonic=bool(row.encrypted_mnemonic),
        contract_deployed=row.contract_deployed,
    )


class PersistentWalletStore:
    """Encrypts, persists and decrypts wallets per user."""

    async def save(self, user_id: int, record: WalletRecord, password: str) -> int:
        """Encrypt and persist a wallet.

        Saving an address the user already has replaces its envelopes.

        Returns:
            The wallet id
        """
        encrypted_key = await _encrypt(record.private_key, password)
        encrypted_mnemonic = await _encrypt(record.mnemonic, password)
        if encrypted_key is None:
            raise PersistenceError("Refusing to store a wallet without a private key.")

        async with get_db() as session:
            repo = AccountRepository(session)
            row = await repo.get_wallet_by_address(user_id, record.address)
            if row is None:
                row = await repo.add_wallet(
                    StoredWallet(
                        user_id=user_id,
                        address=record.address,
                        chain_family=record.chain_family.value,
                        public_key=record.public_key,
                        encrypted_key=encrypted_key,
                        encrypted_mnemonic=encrypted_mnemonic,
                        contract_deployed=record.contract_deployed,
                    )
                )
            else:
                row.encrypted_key = encrypted_key
                row.encrypted_mnemonic = encrypted_mnemonic
                row.public_key = record.public_key
                row.contract_deployed = record.contract_deployed
                await session.flush()
            wallet_id = row.id

        record.wallet_id = wallet_id
        logger.info(f"Stored {record.chain_family.value} wallet {wallet_id} for user {user_id}")
        return wallet_id

    async def load(self, user_id: int, wallet_id: int, password: str) -> WalletRecord:
        """Decrypt one wallet.

        Raises:
            NotFoundError: Unknown wallet for this user
            AuthenticationError: Wrong password
        """
        async with get_db() as session:
            row = await AccountRepository(session).get_wallet(user_id, wallet_id)
        if row is None:
            raise NotFoundError("Wallet not found.")
        return await self._decrypt_row(row, password)

    async def load_all(self, user_id: int, password: str) -> list[WalletRecord]:
        """Decrypt every wallet of a user."""
        async with get_db() as session:
            rows = await AccountRepository(session).list_wallets(user_id)
        return [await self._decrypt_row(row, password) for row in rows]

    async def list(self, user_id: int) -> list[WalletSummary]:
        """List wallets without decrypting anything."""
        async with get_db() as session:
            rows = await AccountRepository(session).list_wallets(user_id)
        return [_summary(row) for row in rows]

    async def reencrypt(
        self,
        user_id: int,
        old_password: str,
        new_password: str,
        new_password_hash: Optional[str] = None,
    ) -> int:
        """Rotate every wallet of a user from one password to another.

        All wallets are decrypted and re-encrypted before anything is
        written; the new envelopes are then committed in one transaction,
        together with the new password hash when one is given. A wrong old
        password therefore leaves every wallet untouched.

        Returns:
            Number of wallets rotated
        """
        async with get_db() as session:
            repo = AccountRepository(session)
            rows = await repo.list_wallets(user_id)

            staged: list[tuple[StoredWallet, str, Optional[str]]] = []
            for row in rows:
                private_key = await _decrypt(row.encrypted_key, old_password)
                mnemonic = await _decrypt(row.encrypted_mnemonic, old_password)
                staged.append(
                    (row, await _encrypt(private_key, new_password), await _encrypt(mnemonic, new_password))
                )

            for row, encrypted_key, encrypted_mnemonic in staged:
                row.encrypted_key = encrypted_key
                row.encrypted_mnemonic = encrypted_mnemonic

            if new_password_hash is not None:
                user = await repo.get_user(user_id)
                if user is None:
                    raise NotFoundError("User not found.")
                await repo.update_password_hash(user, new_password_hash)
            await session.flush()

        logger.info(f"Re-encrypted {len(staged)} wallet(s) for user {user_id}")
        return len(staged)

    async def _decrypt_row(self, row: StoredWallet, password: str) -> WalletRecord:
        return WalletRecord(
            address=row.address,
            chain_family=ChainFamily(row.chain_family),
            private_key=await _decrypt(row.encrypted_key, password),
            public_key=row.public_key,
            mnemonic=await _decrypt(row.encrypted_mnemonic, password),
            contract_deployed=row.contract_deployed,
            wallet_id=row.id,
        )
