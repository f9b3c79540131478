"""EVM wallet adapter.

Derivation path: m/44'/60'/0'/0/0
Address format: 0x... (EIP-55 checksum)

Keys and signing come from eth-account; mnemonic handling from bip_utils so
the Bitcoin adapter can share the exact same derivation.
"""

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount

from crossswap.chains import ChainFamily
from crossswap.errors import InvalidKeyFormat
from crossswap.wallets.base import ChainWalletAdapter, WalletClient, WalletRecord, normalize_hex_key
from crossswap.wallets.mnemonic import derive_account_key, generate_mnemonic, secp256k1_public_key


class EvmWalletClient(WalletClient):
    """Signs EIP-712 payloads for the engine's EVM relay."""

    family = ChainFamily.EVM

    def __init__(self, account: LocalAccount):
        self._account = account

    @property
    def address(self) -> str:
        return self._account.address

    def sign_typed_data(self, full_message: dict) -> str:
        """Sign an EIP-712 message and return the 0x-prefixed signature."""
        signed = self._account.sign_typed_data(full_message=full_message)
        return "0x" + signed.signature.hex().removeprefix("0x")


class EvmWalletAdapter(ChainWalletAdapter):
    """Ethereum-style wallets (works for every EVM network)."""

    family = ChainFamily.EVM

    def create(self, **kwargs: Any) -> WalletRecord:
        """Create a wallet backed by a new 12-word mnemonic."""
        return self.from_mnemonic(generate_mnemonic())

    def from_private_key(self, private_key: str, **kwargs: Any) -> WalletRecord:
        try:
            key = normalize_hex_key(private_key)
            account = Account.from_key(key)
        except Exception as e:
            raise InvalidKeyFormat(
                "Invalid private key. Expected 64 hex characters (0x prefix optional)."
            ) from e

        return self._record(account, key)

    def from_mnemonic(self, mnemonic: str) -> WalletRecord:
        key = derive_account_key(mnemonic)
        record = self._record(Account.from_key(key), key)
        record.mnemonic = " ".join(mnemonic.lower().split())
        return record

    def _record(self, account: LocalAccount, key: str) -> WalletRecord:
        return WalletRecord(
            address=account.address,
            chain_family=self.family,
            private_key=key,
            public_key="0x" + secp256k1_public_key(key, compressed=False).hex(),
            client=EvmWalletClient(account),
        )
