"""Wallet adapter base interface.

Each chain family has an adapter that can create a fresh wallet or import
one from key material, and a client type that exposes only what the swap
flow needs (its address and, where the family signs relay requests, a
typed-data signer).

Security: `WalletRecord` is the session form. It holds plaintext secrets
and must never be persisted as-is; see `crossswap.storage.wallet_store`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from crossswap.chains import ChainFamily


class WalletClient(ABC):
    """Signing-capable client for one chain family."""

    family: ChainFamily

    @property
    @abstractmethod
    def address(self) -> str:
        """Chain-native address."""


@dataclass
class WalletRecord:
    """One wallet for one chain family, as held in a live session."""

    address: str
    chain_family: ChainFamily
    private_key: str
    public_key: Optional[str] = None
    mnemonic: Optional[str] = None
    contract_deployed: Optional[bool] = None
    client: Optional[WalletClient] = field(default=None, repr=False, compare=False)
    wallet_id: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"WalletRecord(address={self.address!r}, chain_family={self.chain_family.value!r}, "
            f"wallet_id={self.wallet_id!r})"
        )


class ChainWalletAdapter(ABC):
    """Abstract base class for per-family wallet adapters."""

    family: ChainFamily

    @abstractmethod
    def create(self, **kwargs: Any) -> WalletRecord:
        """Create a wallet from fresh randomness."""

    @abstractmethod
    def from_private_key(self, private_key: str, **kwargs: Any) -> WalletRecord:
        """Import a wallet from a private key.

        Raises:
            InvalidKeyFormat: If the key is malformed
        """

    @abstractmethod
    def from_mnemonic(self, mnemonic: str) -> WalletRecord:
        """Import a wallet from a BIP-39 phrase.

        Raises:
            InvalidMnemonicFormat: If the phrase is malformed
            UnsupportedOperation: If the family cannot derive from a phrase
        """

    def client_for(self, record: WalletRecord) -> WalletClient:
        """Rebuild the signing client of a record loaded from storage."""
        rebuilt = self.from_private_key(record.private_key, address=record.address)
        return rebuilt.client


def normalize_hex_key(private_key: str, length: int = 64, exact: bool = True) -> str:
    """Return a `0x`-prefixed, lowercase hex key of `length` digits.

    Shorter keys are left-padded with zeros unless `exact` is set.

    Raises:
        ValueError: If the key is not hex or is the wrong length
    """
    key = private_key.strip()
    if key.startswith(("0x", "0X")):
        key = key[2:]
    if not key or len(key) > length or (exact and len(key) != length):
        raise ValueError("wrong key length")
    int(key, 16)
    return "0x" + key.lower().rjust(length, "0")
