"""Bitcoin wallet adapter (native SegWit, P2WPKH).

Address format: bech32 (tb1q... on testnet, bc1q... on mainnet)

A Bitcoin wallet created alongside an EVM wallet reuses the EVM private
key, so one mnemonic backs both. Funding a swap from Bitcoin is done by the
user's own wallet client; this adapter never builds transactions.
"""

from typing import Any

from bip_utils import P2WPKHAddrEncoder

from crossswap.chains import ChainFamily
from crossswap.errors import InvalidKeyFormat
from crossswap.wallets.base import ChainWalletAdapter, WalletClient, WalletRecord, normalize_hex_key
from crossswap.wallets.mnemonic import derive_account_key, generate_mnemonic, secp256k1_public_key


class BitcoinWalletClient(WalletClient):
    """Address holder for a Bitcoin wallet."""

    family = ChainFamily.BITCOIN

    def __init__(self, address: str, public_key: str):
        self._address = address
        self.public_key = public_key

    @property
    def address(self) -> str:
        return self._address

    @property
    def x_only_public_key(self) -> str:
        """Compressed key without its parity byte, as used by HTLC scripts."""
        return self.public_key[2:]


class BitcoinWalletAdapter(ChainWalletAdapter):
    """Bitcoin P2WPKH wallets."""

    family = ChainFamily.BITCOIN

    def __init__(self, testnet: bool = True):
        self.testnet = testnet

    @property
    def hrp(self) -> str:
        return "tb" if self.testnet else "bc"

    def create(self, **kwargs: Any) -> WalletRecord:
        return self.from_mnemonic(generate_mnemonic())

    def from_private_key(self, private_key: str, **kwargs: Any) -> WalletRecord:
        try:
            key = normalize_hex_key(private_key)
            public_key = secp256k1_public_key(key, compressed=True)
        except Exception as e:
            raise InvalidKeyFormat(
                "Invalid private key. Expected 64 hex characters (0x prefix optional)."
            ) from e

        address = P2WPKHAddrEncoder.EncodeKey(public_key, hrp=self.hrp)
        return WalletRecord(
            address=address,
            chain_family=self.family,
            private_key=key,
            public_key=public_key.hex(),
            client=BitcoinWalletClient(address, public_key.hex()),
        )

    def from_mnemonic(self, mnemonic: str) -> WalletRecord:
        record = self.from_private_key(derive_account_key(mnemonic))
        record.mnemonic = " ".join(mnemonic.lower().split())
        return record
