"""Wallet custody service.

Turns per-family adapter output into one multi-chain bundle for a user.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from crossswap.chains import ChainFamily
from crossswap.config import get_settings
from crossswap.errors import UnsupportedOperation
from crossswap.wallets.base import ChainWalletAdapter, WalletRecord
from crossswap.wallets.btc import BitcoinWalletAdapter
from crossswap.wallets.evm import EvmWalletAdapter
from crossswap.wallets.mnemonic import derive_account_key, generate_mnemonic, validate_mnemonic
from crossswap.wallets.starknet import StarknetSdk, StarknetWalletAdapter

logger = logging.getLogger(__name__)

# Families that share one secp256k1 key derived from the mnemonic
SHARED_KEY_FAMILIES = (ChainFamily.EVM, ChainFamily.BITCOIN)


@dataclass
class WalletBundle:
    """Result of a create/import: one record per family."""

    wallets: list[WalletRecord] = field(default_factory=list)
    mnemonic: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    def for_family(self, family: ChainFamily) -> Optional[WalletRecord]:
        for wallet in self.wallets:
            if wallet.chain_family == family:
                return wallet
        return None


class WalletCustodyService:
    """Creates and imports wallets across chain families.

    Usage:
        custody = WalletCustodyService.default()
        bundle = await custody.create([ChainFamily.EVM, ChainFamily.BITCOIN])
    """

    def __init__(self, adapters: dict[ChainFamily, ChainWalletAdapter]):
        self.adapters = adapters

    @classmethod
    def default(cls) -> "WalletCustodyService":
        settings = get_settings()
        return cls(
            {
                ChainFamily.EVM: EvmWalletAdapter(),
                ChainFamily.BITCOIN: BitcoinWalletAdapter(testnet=not settings.is_production),
                ChainFamily.STARKNET: StarknetWalletAdapter(
                    class_hash=settings.starknet_account_class_hash,
                    sdk=StarknetSdk(settings.starknet_rpc_url),
                ),
            }
        )

    def adapter(self, family: ChainFamily) -> ChainWalletAdapter:
        try:
            return self.adapters[family]
        except KeyError:
            raise UnsupportedOperation(f"{family.label} wallets are not enabled.") from None

    async def create(self, chain_families: Iterable[ChainFamily]) -> WalletBundle:
        """Generate one fresh wallet per requested family.

        EVM and Bitcoin share a single mnemonic-derived key; Starknet gets
        its own entropy.
        """
        families = list(dict.fromkeys(chain_families))
        bundle = WalletBundle()

        if any(f in SHARED_KEY_FAMILIES for f in families):
            bundle.mnemonic = generate_mnemonic()

        for family in families:
            if family in SHARED_KEY_FAMILIES:
                bundle.wallets.append(self.adapter(family).from_mnemonic(bundle.mnemonic))
            else:
                bundle.wallets.append(self.adapter(family).create())

        logger.info(
            "Created wallets: %s",
            ", ".join(f"{w.chain_family.value}={w.address}" for w in bundle.wallets),
        )
        return bundle

    async def import_from_private_key(
        self,
        secret: str,
        chain_family: ChainFamily,
        extra: Optional[dict] = None,
    ) -> WalletBundle:
        """Import a wallet from a private key.

        An EVM or Bitcoin key also yields the sibling wallet of the other
        shared-key family, as on creation.

        Args:
            secret: Hex private key
            chain_family: Family the key belongs to
            extra: Starknet requires {"address": "0x..."}
        """
        extra = extra or {}
        bundle = WalletBundle()

        if chain_family in SHARED_KEY_FAMILIES:
            for family in SHARED_KEY_FAMILIES:
                if family in self.adapters:
                    bundle.wallets.append(self.adapters[family].from_private_key(secret))
            return bundle

        adapter = self.adapter(chain_family)
        record = adapter.from_private_key(secret, address=extra.get("address"))
        if isinstance(adapter, StarknetWalletAdapter):
            deployed = await adapter.check_deployed(record)
            if deployed is None:
                bundle.warnings.append(
                    "Could not check whether the account contract is deployed. "
                    "The wallet was imported; check it again later with /wallets."
                )
            elif not deployed:
                bundle.warnings.append(
                    "No account contract is deployed at this address yet. "
                    "You can still receive funds; it will be deployed on first use."
                )
        bundle.wallets.append(record)
        return bundle

    async def import_from_mnemonic(self, phrase: str, chain_family: ChainFamily) -> WalletBundle:
        """Import EVM + Bitcoin wallets from a 12/24-word phrase.

        Raises:
            InvalidMnemonicFormat: Wrong word count or checksum
            UnsupportedOperation: For Starknet
        """
        if chain_family not in SHARED_KEY_FAMILIES:
            return WalletBundle(wallets=[self.adapter(chain_family).from_mnemonic(phrase)])

        phrase = validate_mnemonic(phrase)
        key = derive_account_key(phrase)
        bundle = WalletBundle(mnemonic=phrase)
        for family in SHARED_KEY_FAMILIES:
            if family in self.adapters:
                record = self.adapters[family].from_private_key(key)
                record.mnemonic = phrase
                bundle.wallets.append(record)
        return bundle

    def restore_client(self, record: WalletRecord) -> WalletRecord:
        """Attach a signing client to a record decrypted from storage."""
        record.client = self.adapter(record.chain_family).client_for(record)
        return record
