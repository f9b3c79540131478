"""Chain families, networks and swappable assets.

Three chain families are supported:
- evm: account-based chains (Ethereum Sepolia, Arbitrum Sepolia)
- bitcoin: UTXO chain (Bitcoin testnet4)
- starknet: contract-account chain (Starknet Sepolia)

Asset entries mirror the swap engine's testnet asset list: chain id,
HTLC contract address, symbol, decimals and the advertised amount band
(in base units).
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from bip_utils import Base58Decoder, SegwitBech32Decoder
from eth_utils import is_checksum_address

from crossswap.errors import InvalidAddress


class ChainFamily(str, Enum):
    """Address/key model of a chain."""

    EVM = "evm"
    BITCOIN = "bitcoin"
    STARKNET = "starknet"

    @property
    def label(self) -> str:
        return FAMILY_LABELS[self]


FAMILY_LABELS = {
    ChainFamily.EVM: "Ethereum (EVM)",
    ChainFamily.BITCOIN: "Bitcoin",
    ChainFamily.STARKNET: "Starknet",
}


@dataclass(frozen=True)
class Network:
    """An EVM network the user can operate on."""

    id: str
    name: str
    chain_id: int


@dataclass(frozen=True)
class Asset:
    """A swappable asset as advertised by the swap engine."""

    chain: str
    atomic_swap_address: str
    symbol: str
    decimals: int
    min_amount: int
    max_amount: int

    @property
    def key(self) -> str:
        return f"{self.chain}:{self.symbol}"

    @property
    def family(self) -> ChainFamily:
        return chain_family(self.chain)

    def to_base_units(self, amount: Decimal) -> int:
        """Convert a display amount to integer base units."""
        return int(amount * (Decimal(10) ** self.decimals))

    def from_base_units(self, amount: int) -> Decimal:
        """Convert integer base units to a display amount."""
        return (Decimal(amount) / (Decimal(10) ** self.decimals)).normalize()


# ======================
# Networks
# ======================

NETWORKS: dict[str, Network] = {
    "ethereum_sepolia": Network(
        id="ethereum_sepolia",
        name="Ethereum Sepolia",
        chain_id=11155111,
    ),
    "arbitrum_sepolia": Network(
        id="arbitrum_sepolia",
        name="Arbitrum Sepolia",
        chain_id=421614,
    ),
}

EXPLORERS: dict[str, str] = {
    "ethereum_sepolia": "https://sepolia.etherscan.io/tx/",
    "arbitrum_sepolia": "https://sepolia.arbiscan.io/tx/",
    "bitcoin_testnet": "https://mempool.space/testnet4/tx/",
    "starknet_sepolia": "https://sepolia.voyager.online/tx/",
}

_CHAIN_FAMILIES: dict[str, ChainFamily] = {
    "ethereum_sepolia": ChainFamily.EVM,
    "arbitrum_sepolia": ChainFamily.EVM,
    "bitcoin_testnet": ChainFamily.BITCOIN,
    "starknet_sepolia": ChainFamily.STARKNET,
}

# ======================
# Assets
# ======================

# 0.0005 - 0.1 in display units for every asset
_BTC_MIN, _BTC_MAX = 50_000, 10_000_000
_ETH_MIN, _ETH_MAX = 500_000_000_000_000, 100_000_000_000_000_000

ASSETS: dict[str, Asset] = {
    asset.key: asset
    for asset in (
        Asset(
            chain="ethereum_sepolia",
            atomic_swap_address="0xd1E0Ba2b165726b3a6051b765d4564d030FDcf50",
            symbol="ETH",
            decimals=18,
            min_amount=_ETH_MIN,
            max_amount=_ETH_MAX,
        ),
        Asset(
            chain="ethereum_sepolia",
            atomic_swap_address="0x3C6a17b8cD92976D1D91E491c93c98cd81998265",
            symbol="WBTC",
            decimals=8,
            min_amount=_BTC_MIN,
            max_amount=_BTC_MAX,
        ),
        Asset(
            chain="arbitrum_sepolia",
            atomic_swap_address="0x1cd0bBd55fD66B4C5F7dfE434eFD009C09e628d1",
            symbol="ETH",
            decimals=18,
            min_amount=_ETH_MIN,
            max_amount=_ETH_MAX,
        ),
        Asset(
            chain="arbitrum_sepolia",
            atomic_swap_address="0x795Dcb58d1cd4789169D5F938Ea05E17ecEB68cA",
            symbol="WBTC",
            decimals=8,
            min_amount=_BTC_MIN,
            max_amount=_BTC_MAX,
        ),
        Asset(
            chain="bitcoin_testnet",
            atomic_swap_address="primary",
            symbol="BTC",
            decimals=8,
            min_amount=_BTC_MIN,
            max_amount=_BTC_MAX,
        ),
        Asset(
            chain="starknet_sepolia",
            atomic_swap_address="0x06cd4ef3e2fe1fd96c3ed8fde6a2bb3fa4b5a1c2a9d5a1fc8e6e7f0d37b1d6a2",
            symbol="ETH",
            decimals=18,
            min_amount=_ETH_MIN,
            max_amount=_ETH_MAX,
        ),
    )
}


def chain_family(chain: str) -> ChainFamily:
    """Get the family of a chain id.

    Raises:
        KeyError: If the chain is not supported
    """
    family = _CHAIN_FAMILIES.get(chain)
    if family is None:
        raise KeyError(f"Unsupported chain: {chain}")
    return family


def get_asset(key: str) -> Optional[Asset]:
    """Look up an asset by `chain:SYMBOL`."""
    return ASSETS.get(key)


def find_asset(chain: str, atomic_swap_address: Optional[str]) -> Optional[Asset]:
    """Look up an asset by chain and HTLC contract address (case-insensitive)."""
    if not atomic_swap_address:
        return None
    for asset in ASSETS.values():
        if asset.chain == chain and asset.atomic_swap_address.lower() == atomic_swap_address.lower():
            return asset
    return None


def from_asset_candidates(network_id: str) -> list[Asset]:
    """Assets the user may swap from after picking a network.

    Every supported asset, with the selected network's own assets first.
    """
    assets = list(ASSETS.values())
    return [a for a in assets if a.chain == network_id] + [a for a in assets if a.chain != network_id]


def to_asset_candidates(from_asset: Asset) -> list[Asset]:
    """Assets the user may swap to: anything not on the source chain."""
    return [asset for asset in ASSETS.values() if asset.chain != from_asset.chain]


def format_chain_name(chain_id: str) -> str:
    """Turn `arbitrum_sepolia` into `Arbitrum Sepolia`."""
    return " ".join(word.capitalize() for word in chain_id.split("_"))


def explorer_tx_url(chain_id: str, tx_hash: str) -> str:
    """Explorer link for a transaction, or the bare hash if the chain is unknown."""
    base = EXPLORERS.get(chain_id)
    return f"{base}{tx_hash}" if base else tx_hash


def shorten_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


# ======================
# Address validation
# ======================

_EVM_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_STARKNET_RE = re.compile(r"^0x[0-9a-fA-F]{61,64}$")
_BECH32_RE = re.compile(r"^(bc|tb|bcrt)1[02-9ac-hj-np-z]{8,87}$", re.IGNORECASE)
_BASE58_RE = re.compile(r"^[123mn][1-9A-HJ-NP-Za-km-z]{25,34}$")

STARKNET_ADDRESS_BOUND = 2**251


def is_evm_address(address: str) -> bool:
    """`0x` + 40 hex chars; mixed case must carry a valid EIP-55 checksum."""
    if not _EVM_RE.match(address):
        return False
    body = address[2:]
    if body.islower() or body.isupper() or body.isdigit():
        return True
    return is_checksum_address(address)


def is_bitcoin_address(address: str) -> bool:
    """Segwit bech32/bech32m or base58check legacy/P2SH address."""
    if _BECH32_RE.match(address):
        hrp = address.split("1", 1)[0].lower()
        try:
            SegwitBech32Decoder.Decode(hrp, address.lower())
        except Exception:
            return False
        return True

    if _BASE58_RE.match(address):
        try:
            payload = Base58Decoder.CheckDecode(address)
        except Exception:
            return False
        return len(payload) == 21

    return False


def is_starknet_address(address: str) -> bool:
    """`0x` + 61-64 hex chars, value inside the Starknet field."""
    if not _STARKNET_RE.match(address):
        return False
    return int(address, 16) < STARKNET_ADDRESS_BOUND


_VALIDATORS = {
    ChainFamily.EVM: is_evm_address,
    ChainFamily.BITCOIN: is_bitcoin_address,
    ChainFamily.STARKNET: is_starknet_address,
}


def validate_address(family: ChainFamily, address: str) -> str:
    """Validate an address for a chain family.

    Returns:
        The stripped address

    Raises:
        InvalidAddress: With a message naming the expected family
    """
    address = address.strip()
    if _VALIDATORS[family](address):
        return address

    hint = ""
    for other, check in _VALIDATORS.items():
        if other != family and check(address):
            hint = f" That looks like a {other.label} address."
            break

    raise InvalidAddress(
        family.value,
        f"Invalid address. Expected a {family.label} address.{hint}",
    )
