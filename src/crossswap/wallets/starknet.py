"""Starknet wallet adapter (contract accounts).

A Starknet account is a contract whose address is computed from the
account class hash and the owner's Stark public key, so a private key
alone cannot recover an existing address: imports must supply it.

The starknet-py SDK is imported lazily on first use; tests inject their own
`StarknetSdk`. A broken SDK install surfaces as `UnsupportedOperation`.
"""

import logging
import secrets
from typing import Any, Optional

from crossswap.chains import ChainFamily, is_starknet_address
from crossswap.errors import InvalidAddress, InvalidKeyFormat, UnsupportedOperation
from crossswap.wallets.base import ChainWalletAdapter, WalletClient, WalletRecord, normalize_hex_key

logger = logging.getLogger(__name__)

# Order of the Stark curve generator
STARK_EC_ORDER = 0x800000000000010FFFFFFFFFFFFFFFFB781126DCAE7B2321E66A241ADC64D2F


class StarknetWalletClient(WalletClient):
    """Signs typed data for the engine's Starknet relay."""

    family = ChainFamily.STARKNET

    def __init__(self, address: str, account: Any):
        self._address = address
        self._account = account

    @property
    def address(self) -> str:
        return self._address

    def sign_typed_data(self, typed_data: dict) -> list[str]:
        """Sign SNIP-12 typed data; returns the signature felts as hex."""
        signature = self._account.sign_message(typed_data)
        return [hex(part) for part in signature]


class StarknetSdk:
    """The slice of starknet-py used by the adapter."""

    def __init__(self, rpc_url: str):
        self.rpc_url = rpc_url
        self._client = None

    def _get_client(self):
        if self._client is None:
            from starknet_py.net.full_node_client import FullNodeClient

            self._client = FullNodeClient(node_url=self.rpc_url)
        return self._client

    def public_key(self, private_key: int) -> int:
        from starknet_py.net.signer.stark_curve_signer import KeyPair

        return KeyPair.from_private_key(private_key).public_key

    def compute_address(self, public_key: int, class_hash: int) -> int:
        from starknet_py.hash.address import compute_address

        return compute_address(
            class_hash=class_hash,
            constructor_calldata=[public_key],
            salt=public_key,
            deployer_address=0,
        )

    def account(self, address: int, private_key: int) -> Any:
        from starknet_py.net.account.account import Account
        from starknet_py.net.models import StarknetChainId
        from starknet_py.net.signer.stark_curve_signer import KeyPair

        return Account(
            address=address,
            client=self._get_client(),
            key_pair=KeyPair.from_private_key(private_key),
            chain=StarknetChainId.SEPOLIA,
        )

    async def is_deployed(self, address: int) -> bool:
        from starknet_py.net.client_errors import ClientError

        try:
            await self._get_client().get_class_hash_at(contract_address=address)
        except ClientError:
            return False
        return True


class StarknetWalletAdapter(ChainWalletAdapter):
    """OpenZeppelin-style Starknet accounts."""

    family = ChainFamily.STARKNET

    def __init__(self, class_hash: str, sdk: StarknetSdk):
        self.class_hash = int(class_hash, 16)
        self.sdk = sdk

    def create(self, **kwargs: Any) -> WalletRecord:
        """Create an account with independent entropy.

        The address is counterfactual: the contract is deployed on first use.
        """
        private_key = secrets.randbelow(STARK_EC_ORDER - 1) + 1
        try:
            public_key = self.sdk.public_key(private_key)
            address = self.sdk.compute_address(public_key, self.class_hash)
        except ImportError as e:
            raise _sdk_missing(e) from e

        logger.info(f"Computed new Starknet account address {_felt_hex(address)}")
        record = self._record(address, private_key, public_key)
        record.contract_deployed = False
        return record

    def from_private_key(
        self, private_key: str, address: Optional[str] = None, **kwargs: Any
    ) -> WalletRecord:
        if not address:
            raise InvalidAddress(
                self.family.value,
                "A Starknet account address is required to import a Starknet private key.",
            )
        if not is_starknet_address(address):
            raise InvalidAddress(self.family.value)

        try:
            key = int(normalize_hex_key(private_key, exact=False), 16)
        except ValueError as e:
            raise InvalidKeyFormat("Invalid Starknet private key. Expected hex.") from e
        if not 0 < key < STARK_EC_ORDER:
            raise InvalidKeyFormat("Invalid Starknet private key: out of range.")

        try:
            public_key = self.sdk.public_key(key)
        except ImportError as e:
            raise _sdk_missing(e) from e
        return self._record(int(address, 16), key, public_key)

    def from_mnemonic(self, mnemonic: str) -> WalletRecord:
        raise UnsupportedOperation(
            "Mnemonic import is not supported for Starknet. Import the private key with the account address instead."
        )

    async def check_deployed(self, record: WalletRecord) -> Optional[bool]:
        """Read the chain to see whether the account contract exists.

        Returns None when the node could not be asked; the import goes on.
        """
        try:
            deployed = await self.sdk.is_deployed(int(record.address, 16))
        except Exception as e:
            logger.warning(f"Could not check Starknet deployment of {record.address}: {e}")
            record.contract_deployed = None
            return None
        record.contract_deployed = deployed
        if not deployed:
            logger.warning(f"No Starknet account contract deployed at {record.address}")
        return deployed

    def _record(self, address: int, private_key: int, public_key: int) -> WalletRecord:
        address_hex = _felt_hex(address)
        try:
            account = self.sdk.account(address, private_key)
        except ImportError as e:
            raise _sdk_missing(e) from e
        return WalletRecord(
            address=address_hex,
            chain_family=self.family,
            private_key=_felt_hex(private_key),
            public_key=_felt_hex(public_key),
            client=StarknetWalletClient(address_hex, account),
        )


def _sdk_missing(error: ImportError) -> UnsupportedOperation:
    logger.error(f"starknet-py is not available: {error}")
    return UnsupportedOperation("Starknet wallets are not available on this bot right now.")


def _felt_hex(value: int) -> str:
    """Zero-padded 0x + 64 hex digits."""
    return "0x" + format(value, "064x")
