"""Garden cross-chain swap engine over HTTP.

Garden swaps are HTLC based: the user locks funds on the source chain
against the hash of a secret, a solver locks the counterparty funds on the
destination chain, and revealing the secret redeems both sides.

Flow:
1. GET  {quote}/quote                        strategies for an order pair
2. POST {quote}/quote/attested               solver-attested order
3. POST {orderbook}/relayer/create-order     order id
4. GET  {orderbook}/orders/id/{id}/matched   poll until matched
5. POST {relay}/initiate                     signed initiate (EVM / Starknet)
6. POST {relay}/redeem                       reveal secret once the solver locked

Bitcoin-source orders skip step 5: the user funds the source HTLC address.
"""

import asyncio
import hashlib
import logging
import secrets
from typing import Any, Optional

import httpx

from crossswap.chains import NETWORKS, Asset, ChainFamily, chain_family
from crossswap.errors import EngineUnavailable, ExternalEngineError
from crossswap.swap.engine import Order, Quote, SwapEngine, SwapRequest
from crossswap.wallets.evm import EvmWalletClient
from crossswap.wallets.starknet import StarknetWalletClient

logger = logging.getLogger(__name__)

# HTLC timelocks in source-chain blocks
TIMELOCKS = {
    ChainFamily.BITCOIN: 144,
    ChainFamily.EVM: 7200,
    ChainFamily.STARKNET: 2880,
}

STARKNET_CHAIN_ID = "SN_SEPOLIA"


def order_pair(from_asset: Asset, to_asset: Asset) -> str:
    """Garden order pair: `chain:htlc::chain:htlc`."""
    return (
        f"{from_asset.chain}:{from_asset.atomic_swap_address}"
        f"::{to_asset.chain}:{to_asset.atomic_swap_address}"
    )


def parse_order(data: dict) -> Order:
    """Build an Order from a matched-order payload."""
    create = data.get("create_order") or {}
    source = data.get("source_swap") or {}
    destination = data.get("destination_swap") or {}
    return Order(
        order_id=create.get("create_id", ""),
        source_chain=create.get("source_chain", ""),
        destination_chain=create.get("destination_chain", ""),
        source_amount=int(create.get("source_amount", 0)),
        destination_amount=int(create.get("destination_amount", 0)),
        source_swap_id=source.get("swap_id"),
        destination_swap_id=destination.get("swap_id"),
        redeemer=source.get("redeemer"),
        timelock=source.get("timelock"),
        secret_hash=create.get("secret_hash"),
        source_asset=source.get("asset"),
        raw=data,
    )


def evm_initiate_typed_data(order: Order, chain_id: int) -> dict:
    """EIP-712 `Initiate` message for the source HTLC."""
    return {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "Initiate": [
                {"name": "redeemer", "type": "address"},
                {"name": "timelock", "type": "uint256"},
                {"name": "amount", "type": "uint256"},
                {"name": "secretHash", "type": "bytes32"},
            ],
        },
        "primaryType": "Initiate",
        "domain": {
            "name": "HTLC",
            "version": "1",
            "chainId": chain_id,
            "verifyingContract": order.source_asset,
        },
        "message": {
            "redeemer": order.redeemer,
            "timelock": int(order.timelock or 0),
            "amount": order.source_amount,
            "secretHash": "0x" + (order.secret_hash or "").removeprefix("0x"),
        },
    }


def starknet_initiate_typed_data(order: Order) -> dict:
    """SNIP-12 `Initiate` message for the source HTLC."""
    secret_hash = bytes.fromhex((order.secret_hash or "").removeprefix("0x"))
    words = [int.from_bytes(secret_hash[i : i + 4], "big") for i in range(0, len(secret_hash), 4)]
    return {
        "types": {
            "StarknetDomain": [
                {"name": "name", "type": "shortstring"},
                {"name": "version", "type": "shortstring"},
                {"name": "chainId", "type": "shortstring"},
                {"name": "revision", "type": "shortstring"},
            ],
            "Initiate": [
                {"name": "redeemer", "type": "ContractAddress"},
                {"name": "amount", "type": "u256"},
                {"name": "timelock", "type": "u128"},
                {"name": "secretHash", "type": "u128*"},
            ],
        },
        "primaryType": "Initiate",
        "domain": {
            "name": "HTLC",
            "version": "1",
            "chainId": STARKNET_CHAIN_ID,
            "revision": "1",
        },
        "message": {
            "redeemer": order.redeemer,
            "amount": {"low": hex(order.source_amount & (2**128 - 1)), "high": hex(order.source_amount >> 128)},
            "timelock": hex(int(order.timelock or 0)),
            "secretHash": [hex(word) for word in words],
        },
    }


class GardenEngine(SwapEngine):
    """Garden engine bound to one user's source wallets.

    Secrets are generated per order and kept in memory only; an order whose
    secret is lost cannot be redeemed by this process and will be refunded
    after its timelock.
    """

    def __init__(
        self,
        quote_url: str,
        orderbook_url: str,
        evm_relay_url: str,
        starknet_relay_url: str,
        api_key: str = "",
        evm_client: Optional[EvmWalletClient] = None,
        starknet_client: Optional[StarknetWalletClient] = None,
        timeout: float = 30.0,
        poll_interval: float = 5.0,
        max_match_polls: int = 24,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.quote_url = quote_url.rstrip("/")
        self.orderbook_url = orderbook_url.rstrip("/")
        self.evm_relay_url = evm_relay_url.rstrip("/")
        self.starknet_relay_url = starknet_relay_url.rstrip("/")
        self.evm_client = evm_client
        self.starknet_client = starknet_client
        self.poll_interval = poll_interval
        self.max_match_polls = max_match_polls

        headers = {"api-key": api_key} if api_key else {}
        self._http = http_client or httpx.AsyncClient(timeout=timeout, headers=headers)
        self._owns_http = http_client is None

        # order id -> secret, for orders waiting to be redeemed
        self._secrets: dict[str, bytes] = {}
        self._settling = False

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "GardenEngine":
        return cls(
            quote_url=settings.garden_quote_url,
            orderbook_url=settings.garden_orderbook_url,
            evm_relay_url=settings.garden_evm_relay_url,
            starknet_relay_url=settings.garden_starknet_relay_url,
            api_key=settings.garden_api_key,
            timeout=settings.engine_timeout_seconds,
            poll_interval=settings.engine_poll_interval_seconds,
            max_match_polls=settings.engine_max_match_polls,
            **kwargs,
        )

    @property
    def pending_orders(self) -> list[str]:
        return list(self._secrets)

    # ======================
    # HTTP
    # ======================

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """Call the API and unwrap `{"status": "Ok", "result": ...}`.

        Raises:
            EngineUnavailable: Transport failure or timeout
            ExternalEngineError: Error status or error payload
        """
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Garden request timed out: {method} {url}")
            raise EngineUnavailable("The swap service did not respond in time.") from e
        except httpx.TransportError as e:
            logger.error(f"Garden request failed: {method} {url}: {e}")
            raise EngineUnavailable("The swap service is unreachable.") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and (data.get("status") == "Error" or data.get("error")):
            error = str(data.get("error") or "unknown error")
            logger.warning(f"Garden API error on {url}: {error}")
            raise ExternalEngineError(error)

        if response.status_code >= 400:
            logger.warning(f"Garden API error on {url}: HTTP {response.status_code} {response.text}")
            raise ExternalEngineError(response.text or f"HTTP {response.status_code}")

        if isinstance(data, dict) and "result" in data:
            return data["result"]
        return data

    def _relay_url(self, chain: str) -> str:
        if chain_family(chain) == ChainFamily.STARKNET:
            return self.starknet_relay_url
        return self.evm_relay_url

    # ======================
    # Quote and order
    # ======================

    async def get_quote(
        self, from_asset: Asset, to_asset: Asset, amount: int, exact_output: bool = False
    ) -> Quote:
        result = await self._request(
            "GET",
            f"{self.quote_url}/quote",
            params={
                "order_pair": order_pair(from_asset, to_asset),
                "amount": str(amount),
                "exact_out": str(exact_output).lower(),
            },
        )
        quotes = (result or {}).get("quotes") or {}
        if not quotes:
            raise ExternalEngineError("No strategies available for this pair.")

        strategies = {strategy: int(receive) for strategy, receive in quotes.items()}
        logger.info(
            f"Garden quote {from_asset.key} -> {to_asset.key} for {amount}: {len(strategies)} strategies"
        )
        return Quote(from_asset=from_asset, to_asset=to_asset, send_amount=amount, strategies=strategies)

    async def submit_swap(self, request: SwapRequest) -> Order:
        secret = secrets.token_bytes(32)
        secret_hash = hashlib.sha256(secret).hexdigest()

        payload = {
            "source_chain": request.from_asset.chain,
            "destination_chain": request.to_asset.chain,
            "source_asset": request.from_asset.atomic_swap_address,
            "destination_asset": request.to_asset.atomic_swap_address,
            "initiator_source_address": request.initiator_source_address,
            "initiator_destination_address": request.additional_data.get("destination_address"),
            "source_amount": str(request.send_amount),
            "destination_amount": str(request.receive_amount),
            "fee": "1",
            "nonce": request.nonce,
            "timelock": TIMELOCKS[request.from_asset.family],
            "secret_hash": secret_hash,
            "min_destination_confirmations": 0,
            "additional_data": {"strategy_id": request.strategy_id},
        }
        btc_address = request.additional_data.get("bitcoin_optional_recipient")
        if btc_address:
            payload["additional_data"]["bitcoin_optional_recipient"] = btc_address

        attested = await self._request("POST", f"{self.quote_url}/quote/attested", json=payload)
        order_id = await self._request(
            "POST", f"{self.orderbook_url}/relayer/create-order", json=attested or payload
        )
        if not order_id:
            raise ExternalEngineError("Order creation returned no id.")

        order_id = str(order_id)
        self._secrets[order_id] = secret
        await self._emit("log", order_id, "order created")
        logger.info(f"Garden order created: {order_id}")

        order = await self._wait_for_match(order_id)
        await self._emit("log", order_id, "order matched")
        return order

    async def fetch_order(self, order_id: str) -> Optional[Order]:
        """Current state of a matched order, or None if not matched yet."""
        result = await self._request("GET", f"{self.orderbook_url}/orders/id/{order_id}/matched")
        if not result:
            return None
        return parse_order(result)

    async def _wait_for_match(self, order_id: str) -> Order:
        for attempt in range(self.max_match_polls):
            try:
                order = await self.fetch_order(order_id)
            except EngineUnavailable:
                self._secrets.pop(order_id, None)
                raise
            except ExternalEngineError:
                # orderbook answers with an error until the order is indexed
                order = None
            if order is not None and order.source_swap_id:
                return order
            logger.debug(f"Order {order_id} not matched yet (poll {attempt + 1})")
            await asyncio.sleep(self.poll_interval)

        self._secrets.pop(order_id, None)
        raise ExternalEngineError("The order was not matched in time. Please try again later.")

    # ======================
    # Initiation
    # ======================

    async def initiate_via_account_relay(self, order: Order) -> str:
        if self.evm_client is None:
            raise ExternalEngineError("No EVM wallet available to initiate the swap.")

        network = NETWORKS.get(order.source_chain)
        if network is None:
            raise ExternalEngineError(f"Unsupported EVM source chain: {order.source_chain}")

        typed_data = evm_initiate_typed_data(order, network.chain_id)
        signature = self.evm_client.sign_typed_data(typed_data)
        tx_hash = await self._request(
            "POST",
            f"{self.evm_relay_url}/initiate",
            json={"order_id": order.order_id, "signature": signature, "perform_on": "Source"},
        )
        await self._emit("success", order, "initiate", tx_hash)
        return str(tx_hash)

    async def initiate_via_contract_account_relay(self, order: Order) -> str:
        if self.starknet_client is None:
            raise ExternalEngineError("No Starknet wallet available to initiate the swap.")

        typed_data = starknet_initiate_typed_data(order)
        signature = self.starknet_client.sign_typed_data(typed_data)
        tx_hash = await self._request(
            "POST",
            f"{self.starknet_relay_url}/initiate",
            json={"order_id": order.order_id, "signature": signature, "perform_on": "Source"},
        )
        await self._emit("success", order, "initiate", tx_hash)
        return str(tx_hash)

    # ======================
    # Settlement
    # ======================

    async def run_settlement_loop(self) -> None:
        """Redeem every pending order once the solver has locked funds.

        Returns when no orders are pending. A second call while the loop is
        running returns immediately; new orders are picked up by the
        running loop.
        """
        if self._settling:
            return
        self._settling = True
        try:
            while self._secrets:
                for order_id in list(self._secrets):
                    await self._settle(order_id)
                if self._secrets:
                    await asyncio.sleep(self.poll_interval)
        finally:
            self._settling = False

    async def _settle(self, order_id: str) -> None:
        try:
            order = await self.fetch_order(order_id)
        except ExternalEngineError as e:
            logger.warning(f"Could not fetch order {order_id}: {e}")
            return
        if order is None:
            return

        source = order.raw.get("source_swap") or {}
        destination = order.raw.get("destination_swap") or {}

        if source.get("refund_tx_hash") or destination.get("refund_tx_hash"):
            self._secrets.pop(order_id, None)
            await self._emit("error", order, ExternalEngineError("Order was refunded."))
            return

        if destination.get("redeem_tx_hash"):
            self._secrets.pop(order_id, None)
            await self._emit("success", order, "redeem", destination["redeem_tx_hash"])
            return

        if not destination.get("initiate_tx_hash"):
            return

        secret = self._secrets[order_id]
        try:
            tx_hash = await self._request(
                "POST",
                f"{self._relay_url(order.destination_chain)}/redeem",
                json={"order_id": order_id, "secret": secret.hex(), "perform_on": "Destination"},
            )
        except ExternalEngineError as e:
            await self._emit("error", order, e)
            return

        self._secrets.pop(order_id, None)
        logger.info(f"Redeemed order {order_id}: {tx_hash}")
        await self._emit("success", order, "redeem", str(tx_hash))

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
