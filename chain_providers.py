import asyncio
import logging
from typing import Any, Optional

import httpx

from config import Settings
from models import (
    SUI_COIN_TYPE,
    AccountSnapshot,
    CoinData,
    Holding,
    MarketSnapshot,
    OwnedObject,
)
from utils import is_valid_sui_address, mist_to_sui, normalize_sui_address

logger = logging.getLogger(__name__)


class ChainDataError(Exception):
    """SUI node returned an error or an unusable result."""


class MarketDataError(Exception):
    """Market listing could not be fetched or parsed."""


# ── SUI Provider (full node JSON-RPC) ─────────────────────────────────────────


class SuiProvider:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = settings.sui_rpc_url
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    async def _rpc(self, client: httpx.AsyncClient, method: str, params: list) -> Any:
        resp = await client.post(
            self.rpc_url,
            json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()

        if data.get("error"):
            raise ChainDataError(f"{method} failed: {data['error']}")
        if "result" not in data:
            raise ChainDataError(f"{method} returned no result")
        return data["result"]

    # ── Individual Lookups ─────────────────────────────────────────────────

    async def get_balance(self, client: httpx.AsyncClient, address: str) -> float:
        result = await self._rpc(client, "suix_getBalance", [address, SUI_COIN_TYPE])
        return mist_to_sui(result["totalBalance"])

    async def get_owned_objects(
        self, client: httpx.AsyncClient, address: str
    ) -> list[OwnedObject]:
        result = await self._rpc(
            client,
            "suix_getOwnedObjects",
            [address, {"options": {"showContent": True, "showDisplay": True}}],
        )
        return [OwnedObject.model_validate(obj) for obj in result["data"]]

    async def get_all_coins(
        self, client: httpx.AsyncClient, address: str
    ) -> list[Holding]:
        result = await self._rpc(client, "suix_getAllCoins", [address])
        return [Holding.model_validate(coin) for coin in result["data"]]

    # ── Snapshot ───────────────────────────────────────────────────────────

    async def get_account_snapshot(self, address: str) -> Optional[AccountSnapshot]:
        """Balance, owned objects and coins fetched together; None on any failure."""
        if not is_valid_sui_address(address):
            logger.warning("Invalid SUI address: %r", address)
            return None

        address = normalize_sui_address(address)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                balance, objects, coins = await asyncio.gather(
                    self.get_balance(client, address),
                    self.get_owned_objects(client, address),
                    self.get_all_coins(client, address),
                )
        except Exception as e:
            logger.warning("Error fetching wallet data for %s: %s", address, e)
            return None

        return AccountSnapshot.build(balance, objects, coins)


# ── Market Data (CoinGecko) ───────────────────────────────────────────────────


class MarketDataProvider:
    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = settings.coingecko_api_url.rstrip("/")
        self.api_key = settings.coingecko_api_key
        self.top_n = settings.market_top_n
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    @staticmethod
    def _parse_listing(data: Any) -> MarketSnapshot:
        if not isinstance(data, list):
            raise MarketDataError(f"Unexpected market listing: {str(data)[:200]}")

        snapshot: MarketSnapshot = {}
        for coin in data:
            snapshot[coin["id"]] = CoinData(
                price=coin.get("current_price") or 0.0,
                change_24h=coin.get("price_change_percentage_24h") or 0.0,
                market_cap=coin.get("market_cap") or 0.0,
                symbol=str(coin.get("symbol", "")).upper(),
            )
        return snapshot

    async def get_market_snapshot(self) -> Optional[MarketSnapshot]:
        """Top coins by market cap with 24h change; None on any failure."""
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.get(
                    f"{self.base_url}/coins/markets",
                    params={
                        "vs_currency": "usd",
                        "order": "market_cap_desc",
                        "per_page": self.top_n,
                        "page": 1,
                        "sparkline": "false",
                        "price_change_percentage": "24h",
                    },
                    headers=self._build_headers(),
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                return self._parse_listing(resp.json())
        except Exception as e:
            logger.warning("Error fetching crypto market data: %s", e)
            return None
