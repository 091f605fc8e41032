import json

import httpx
import pytest

from config import Settings

WALLET = "0x" + "ab" * 32

SUI_RPC_URL = "https://sui.test"
COINGECKO_URL = "https://coingecko.test/api/v3"
LLM_URL = "https://llm.test/api/v1"


def sse_body(*deltas: str, done: bool = True) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]}) + "\n\n"
        for d in deltas
    ]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


RPC_RESULTS = {
    "suix_getBalance": {
        "coinType": "0x2::sui::SUI",
        "coinObjectCount": 2,
        "totalBalance": "2500000000",
    },
    "suix_getOwnedObjects": {
        "data": [
            {
                "data": {
                    "objectId": "0x01",
                    "display": {"data": {"name": "Sui Frens #42"}},
                }
            },
            {"data": {"objectId": "0x02", "display": None}},
        ],
        "hasNextPage": False,
    },
    "suix_getAllCoins": {
        "data": [
            {"coinType": "0x2::sui::SUI", "coinObjectId": "0x10", "balance": "2500000000"},
            {"coinType": "0xdead::usdc::USDC", "coinObjectId": "0x11", "balance": "1000000"},
        ],
        "hasNextPage": False,
    },
}

MARKET_LISTING = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "current_price": 65000.123,
        "price_change_percentage_24h": 1.2345,
        "market_cap": 1_280_000_000_000,
    },
    {
        "id": "sui",
        "symbol": "sui",
        "current_price": 2.0,
        "price_change_percentage_24h": -3.456,
        "market_cap": 6_000_000_000,
    },
]


class FakeUpstreams:
    """Routes SUI RPC, CoinGecko and LLM requests to canned responses."""

    def __init__(self):
        self.rpc_results = dict(RPC_RESULTS)
        self.rpc_errors: dict[str, dict] = {}
        self.market_status = 200
        self.market_listing = list(MARKET_LISTING)
        self.llm_status = 200
        self.llm_body = sse_body("Hi", " there")
        self.requests: list[httpx.Request] = []

    def llm_payloads(self) -> list[dict]:
        return [
            json.loads(r.content) for r in self.requests if r.url.host == "llm.test"
        ]

    def rpc_methods(self) -> list[str]:
        return [
            json.loads(r.content)["method"]
            for r in self.requests
            if r.url.host == "sui.test"
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host == "sui.test":
            method = json.loads(request.content)["method"]
            if method in self.rpc_errors:
                return httpx.Response(
                    200, json={"jsonrpc": "2.0", "id": 1, "error": self.rpc_errors[method]}
                )
            return httpx.Response(
                200, json={"jsonrpc": "2.0", "id": 1, "result": self.rpc_results[method]}
            )

        if host == "coingecko.test":
            if self.market_status != 200:
                return httpx.Response(self.market_status, json={"error": "rate limited"})
            return httpx.Response(200, json=self.market_listing)

        if host == "llm.test":
            if self.llm_status != 200:
                return httpx.Response(self.llm_status, text='{"error":"invalid key"}')
            return httpx.Response(
                200,
                content=self.llm_body,
                headers={"content-type": "text/event-stream"},
            )

        return httpx.Response(404)


@pytest.fixture
def settings():
    return Settings(
        ai_provider="openrouter",
        openrouter_api_key="test-key",
        llm_base_url=LLM_URL,
        llm_model="test/model",
        llm_temperature=0.7,
        app_url="https://app.test",
        sui_rpc_url=SUI_RPC_URL,
        coingecko_api_url=COINGECKO_URL,
        coingecko_api_key=None,
        market_top_n=30,
        http_timeout_seconds=5,
    )


@pytest.fixture
def upstreams():
    return FakeUpstreams()


@pytest.fixture
def transport(upstreams):
    return httpx.MockTransport(upstreams)
