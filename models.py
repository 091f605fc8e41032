from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


SUI_COIN_TYPE = "0x2::sui::SUI"


# ── Chain Data Models ─────────────────────────────────────────────────────────


class OwnedObject(BaseModel):
    """Raw `SuiObjectResponse`; only the display name is inspected."""

    model_config = ConfigDict(extra="allow")

    data: Optional[dict[str, Any]] = None

    @property
    def display_name(self) -> Optional[str]:
        display = (self.data or {}).get("display") or {}
        name = (display.get("data") or {}).get("name")
        return name or None


class Holding(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    coin_type: str = Field(..., alias="coinType")
    balance: str = "0"
    coin_object_id: Optional[str] = Field(None, alias="coinObjectId")

    @property
    def is_native(self) -> bool:
        return self.coin_type == SUI_COIN_TYPE


class AccountSnapshot(BaseModel):
    sui_balance: float = 0.0
    objects: list[OwnedObject] = []
    coins: list[Holding] = []
    total_objects: int = 0
    total_coins: int = 0

    @model_validator(mode="after")
    def _check_counts(self):
        if self.total_objects != len(self.objects):
            raise ValueError("total_objects does not match objects")
        if self.total_coins != len(self.coins):
            raise ValueError("total_coins does not match coins")
        return self

    @classmethod
    def build(
        cls, sui_balance: float, objects: list[OwnedObject], coins: list[Holding]
    ) -> "AccountSnapshot":
        return cls(
            sui_balance=sui_balance,
            objects=objects,
            coins=coins,
            total_objects=len(objects),
            total_coins=len(coins),
        )

    @property
    def nfts(self) -> list[OwnedObject]:
        return [o for o in self.objects if o.display_name]

    @property
    def other_tokens(self) -> list[Holding]:
        return [c for c in self.coins if not c.is_native]


# ── Market Data Models ────────────────────────────────────────────────────────


class CoinData(BaseModel):
    price: float = 0.0
    change_24h: float = 0.0
    market_cap: float = 0.0
    symbol: str


# CoinGecko id -> CoinData, insertion order = market-cap rank
MarketSnapshot = dict[str, CoinData]


# ── API Models ────────────────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    """Conversation turn; extra provider fields (e.g. `name`) are forwarded as sent."""

    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(..., description="Conversation history")
    wallet_address: Optional[str] = Field(
        None,
        alias="walletAddress",
        description="Connected SUI wallet address, if any",
    )


class StreamEvent(BaseModel):
    content: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    version: str
