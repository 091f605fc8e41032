from typing import Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ── LLM Provider Presets ──────────────────────────────────────────────────────
# Both speak the OpenAI streamed chat-completions protocol.

LLM_PROVIDERS: dict[str, dict[str, str]] = {
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "key_field": "openrouter_api_key",
        "model": "meta-llama/llama-3.3-70b-instruct:free",
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "key_field": "openai_api_key",
        "model": "gpt-4o-mini",
    },
}


class Settings(BaseSettings):
    """Read-only process configuration, built once and passed down explicitly."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # LLM Provider
    ai_provider: str = Field(default="openrouter", description="LLM provider preset")
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    llm_base_url: str = Field(default="", description="Overrides the preset base URL")
    llm_model: str = Field(default="", description="Overrides the preset model")
    llm_temperature: float = Field(default=0.7, description="Sampling temperature")

    # Caller Identification
    app_url: str = Field(
        default="",
        validation_alias=AliasChoices("NEXT_PUBLIC_APP_URL", "APP_URL", "app_url"),
        description="Sent as HTTP-Referer",
    )
    app_title: str = Field(default="Token Portfolio Analyzer", description="Sent as X-Title")

    # Data Sources
    sui_rpc_url: str = Field(default="https://fullnode.mainnet.sui.io")
    coingecko_api_url: str = Field(default="https://api.coingecko.com/api/v3")
    coingecko_api_key: Optional[str] = Field(default=None, description="CoinGecko demo key")
    market_top_n: int = Field(default=30, description="Coins in the market snapshot")

    http_timeout_seconds: float = Field(default=30.0, description="Upstream timeout")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("ai_provider")
    @classmethod
    def _known_provider(cls, value: str) -> str:
        value = value.lower()
        if value not in LLM_PROVIDERS:
            raise ValueError(
                f"Unknown AI_PROVIDER '{value}'. "
                f"Set AI_PROVIDER to one of: {', '.join(LLM_PROVIDERS)}."
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _apply_provider_preset(self):
        preset = LLM_PROVIDERS[self.ai_provider]
        if not self.llm_base_url:
            self.llm_base_url = preset["base_url"]
        if not self.llm_model:
            self.llm_model = preset["model"]
        return self

    @property
    def llm_api_key(self) -> str:
        return getattr(self, LLM_PROVIDERS[self.ai_provider]["key_field"])
