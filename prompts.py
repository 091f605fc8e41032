from typing import Optional

from models import AccountSnapshot, MarketSnapshot

NATIVE_COINGECKO_ID = "sui"

SYSTEM_PREAMBLE = (
    "You are an advanced token portfolio analyzer for SUI wallets. You provide in-depth "
    "analysis, market estimations, and trading tips based on wallet contents and current "
    "market data. "
)

NO_WALLET_FALLBACK = (
    "When no wallet is connected, offer general advice on portfolio management, "
    "SUI ecosystem and crypto market situation in general."
)

ANALYSIS_DIRECTIVE = """Provide comprehensive analysis including:
1. Market Structure Analysis: Identify key swing highs/lows, trend structures, and potential \
reversals for SUI and major tokens in the wallet.
2. Volume and Order Flow Analysis: Analyze volume distribution, market depth, and whale \
activity for relevant tokens.
3. Technical Indicator Analysis: Use indicators like RSI, Bollinger Bands, and Ichimoku Cloud \
for insights on major holdings.
4. Market Psychology and Sentiment: Evaluate momentum, sentiment, and institutional activity \
in the SUI ecosystem.
5. Risk Management: Calculate appropriate position sizes, suggest stop losses, and plan trade \
management strategies.
6. Trading Plan Development: Provide clear entry/exit strategies and alternative scenarios \
for major holdings.
7. Broader Market Context: Provide insights on how the overall crypto market trends might \
affect the wallet's holdings.

Offer actionable insights and recommendations based on the wallet composition and current \
market conditions. Be concise yet thorough in your analysis.

When using technical terms, provide brief explanations or definitions to educate the user."""


def format_market_table(market: MarketSnapshot) -> str:
    lines = [
        f"- {coin.symbol} ({coin_id}): ${coin.price:.2f} (24h change: {coin.change_24h:.2f}%)"
        for coin_id, coin in market.items()
    ]
    return "\nCurrent Market Data (Top 30 by Market Cap):\n" + "\n".join(lines) + "\n"


def native_value_usd(account: AccountSnapshot, market: Optional[MarketSnapshot]) -> float:
    native = (market or {}).get(NATIVE_COINGECKO_ID)
    return account.sui_balance * (native.price if native else 0)


def format_wallet_overview(
    account: AccountSnapshot, market: Optional[MarketSnapshot]
) -> str:
    overview = (
        "\nWallet Overview:\n"
        f"- SUI Balance: {account.sui_balance:.4f} SUI "
        f"(Current value: ${native_value_usd(account, market):.2f})\n"
        f"- Total Objects: {account.total_objects}\n"
        f"- Total Coins: {account.total_coins}\n"
    )

    nft_block = ""
    nfts = account.nfts
    if nfts:
        names = "\n".join(f"- {nft.display_name}" for nft in nfts)
        nft_block = f"\nNFTs ({len(nfts)}):\n{names}\n"

    token_block = ""
    tokens = account.other_tokens
    if tokens:
        types = "\n".join(f"- {token.coin_type}" for token in tokens)
        token_block = f"\nOther Tokens:\n{types}\n"

    # empty blocks still leave their separating blank lines
    return f"{overview}\n{nft_block}\n\n{token_block}\n\n"


def build_system_prompt(
    account: Optional[AccountSnapshot], market: Optional[MarketSnapshot]
) -> str:
    """Grounding system prompt from whatever wallet and market data is available."""
    prompt = SYSTEM_PREAMBLE

    if market:
        prompt += format_market_table(market)

    if account is None:
        return prompt + NO_WALLET_FALLBACK

    prompt += format_wallet_overview(account, market)
    return prompt + ANALYSIS_DIRECTIVE
