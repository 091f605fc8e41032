from models import AccountSnapshot, CoinData, Holding, OwnedObject
from prompts import (
    ANALYSIS_DIRECTIVE,
    NO_WALLET_FALLBACK,
    SYSTEM_PREAMBLE,
    build_system_prompt,
)


def _market():
    return {
        "bitcoin": CoinData(price=65000.126, change_24h=1.2345, market_cap=1e12, symbol="BTC"),
        "sui": CoinData(price=2.0, change_24h=-3.456, market_cap=6e9, symbol="SUI"),
    }


def _account(objects=None, coins=None):
    objects = objects if objects is not None else [
        OwnedObject.model_validate({"data": {"display": {"data": {"name": "Sui Frens #42"}}}}),
        OwnedObject.model_validate({"data": {"objectId": "0x2"}}),
    ]
    coins = coins if coins is not None else [
        Holding(coin_type="0x2::sui::SUI", balance="2500000000"),
        Holding(coin_type="0xdead::usdc::USDC", balance="1000000"),
    ]
    return AccountSnapshot.build(2.5, objects, coins)


def test_prompt_is_deterministic():
    assert build_system_prompt(_account(), _market()) == build_system_prompt(
        _account(), _market()
    )


def test_market_table_lines_in_rank_order():
    prompt = build_system_prompt(None, _market())

    btc = "- BTC (bitcoin): $65000.13 (24h change: 1.23%)"
    sui = "- SUI (sui): $2.00 (24h change: -3.46%)"
    assert "Current Market Data (Top 30 by Market Cap):" in prompt
    assert btc in prompt and sui in prompt
    assert prompt.index(btc) < prompt.index(sui)


def test_no_market_data_omits_table():
    prompt = build_system_prompt(_account(), None)

    assert prompt.startswith(SYSTEM_PREAMBLE)
    assert "Current Market Data" not in prompt
    assert "(Current value: $0.00)" in prompt


def test_no_wallet_ends_with_general_guidance():
    prompt = build_system_prompt(None, _market())

    assert prompt.endswith(NO_WALLET_FALLBACK)
    assert "Wallet Overview" not in prompt
    assert "SUI Balance" not in prompt
    assert ANALYSIS_DIRECTIVE not in prompt


def test_no_wallet_no_market():
    assert build_system_prompt(None, None) == SYSTEM_PREAMBLE + NO_WALLET_FALLBACK


def test_wallet_overview_values():
    prompt = build_system_prompt(_account(), _market())

    assert "- SUI Balance: 2.5000 SUI (Current value: $5.00)" in prompt
    assert "- Total Objects: 2" in prompt
    assert "- Total Coins: 2" in prompt
    assert prompt.endswith(ANALYSIS_DIRECTIVE)


def test_usd_value_zero_when_sui_not_listed():
    market = {"bitcoin": _market()["bitcoin"]}

    prompt = build_system_prompt(_account(), market)

    assert "(Current value: $0.00)" in prompt


def test_nfts_and_other_tokens_listed():
    prompt = build_system_prompt(_account(), _market())

    assert "NFTs (1):\n- Sui Frens #42" in prompt
    assert "Other Tokens:\n- 0xdead::usdc::USDC" in prompt
    assert "- 0x2::sui::SUI" not in prompt


def test_sections_skipped_when_empty():
    account = _account(objects=[], coins=[Holding(coin_type="0x2::sui::SUI")])

    prompt = build_system_prompt(account, _market())

    assert "NFTs (" not in prompt
    assert "Other Tokens:" not in prompt
    assert "explanations or definitions" in prompt


def test_full_prompt_layout():
    expected = (
        SYSTEM_PREAMBLE
        + "\nCurrent Market Data (Top 30 by Market Cap):\n"
        "- BTC (bitcoin): $65000.13 (24h change: 1.23%)\n"
        "- SUI (sui): $2.00 (24h change: -3.46%)\n"
        "\nWallet Overview:\n"
        "- SUI Balance: 2.5000 SUI (Current value: $5.00)\n"
        "- Total Objects: 2\n"
        "- Total Coins: 2\n"
        "\n"
        "\nNFTs (1):\n- Sui Frens #42\n"
        "\n\n"
        "\nOther Tokens:\n- 0xdead::usdc::USDC\n"
        "\n\n"
        + ANALYSIS_DIRECTIVE
    )

    assert build_system_prompt(_account(), _market()) == expected


def test_empty_blocks_keep_separators():
    account = _account(objects=[], coins=[Holding(coin_type="0x2::sui::SUI")])

    prompt = build_system_prompt(account, None)

    assert "- Total Coins: 1\n\n\n\n\n\nProvide comprehensive analysis" in prompt
