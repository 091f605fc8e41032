import asyncio
import logging
from typing import AsyncIterator, Optional, Sequence

from agent import CompletionAgent
from chain_providers import MarketDataProvider, SuiProvider
from models import AccountSnapshot, ChatMessage, MarketSnapshot
from prompts import build_system_prompt
from streaming import reframe_stream
from utils import is_valid_sui_address

logger = logging.getLogger(__name__)


class PortfolioChat:
    """Orchestrates wallet + market lookups and the streamed completion."""

    def __init__(
        self,
        sui: SuiProvider,
        market: MarketDataProvider,
        agent: CompletionAgent,
    ):
        self.sui = sui
        self.market = market
        self.agent = agent

    async def _no_account(self) -> None:
        return None

    async def gather_context(
        self, wallet_address: Optional[str]
    ) -> tuple[Optional[AccountSnapshot], Optional[MarketSnapshot]]:
        """Account and market snapshots, fetched concurrently."""
        if wallet_address and is_valid_sui_address(wallet_address):
            account_task = self.sui.get_account_snapshot(wallet_address)
        else:
            if wallet_address:
                logger.info("Ignoring invalid wallet address: %r", wallet_address)
            account_task = self._no_account()

        account, market = await asyncio.gather(
            account_task, self.market.get_market_snapshot()
        )
        logger.debug(
            "Context: wallet=%s market_coins=%d",
            "yes" if account else "no",
            len(market or {}),
        )
        return account, market

    async def build_prompt(self, wallet_address: Optional[str]) -> str:
        account, market = await self.gather_context(wallet_address)
        return build_system_prompt(account, market)

    async def start_chat(
        self, messages: Sequence[ChatMessage], wallet_address: Optional[str]
    ) -> AsyncIterator[bytes]:
        """Open the completion and return the outbound event stream.

        Raises `UpstreamError` before any event is produced when the provider
        rejects the request.
        """
        system_prompt = await self.build_prompt(wallet_address)
        upstream = await self.agent.open_stream(messages, system_prompt)
        return self._relay(upstream)

    async def _relay(self, upstream) -> AsyncIterator[bytes]:
        count = 0
        try:
            async for record in reframe_stream(upstream):
                count += 1
                yield record
        except Exception:
            logger.exception("Upstream stream failed after %d events", count)
        finally:
            await upstream.aclose()
            logger.info("Chat stream closed after %d events", count)
