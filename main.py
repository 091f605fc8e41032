import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastmcp import FastMCP

load_dotenv()

from agent import CompletionAgent, UpstreamError
from chain_providers import MarketDataProvider, SuiProvider
from chat_orchestrator import PortfolioChat
from config import Settings
from models import ChatRequest, ErrorResponse, HealthResponse
from prompts import build_system_prompt
from utils import format_address, is_valid_sui_address

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("portfolio-chat")

VERSION = "1.0.0"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def create_chat(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> PortfolioChat:
    """Wire providers and the completion agent from one settings value."""
    return PortfolioChat(
        sui=SuiProvider(settings, transport=transport),
        market=MarketDataProvider(settings, transport=transport),
        agent=CompletionAgent(settings, transport=transport),
    )


# ── MCP Server (mounted at /mcp) ─────────────────────────────────────────────

mcp = FastMCP(
    name="SUI Portfolio Chat",
    instructions=(
        "Grounding data for SUI wallet conversations. Provide a SUI address and get "
        "its balance, NFTs and coin holdings together with top-30 market data and "
        "the system prompt used by the portfolio chat assistant."
    ),
)


async def get_wallet_context(address: Optional[str] = None) -> dict:
    """
    Fetch the wallet and market context used to ground portfolio answers.

    Args:
        address: SUI wallet address (0x + 64 hex chars). Omit for market data only.

    Returns:
        Wallet snapshot (or null), market snapshot (or null) and the system prompt.
    """
    account, market = await chat.gather_context(address)
    return {
        "address": format_address(address) if is_valid_sui_address(address) else None,
        "wallet": account.model_dump(exclude={"objects"}) if account else None,
        "nfts": [o.display_name for o in account.nfts] if account else [],
        "market": (
            {cid: coin.model_dump() for cid, coin in market.items()} if market else None
        ),
        "system_prompt": build_system_prompt(account, market),
    }


mcp.tool(get_wallet_context)

# Served at /mcp/; its lifespan runs the streamable-HTTP session manager
mcp_app = mcp.http_app(path="/")


# ── Lifespan ──────────────────────────────────────────────────────────────────

chat: PortfolioChat | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global chat
    settings = Settings()
    logging.getLogger().setLevel(settings.log_level)
    chat = create_chat(settings)
    async with mcp_app.lifespan(app):
        logger.info("SUI Portfolio Chat ready")
        yield
    logger.info("Shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="SUI Portfolio Chat",
    description=(
        "Chat assistant for SUI wallets. Combines on-chain holdings from a SUI full "
        "node, top-30 market data from CoinGecko and a streamed LLM completion.\n\n"
        "Exposes **REST** (`/api/chat`, server-sent events) and **MCP** (`/mcp`) endpoints."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/mcp", mcp_app)


# ── Info ──────────────────────────────────────────────────────────────────────


@app.get("/", tags=["Info"])
def root(request: Request):
    base = str(request.base_url).rstrip("/")
    return {
        "name": "SUI Portfolio Chat",
        "version": VERSION,
        "endpoints": {
            "docs": f"{base}/docs",
            "health": f"{base}/health",
            "chat": f"{base}/api/chat",
            "mcp": f"{base}/mcp",
        },
    }


@app.get("/health", response_model=HealthResponse, tags=["Info"])
def health():
    return HealthResponse(status="ok", version=VERSION)


# ── Core: Chat ────────────────────────────────────────────────────────────────


def _failure() -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error="Failed to process request").model_dump(),
        status_code=500,
    )


@app.post("/api/chat", tags=["Chat"])
async def chat_endpoint(request: Request):
    """
    Stream an answer about the connected wallet.

    Body: `{"messages": [{"role": "user", "content": "..."}], "walletAddress": "0x..."}`

    Responds with `text/event-stream` records of the form `data: {"content": "..."}`.
    Invalid or missing wallet addresses fall back to general portfolio guidance.
    """
    try:
        req = ChatRequest.model_validate(await request.json())
        events = await chat.start_chat(req.messages, req.wallet_address)
    except UpstreamError as e:
        logger.error("Error in chat route: upstream %s", e.status_code)
        return _failure()
    except Exception:
        logger.exception("Error in chat route")
        return _failure()

    return StreamingResponse(
        events,
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENV", "development") == "development",
    )
