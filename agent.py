import logging
from typing import AsyncIterator, Optional, Sequence

import httpx

from config import Settings
from models import ChatMessage

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The completion provider refused or failed the request."""

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"LLM API error: {status_code} {body}")


class CompletionStream:
    """Raw streamed response body; closes the response and its client on exit."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes()

    async def aclose(self) -> None:
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()

    async def __aenter__(self) -> "CompletionStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class CompletionAgent:
    """Streams chat completions from an OpenAI-compatible provider."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.model = settings.llm_model
        self.url = f"{settings.llm_base_url.rstrip('/')}/chat/completions"
        self._transport = transport

        if not settings.llm_api_key:
            logger.warning(
                "No API key configured for AI provider '%s'; completions will fail.",
                settings.ai_provider,
            )
        logger.info("AI Provider: %s | Model: %s", settings.ai_provider, self.model)

    def _build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.llm_api_key}",
            "HTTP-Referer": self.settings.app_url,
            "X-Title": self.settings.app_title,
        }

    def build_payload(
        self, history: Sequence[ChatMessage], system_prompt: str
    ) -> dict:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(m.model_dump() for m in history)
        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.settings.llm_temperature,
            "stream": True,
        }

    async def open_stream(
        self, history: Sequence[ChatMessage], system_prompt: str
    ) -> CompletionStream:
        """Send the completion request and return its body once headers are in."""
        client = httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self.settings.http_timeout_seconds, read=None),
        )
        request = client.build_request(
            "POST",
            self.url,
            headers=self._build_headers(),
            json=self.build_payload(history, system_prompt),
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            logger.error("LLM request failed: %s", e)
            raise UpstreamError(None, str(e)) from e
        except BaseException:
            await client.aclose()
            raise

        logger.info("LLM response status: %s", response.status_code)

        if response.is_success:
            return CompletionStream(client, response)

        try:
            error_text = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError as e:
            error_text = f"<unreadable body: {e}>"
        finally:
            await response.aclose()
            await client.aclose()

        logger.error("LLM error %s: %s", response.status_code, error_text)
        raise UpstreamError(response.status_code, error_text)
