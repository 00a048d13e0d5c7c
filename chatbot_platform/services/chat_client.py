import time
from typing import Any, Optional, Sequence

import httpx

from chatbot_platform.core.config import Settings, settings as default_settings
from chatbot_platform.core.exceptions import (
    ConfigurationError,
    EndpointNotFound,
    RateLimitError,
    RemoteAPIError,
    RemoteAuthError,
    ResponseDecodeError,
    TransportError,
)
from chatbot_platform.schemas.chat_schema import ChatCompletionRequest, ChatMessage
from chatbot_platform.utils.logger import get_logger

logger = get_logger("chatbot_platform.services.chat_client")


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
    return None


def _reply_text(body: Any) -> str:
    """Pull ``choices[0].message.content`` out of a completion body."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ResponseDecodeError() from e
    if not isinstance(content, str):
        raise ResponseDecodeError()
    return content


class ChatClient:
    """
    Stateless caller for the remote chat-completion API.

    One POST per call, no retries. Failures are raised as TransportError
    subclasses (or ResponseDecodeError for an unreadable 2xx body).
    """

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or default_settings
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.config.API_KEY)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.config.API_KEY}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.APP_REFERER,
            "X-Title": self.config.APP_TITLE,
        }

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """Send the full conversation and return the assistant reply text."""
        if not self.configured:
            raise ConfigurationError()

        url = f"{self.config.API_BASE_URL.rstrip('/')}/chat/completions"
        payload = ChatCompletionRequest(model=self.config.CHAT_MODEL, messages=list(messages)).model_dump()

        start_time = time.time()
        logger.info("Requesting completion", extra={"message_count": len(payload["messages"]), "model": self.config.CHAT_MODEL})

        async with httpx.AsyncClient(transport=self.transport, timeout=self.config.HTTP_TIMEOUT_SECONDS) as client:
            try:
                response = await client.post(url, json=payload, headers=self._headers())
            except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
                logger.error("Completion URL is unusable", extra={"url": url, "error": str(e)})
                raise EndpointNotFound() from e
            except httpx.HTTPError as e:
                logger.error("Completion request failed", extra={"error": str(e)})
                raise TransportError() from e

        if not response.is_success:
            self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            logger.error("Completion body is not JSON", extra={"status_code": response.status_code})
            raise ResponseDecodeError() from e

        reply = _reply_text(body)
        logger.info("Completion received", extra={
            "reply_length": len(reply),
            "latency": round(time.time() - start_time, 3),
        })
        return reply

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = {}

        logger.warning("Completion API returned an error", extra={"status_code": status})

        if status == 429:
            raise RateLimitError(status_code=status)
        if status == 401:
            raise RemoteAuthError(status_code=status)
        if status == 404:
            raise EndpointNotFound(status_code=status)
        raise RemoteAPIError(_error_message(body) or f"API Error: {status}", status_code=status)
