import logging

import groq
from groq import AsyncGroq

from vibecheck.config import settings
from vibecheck.errors import MalformedResponse, ServiceError

logger = logging.getLogger("vibecheck.groq")


class GroqClient:
    """Async wrapper around the official Groq SDK.

    Usage::

        client = GroqClient()                     # uses default_model from env
        text = await client.chat(messages)        # plain completion

    SDK failures are translated at this boundary: transport errors and
    non-2xx statuses raise :class:`ServiceError`, a reply without a string
    ``choices[0].message.content`` raises :class:`MalformedResponse`.
    """

    def __init__(self, model: str | None = None, api_key: str | None = None) -> None:
        self._model = model or settings.default_model
        self._client = AsyncGroq(api_key=api_key or settings.groq_api_key)

    @property
    def default_model(self) -> str:
        return self._model

    async def chat(
        self,
        messages: list[dict],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Plain-text chat completion. Returns the content string."""
        kwargs: dict = {
            "model": model or self._model,
            "messages": messages,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            resp = await self._client.chat.completions.create(**kwargs)
        except groq.APIStatusError as exc:
            raise ServiceError(
                f"chat completion failed with status {exc.status_code}"
            ) from exc
        except groq.APIError as exc:
            raise ServiceError(f"chat completion failed: {exc}") from exc

        if not resp.choices:
            raise MalformedResponse("chat completion returned no choices")
        content = resp.choices[0].message.content
        if not isinstance(content, str):
            raise MalformedResponse("chat completion returned no text content")
        logger.debug("event=groq_reply model=%s chars=%d", kwargs["model"], len(content))
        return content

    async def aclose(self) -> None:
        await self._client.close()
