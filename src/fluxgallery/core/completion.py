"""Completion service client used for prompt enhancement.

The enhancer only needs one capability from a large language model: given a
model name, an ordered list of role-tagged messages, a temperature and an
output limit, return free text.  :class:`CompletionClient` describes that
capability so that tests (and alternative providers) can stand in for the
real service.

:class:`OpenAICompletionClient` talks to the OpenAI Chat Completions API (or
any OpenAI-compatible gateway via ``base_url``).  The underlying
``AsyncOpenAI`` client is built lazily on the first request: a missing API
key then surfaces as a request failure, which the enhancer converts into a
fallback prompt, instead of preventing the application from starting.
"""

from __future__ import annotations

import logging
from typing import Protocol

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Anything that can turn chat messages into completion text."""

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str: ...


class OpenAICompletionClient:
    """OpenAI Chat Completions implementation of :class:`CompletionClient`.

    Args:
        api_key: API key.  ``None`` lets the OpenAI SDK read ``OPENAI_API_KEY``.
        base_url: Optional OpenAI-compatible endpoint.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Request a chat completion and return the first choice's text.

        Returns:
            The completion text, or ``""`` when the service returned no
            content.

        Raises:
            openai.OpenAIError: On authentication, network, or API errors.
            IndexError: If the response carries no choices.
        """
        response = await self._get_client().chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        content = response.choices[0].message.content
        logger.debug(f"Completion received ({len(content or '')} chars) from {model}")
        return content or ""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
