"""
Main client for chatstream.
"""

from typing import Any, Optional

import httpx

from .catalog import ModelCatalog
from .completions import ChatCompletions
from .config import Settings, resolve_base_url
from .transport import AsyncTransport


class AsyncChatClient:
    """
    Async client for an OpenAI-compatible proxy.

    The proxy address is resolved once, at construction: an explicit
    ``base_url`` wins, otherwise it comes from ``settings`` (the local
    development proxy, or the origin the UI is served from).

    Example:
        >>> async with AsyncChatClient(base_url="http://localhost:4000") as client:
        ...     outcome = await client.completions.stream_completion(
        ...         "Hello", "gpt-3.5-turbo", "sk-1234", on_fragment=print
        ...     )

    Attributes:
        completions: Streaming chat completions API
        models: Model catalog
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Proxy address; overrides settings
            settings: Endpoint and timeout settings (default: from environment)
            timeout: Request timeout in seconds; overrides settings
            transport: Custom httpx transport
        """
        self.settings = settings or Settings.from_env()
        self.base_url = base_url or resolve_base_url(self.settings)

        self.transport = AsyncTransport(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else self.settings.timeout,
            transport=transport,
        )
        self.completions = ChatCompletions(self.transport)
        self.models = ModelCatalog(self.transport)

    async def close(self) -> None:
        """Close the client connection."""
        await self.transport.close()

    async def __aenter__(self) -> "AsyncChatClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
