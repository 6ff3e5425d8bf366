"""
Transport layer for chatstream.

Handles HTTP communication with the OpenAI-compatible proxy, including
Server-Sent-Events streaming.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional, Tuple, Union

import httpx

from .config import DEFAULT_TIMEOUT
from .exceptions import (
    APIError,
    ProxyConnectionError,
    ProxyTimeoutError,
    StreamDecodeError,
    raise_for_status,
)

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"
STREAM_DONE = object()


def build_headers(api_key: Optional[str]) -> Dict[str, str]:
    """Build common HTTP headers."""
    headers = {}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def _error_details(response: httpx.Response) -> Tuple[str, Optional[Dict[str, Any]]]:
    """Extract the error message and decoded payload of a failed response."""
    try:
        error_data = response.json()
    except ValueError:
        return response.text, None
    if not isinstance(error_data, dict):
        return response.text, None
    error = error_data.get("error")
    if isinstance(error, dict):
        return error.get("message", response.text), error_data
    if isinstance(error, str):
        return error, error_data
    return response.text, error_data


def raise_for_error_event(event: Dict[str, Any]) -> None:
    """Raise if a stream event carries an ``error`` object instead of a chunk."""
    error = event.get("error")
    if error is None:
        return
    if not isinstance(error, dict):
        raise APIError(str(error), response=event)

    message = error.get("message") or "Error event in stream"
    code = error.get("code")
    if isinstance(code, str) and code.isdigit():
        code = int(code)
    if isinstance(code, int) and code >= 400:
        raise_for_status(code, message, event)
    raise APIError(message, response=event)


def parse_sse_line(line: str) -> Union[Dict[str, Any], object, None]:
    """
    Decode one SSE line.

    Returns the JSON payload of a ``data:`` line, ``STREAM_DONE`` for the
    ``[DONE]`` marker and ``None`` for blank lines, comments and other fields.
    """
    line = line.strip()
    if not line or not line.startswith(SSE_DATA_PREFIX):
        return None

    data = line[len(SSE_DATA_PREFIX):].strip()
    if data == SSE_DONE:
        return STREAM_DONE
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise StreamDecodeError(f"Malformed SSE data line: {data!r}") from e
    if not isinstance(payload, dict):
        raise StreamDecodeError(f"Unexpected SSE payload: {data!r}")
    return payload


class AsyncTransport:
    """Async transport for proxy communication."""

    DEFAULT_TIMEOUT = DEFAULT_TIMEOUT

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout

        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers=build_headers(api_key),
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        api_key: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Make an async request to the proxy."""
        try:
            response = await self.client.request(
                method,
                path,
                json=json_data,
                params=params,
                headers=build_headers(api_key),
                **kwargs,
            )
        except httpx.TimeoutException as e:
            raise ProxyTimeoutError(f"Request timed out: {e}") from e
        except httpx.ConnectError as e:
            raise ProxyConnectionError(f"Failed to connect: {e}") from e
        except httpx.HTTPError as e:
            raise ProxyConnectionError(f"HTTP error: {e}") from e

        if response.status_code >= 400:
            raise_for_status(response.status_code, *_error_details(response))
        if response.status_code == 204:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise StreamDecodeError(f"Invalid JSON response from {path}") from e

    async def _stream(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        api_key: Optional[str] = None,
        **kwargs: Any,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Stream SSE events from the proxy."""
        try:
            async with self.client.stream(
                method,
                path,
                json=json_data,
                headers=build_headers(api_key),
                **kwargs,
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise_for_status(response.status_code, *_error_details(response))

                async for line in response.aiter_lines():
                    event = parse_sse_line(line)
                    if event is None:
                        continue
                    if event is STREAM_DONE:
                        logger.debug(f"Stream from {path} signalled [DONE]")
                        break
                    yield event

        except httpx.TimeoutException as e:
            raise ProxyTimeoutError(f"Stream timed out: {e}") from e
        except httpx.ConnectError as e:
            raise ProxyConnectionError(f"Failed to connect: {e}") from e
        except httpx.HTTPError as e:
            raise ProxyConnectionError(f"HTTP error: {e}") from e

    async def get(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        """Async GET request."""
        return await self._request("GET", path, **kwargs)

    async def post(
        self, path: str, json_data: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> Dict[str, Any]:
        """Async POST request."""
        return await self._request("POST", path, json_data=json_data, **kwargs)

    def stream(
        self, path: str, json_data: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> AsyncIterator[Dict[str, Any]]:
        """Async streaming POST request."""
        return self._stream("POST", path, json_data=json_data, **kwargs)

    async def close(self) -> None:
        """Close the async client."""
        await self.client.aclose()

    async def __aenter__(self) -> "AsyncTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
