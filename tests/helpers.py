"""
Fake proxy used by the test suite.
"""

import asyncio
import json
from typing import Callable, List, Optional

import httpx

from chatstream import AsyncChatClient, Settings

BASE_URL = "http://proxy.test"


def chunk_line(content: Optional[str], finish_reason: Optional[str] = None) -> bytes:
    payload = {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "gpt-3.5-turbo",
        "choices": [
            {"index": 0, "delta": {"content": content}, "finish_reason": finish_reason}
        ],
    }
    return f"data: {json.dumps(payload)}\n\n".encode()


def sse_body(fragments: List[Optional[str]], done: bool = True) -> bytes:
    body = b"".join(chunk_line(fragment) for fragment in fragments)
    if done:
        body += b"data: [DONE]\n\n"
    return body


class FailingStream(httpx.AsyncByteStream):
    """Response body that sends some chunks and then drops the connection."""

    def __init__(self, chunks: List[bytes], error: Optional[Exception] = None) -> None:
        self.chunks = chunks
        self.error = error or httpx.ReadError("connection reset by peer")

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise self.error


class GatedStream(httpx.AsyncByteStream):
    """Response body that pauses after its first chunks until the gate opens."""

    def __init__(self, head: List[bytes], tail: List[bytes], gate: asyncio.Event) -> None:
        self.head = head
        self.tail = tail
        self.gate = gate

    async def __aiter__(self):
        for chunk in self.head:
            yield chunk
        await self.gate.wait()
        for chunk in self.tail:
            yield chunk


class FakeProxy:
    """Records requests and answers /models and /chat/completions."""

    def __init__(
        self,
        fragments: Optional[List[Optional[str]]] = None,
        models: Optional[List[str]] = None,
        completion: Optional[Callable[[httpx.Request], httpx.Response]] = None,
        models_status: int = 200,
    ) -> None:
        self.fragments = fragments if fragments is not None else []
        self.models = models if models is not None else ["gpt-3.5-turbo", "gpt-4"]
        self.completion = completion
        self.models_status = models_status
        self.requests: List[httpx.Request] = []

    @property
    def completion_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/chat/completions"]

    @property
    def model_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/models"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/models":
            if self.models_status >= 400:
                return httpx.Response(
                    self.models_status, json={"error": {"message": "catalog unavailable"}}
                )
            data = [{"id": m, "object": "model", "created": 0, "owned_by": "openai"} for m in self.models]
            return httpx.Response(200, json={"object": "list", "data": data})
        if request.url.path == "/chat/completions":
            if self.completion is not None:
                return self.completion(request)
            return httpx.Response(
                200,
                content=sse_body(self.fragments),
                headers={"content-type": "text/event-stream"},
            )
        return httpx.Response(404, json={"error": {"message": "not found"}})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> AsyncChatClient:
        return AsyncChatClient(base_url=BASE_URL, settings=Settings(), transport=self.transport())


def failing_after(fragments: List[str]) -> Callable[[httpx.Request], httpx.Response]:
    def completion(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            stream=FailingStream([chunk_line(f) for f in fragments]),
            headers={"content-type": "text/event-stream"},
        )

    return completion


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)
