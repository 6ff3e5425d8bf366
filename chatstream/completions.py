"""
Streaming chat completions for chatstream.

Opens one streaming completion request against the proxy and surfaces the
reply as a live sequence of text fragments.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from pydantic import SecretStr, ValidationError

from .exceptions import ChatStreamError, StreamDecodeError, StreamFailure
from .transport import AsyncTransport, raise_for_error_event
from .types import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatMessage,
    Role,
    StreamOutcome,
    StreamSession,
)

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/chat/completions"

FragmentCallback = Callable[[str], None]


class CancellationToken:
    """Lets a host abandon an in-flight stream."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ChatCompletions:
    """
    Streaming chat completions API.

    Each stream is one POST to ``/chat/completions`` carrying a single user
    message with ``stream`` set. Every call opens a fresh connection; a
    fragment sequence cannot be restarted.
    """

    def __init__(self, transport: AsyncTransport) -> None:
        self.transport = transport

    def open_session(
        self,
        prompt: str,
        model: str,
        credential: str,
        session_id: Optional[str] = None,
    ) -> StreamSession:
        """Create the bookkeeping for one request."""
        values = {"model": model, "credential": SecretStr(credential), "prompt": prompt}
        if session_id is not None:
            values["session_id"] = session_id
        return StreamSession(**values)

    async def _iter_chunks(self, session: StreamSession) -> AsyncIterator[ChatCompletionChunk]:
        request = ChatCompletionRequest(
            model=session.model,
            messages=[ChatMessage(role=Role.USER, content=session.prompt)],
            stream=True,
        )
        events = self.transport.stream(
            CHAT_COMPLETIONS_PATH,
            json_data=request.model_dump(mode="json"),
            api_key=session.credential.get_secret_value(),
        )
        try:
            async for chunk_data in events:
                raise_for_error_event(chunk_data)
                try:
                    chunk = ChatCompletionChunk(**chunk_data)
                except ValidationError as e:
                    raise StreamDecodeError(f"Invalid completion chunk: {e}") from e
                yield chunk
        finally:
            await events.aclose()

    async def iter_fragments(
        self,
        session: StreamSession,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[str]:
        """
        Yield the non-empty text deltas of a stream in wire order.

        Args:
            session: Session created by open_session
            cancel_token: Checked before each fragment; once cancelled the
                connection is closed and the sequence ends

        Raises:
            StreamFailure: Transport, status or decoding failure at any point
        """
        chunks = self._iter_chunks(session)
        try:
            async for chunk in chunks:
                if cancel_token is not None and cancel_token.cancelled:
                    logger.debug(f"Stream session {session.session_id} cancelled")
                    return
                text = chunk.text
                if not text:
                    continue
                session.record(text)
                yield text
        except ChatStreamError as e:
            raise StreamFailure(e) from e
        finally:
            await chunks.aclose()

    async def stream_completion(
        self,
        prompt: str,
        model: str,
        credential: str,
        on_fragment: FragmentCallback,
        cancel_token: Optional[CancellationToken] = None,
        session_id: Optional[str] = None,
    ) -> StreamOutcome:
        """
        Stream a completion into a callback.

        ``on_fragment`` is called synchronously for every fragment, in
        arrival order, and control goes back to the event loop after each
        one. Failures never escape: they end the stream with a ``failed``
        outcome and the fragments delivered so far stay delivered.

        Args:
            prompt: User message text
            model: Model ID to use
            credential: Bearer credential for the proxy
            on_fragment: Receives each text fragment
            cancel_token: Optional token to abandon the stream
            session_id: Tag for the stream session (generated if omitted)

        Returns:
            StreamOutcome
        """
        session = self.open_session(prompt, model, credential, session_id=session_id)
        logger.debug(f"Starting stream session {session.session_id} with model {model}")

        try:
            async for fragment in self.iter_fragments(session, cancel_token):
                on_fragment(fragment)
                await asyncio.sleep(0)
        except StreamFailure as e:
            logger.error(f"Stream session {session.session_id} failed: {e}")
            return StreamOutcome(
                session_id=session.session_id,
                status="failed",
                text=session.received,
                fragment_count=session.fragment_count,
                error=e,
            )

        status = "cancelled" if cancel_token is not None and cancel_token.cancelled else "completed"
        logger.debug(
            f"Stream session {session.session_id} {status} after {session.fragment_count} fragments"
        )
        return StreamOutcome(
            session_id=session.session_id,
            status=status,
            text=session.received,
            fragment_count=session.fragment_count,
        )
