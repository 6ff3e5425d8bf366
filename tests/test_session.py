"""
Tests for the chat session: send flow, failure policy and access control.
"""

import asyncio

import httpx
import pytest

from chatstream import AccessDenied, ChatSession, Role, TurnState, is_access_denied, open_chat
from chatstream.session import ERROR_TURN_TEXT

from helpers import FakeProxy, GatedStream, chunk_line, failing_after, sse_body


def _session(proxy: FakeProxy, **kwargs) -> ChatSession:
    values = {"credential": "sk-1234", "user_id": "user-1", "user_role": "Admin", "model": "gpt-3.5-turbo"}
    values.update(kwargs)
    return ChatSession(proxy.client(), **values)


@pytest.mark.asyncio
async def test_send_builds_transcript():
    proxy = FakeProxy(fragments=["Hi", " there", "!"])
    session = _session(proxy)

    outcome = await session.send("Hello")
    await session.client.close()

    assert outcome.ok
    assert session.transcript.as_messages() == [
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "Hi there!"},
    ]
    assert all(turn.state is TurnState.CLOSED for turn in session.transcript)


@pytest.mark.asyncio
async def test_on_fragment_sees_each_merge():
    proxy = FakeProxy(fragments=["a", "b"])
    seen = []
    session = _session(proxy, on_fragment=lambda turn, text: seen.append((turn.content, text)))

    await session.send("q")
    await session.client.close()

    assert seen == [("a", "a"), ("ab", "b")]


@pytest.mark.asyncio
async def test_partial_reply_is_kept_on_failure():
    proxy = FakeProxy(completion=failing_after(["Par"]))
    notices = []
    session = _session(proxy, notifier=notices.append)

    outcome = await session.send("Tell me a story")
    await session.client.close()

    assert outcome.status == "failed"
    assert session.transcript.as_messages() == [
        {"role": "user", "content": "Tell me a story"},
        {"role": "assistant", "content": "Par"},
    ]
    assert len(notices) == 1
    assert notices[0].startswith("Error occurred while generating model response. Please try again.")


@pytest.mark.asyncio
async def test_failure_before_any_fragment_adds_error_turn():
    proxy = FakeProxy(completion=failing_after([]))
    notices = []
    session = _session(proxy, notifier=notices.append)

    await session.send("Hello")
    await session.client.close()

    last = session.transcript.last_turn
    assert last.role is Role.ASSISTANT
    assert last.content == ERROR_TURN_TEXT
    assert last.state is TurnState.CLOSED
    assert len(session.transcript) == 2
    assert len(notices) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
async def test_blank_prompt_is_ignored(prompt):
    proxy = FakeProxy(fragments=["x"])
    session = _session(proxy)

    assert await session.send(prompt) is None
    await session.client.close()

    assert len(session.transcript) == 0
    assert proxy.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["credential", "user_id", "model"])
async def test_missing_credential_user_or_model_is_ignored(missing):
    proxy = FakeProxy(fragments=["x"])
    session = _session(proxy, **{missing: None})

    assert await session.send("Hello") is None
    await session.client.close()

    assert len(session.transcript) == 0
    assert proxy.requests == []


@pytest.mark.asyncio
async def test_consecutive_sends_make_separate_turns():
    proxy = FakeProxy(fragments=["ok"])
    session = _session(proxy)

    await session.send("one")
    await session.send("two")
    await session.client.close()

    assert [(t.role.value, t.content) for t in session.transcript] == [
        ("user", "one"),
        ("assistant", "ok"),
        ("user", "two"),
        ("assistant", "ok"),
    ]


@pytest.mark.asyncio
async def test_refresh_models_selects_first_when_unset():
    proxy = FakeProxy(models=["gpt-4o", "claude-3"])
    session = _session(proxy, model=None)

    models = await session.refresh_models()
    await session.client.close()

    assert models == ["gpt-4o", "claude-3"]
    assert session.selected_model == "gpt-4o"
    assert proxy.model_requests[0].headers["Authorization"] == "Bearer sk-1234"


@pytest.mark.asyncio
async def test_refresh_models_keeps_selection():
    proxy = FakeProxy(models=["gpt-4o", "claude-3"])
    session = _session(proxy, model="claude-3")

    await session.refresh_models()
    await session.client.close()

    assert session.selected_model == "claude-3"


@pytest.mark.asyncio
async def test_refresh_models_failure_keeps_list():
    proxy = FakeProxy(models_status=500)
    session = _session(proxy, model=None)
    session.models = ["cached"]

    assert await session.refresh_models() == ["cached"]
    await session.client.close()

    assert session.selected_model is None


@pytest.mark.asyncio
async def test_refresh_models_empty_catalog_leaves_state():
    proxy = FakeProxy(models=[])
    session = _session(proxy, model=None)

    assert await session.refresh_models() == []
    await session.client.close()

    assert session.selected_model is None


@pytest.mark.asyncio
async def test_refresh_models_without_credential_skips_fetch():
    proxy = FakeProxy()
    session = _session(proxy, credential=None)

    assert await session.refresh_models() == []
    await session.client.close()

    assert proxy.requests == []


def test_is_access_denied():
    assert is_access_denied("Admin Viewer")
    assert not is_access_denied("Admin")
    assert not is_access_denied(None)
    assert is_access_denied("Guest", restricted_role="Guest")


@pytest.mark.asyncio
async def test_restricted_role_gets_access_denied():
    proxy = FakeProxy(fragments=["x"])
    client = proxy.client()

    chat = open_chat(client, credential="sk-1234", user_id="user-1", user_role="Admin Viewer")
    await client.close()

    assert isinstance(chat, AccessDenied)
    assert not hasattr(chat, "send")
    assert not hasattr(chat, "refresh_models")
    assert chat.render() == "Access Denied\nAsk your proxy admin for access to test models"
    assert proxy.requests == []


@pytest.mark.asyncio
async def test_directly_built_restricted_session_makes_no_requests():
    proxy = FakeProxy(fragments=["x"])
    session = _session(proxy, user_role="Admin Viewer", model="m")

    assert session.access_denied
    assert not session.can_send("hi")
    assert await session.refresh_models() == []
    assert await session.send("hi") is None
    await session.client.close()

    assert len(session.transcript) == 0
    assert proxy.requests == []


@pytest.mark.asyncio
async def test_open_chat_returns_session():
    proxy = FakeProxy()
    client = proxy.client()

    chat = open_chat(client, credential="sk-1234", user_id="user-1", user_role="Admin", model="gpt-4")
    await client.close()

    assert isinstance(chat, ChatSession)
    assert chat.selected_model == "gpt-4"


@pytest.mark.asyncio
async def test_new_send_supersedes_in_flight_stream():
    gate = asyncio.Event()
    calls = []

    def completion(request):
        calls.append(request)
        if len(calls) == 1:
            stream = GatedStream([chunk_line("A1")], [chunk_line("A2"), b"data: [DONE]\n\n"], gate)
            return httpx.Response(200, stream=stream)
        return httpx.Response(200, content=sse_body(["B"]))

    proxy = FakeProxy(completion=completion)
    session = _session(proxy)

    first = asyncio.create_task(session.send("one"))
    while session.transcript.open_turn is None:
        await asyncio.sleep(0)

    second_outcome = await session.send("two")
    gate.set()
    first_outcome = await first
    await session.client.close()

    assert second_outcome.ok
    assert first_outcome.status == "cancelled"
    assert first_outcome.text == "A1"
    assert session.transcript.as_messages() == [
        {"role": "user", "content": "one"},
        {"role": "assistant", "content": "A1"},
        {"role": "user", "content": "two"},
        {"role": "assistant", "content": "B"},
    ]
    assert session.transcript.open_turn is None
