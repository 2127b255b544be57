"""Tests for caller-owned chat history."""

from __future__ import annotations

import asyncio

import pytest

from multillm.conversation import ChatHistory
from multillm.errors import InvalidArgumentError, ProviderError
from multillm.invoker import InvocationParams, ModelInvoker
from multillm.models.base import BaseGatewayClient, Completion, TokenUsage


class RecordingClient(BaseGatewayClient):
    """Replies with the number of messages it was sent."""

    def __init__(self, fail: bool = False) -> None:
        super().__init__(provider="ionet")
        self.fail = fail
        self.seen: list[list[dict[str, str]]] = []

    async def complete(self, *, model_id, messages, max_tokens, temperature, timeout_seconds, streaming=False, cancel_token=None):
        self.seen.append(list(messages))
        if self.fail:
            raise ProviderError("HTTP 503: Service Unavailable - later", status_code=503)
        return Completion(text=f"reply #{len(messages)}", model_id=model_id, usage=TokenUsage(1, 1, 2))


def test_history_basics() -> None:
    history = ChatHistory()
    history.add_system("You are terse.")
    history.add_user("Hi")
    assert len(history) == 2
    assert history.as_messages()[0] == {"role": "system", "content": "You are terse."}
    assert [m.role for m in history] == ["system", "user"]
    history.clear()
    assert len(history) == 0


def test_unknown_role_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        ChatHistory().add("tool", "x")


def test_chat_sends_full_history_and_records_reply() -> None:
    client = RecordingClient()
    invoker = ModelInvoker({"ionet": client})
    history = ChatHistory()
    history.add_system("Be brief.")

    params = InvocationParams(streaming=False)
    first = asyncio.run(invoker.chat("m1", history, "Hello", params))
    second = asyncio.run(invoker.chat("m1", history, "And again", params))

    assert first.response_text == "reply #2"
    assert second.response_text == "reply #4"
    assert client.seen[1][-1] == {"role": "user", "content": "And again"}
    assert [m.role for m in history] == ["system", "user", "assistant", "user", "assistant"]


def test_failed_chat_rolls_back_user_turn() -> None:
    invoker = ModelInvoker({"ionet": RecordingClient(fail=True)})
    history = ChatHistory()
    history.add_user("earlier")
    history.add_assistant("answer")

    result = asyncio.run(invoker.chat("m1", history, "new question"))

    assert not result.success
    assert len(history) == 2
    assert history.as_messages()[-1]["content"] == "answer"


def test_separate_histories_do_not_interfere() -> None:
    invoker = ModelInvoker({"ionet": RecordingClient()})
    a, b = ChatHistory(), ChatHistory()

    async def _both():
        await asyncio.gather(invoker.chat("m1", a, "from a"), invoker.chat("m2", b, "from b"))

    asyncio.run(_both())
    assert a.as_messages()[0]["content"] == "from a"
    assert b.as_messages()[0]["content"] == "from b"
    assert len(a) == len(b) == 2
