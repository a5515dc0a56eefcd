import asyncio
import unittest
from types import SimpleNamespace

from groq_chat.providers.anthropic_provider import AnthropicProvider, _split_system


class _FakeEventStream:
    def __init__(self, events: list[object], fail_after: int | None = None):
        self._events = events
        self._fail_after = fail_after

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._fail_after is not None and self._index >= self._fail_after:
            raise ConnectionError("connection reset")
        if self._index >= len(self._events):
            raise StopAsyncIteration
        event = self._events[self._index]
        self._index += 1
        return event


class _FakeMessages:
    def __init__(self, stream: _FakeEventStream):
        self._stream = stream
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return self._stream


def _text(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text=text))


async def _collect(provider: AnthropicProvider, messages: list[dict]) -> list[str]:
    stream = await provider.open_stream("m", 100, 0.7, messages)
    return [text async for text in stream]


class AnthropicProviderTests(unittest.TestCase):
    def _make_provider(self, stream: _FakeEventStream) -> AnthropicProvider:
        provider = AnthropicProvider.__new__(AnthropicProvider)
        provider._client = SimpleNamespace(messages=_FakeMessages(stream))
        return provider

    def test_split_system_moves_system_text_out_of_messages(self) -> None:
        system, chat = _split_system(
            [
                {"role": "system", "content": "be nice"},
                {"role": "user", "content": "hi"},
            ]
        )
        self.assertEqual("be nice", system)
        self.assertEqual([{"role": "user", "content": "hi"}], chat)

    def test_open_stream_yields_text_deltas_only(self) -> None:
        events = [
            SimpleNamespace(type="message_start"),
            _text("Hel"),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="input_json_delta")),
            _text("lo"),
            SimpleNamespace(type="message_delta", delta=SimpleNamespace(stop_reason="end_turn")),
        ]
        provider = self._make_provider(_FakeEventStream(events))

        texts = asyncio.run(
            _collect(provider, [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}])
        )

        self.assertEqual(["Hel", "lo"], texts)
        call = provider._client.messages.calls[0]
        self.assertEqual("sys", call["system"])
        self.assertTrue(call["stream"])
        self.assertEqual([{"role": "user", "content": "hi"}], call["messages"])

    def test_error_mid_stream_propagates_to_consumer(self) -> None:
        provider = self._make_provider(_FakeEventStream([_text("a"), _text("b")], fail_after=1))
        with self.assertRaises(ConnectionError):
            asyncio.run(_collect(provider, [{"role": "user", "content": "hi"}]))


if __name__ == "__main__":
    unittest.main()
