import asyncio
import unittest
from types import SimpleNamespace

from groq_chat.provider import create_provider
from groq_chat.providers.anthropic_provider import AnthropicProvider
from groq_chat.providers.openai_provider import OpenAIProvider


class _FakeChunkStream:
    def __init__(self, chunks: list[object]):
        self._chunks = chunks

    def __aiter__(self):
        self._iter = iter(self._chunks)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class _FakeCompletions:
    def __init__(self, stream=None, error: Exception | None = None):
        self._stream = stream
        self._error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return self._stream


def _chunk(content: str | None, finish_reason: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=content), finish_reason=finish_reason)]
    )


class OpenAIProviderTests(unittest.TestCase):
    def _make_provider(self, completions: _FakeCompletions) -> OpenAIProvider:
        provider = OpenAIProvider.__new__(OpenAIProvider)
        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        return provider

    def test_open_stream_yields_content_deltas(self) -> None:
        chunks = [
            _chunk(None),
            _chunk("Hello"),
            SimpleNamespace(choices=[]),
            _chunk(""),
            _chunk(" world", finish_reason="stop"),
        ]
        completions = _FakeCompletions(stream=_FakeChunkStream(chunks))
        provider = self._make_provider(completions)

        async def run() -> list[str]:
            stream = await provider.open_stream("llama", 1024, 0.7, [{"role": "user", "content": "hi"}])
            return [text async for text in stream]

        self.assertEqual(["Hello", " world"], asyncio.run(run()))
        call = completions.calls[0]
        self.assertEqual("llama", call["model"])
        self.assertEqual(1024, call["max_tokens"])
        self.assertEqual(0.7, call["temperature"])
        self.assertTrue(call["stream"])

    def test_open_stream_raises_when_request_fails(self) -> None:
        provider = self._make_provider(_FakeCompletions(error=RuntimeError("401 Unauthorized")))
        with self.assertRaises(RuntimeError):
            asyncio.run(provider.open_stream("m", 10, 0.1, [{"role": "user", "content": "hi"}]))


class CreateProviderTests(unittest.TestCase):
    def test_groq_and_openai_use_openai_client(self) -> None:
        self.assertIsInstance(create_provider("groq", "k", base_url="https://api.groq.com/openai/v1"), OpenAIProvider)
        self.assertIsInstance(create_provider("openai", "k"), OpenAIProvider)

    def test_anthropic(self) -> None:
        self.assertIsInstance(create_provider("anthropic", "k"), AnthropicProvider)

    def test_unknown_provider(self) -> None:
        with self.assertRaises(ValueError):
            create_provider("nope", "k")


if __name__ == "__main__":
    unittest.main()
