import unittest

from fastapi.testclient import TestClient

from groq_chat.app_config import RuntimeEnv, parse_app_config
from groq_chat.errors import ConfigError
from groq_chat.relay import CompletionRelay
from groq_chat.server import FAILURE_TEXT, create_app, create_app_from_config
from tests.fakes import FakeProvider


def _client(provider: FakeProvider) -> TestClient:
    relay = CompletionRelay(provider, model="m", max_tokens=1024, temperature=0.7)
    return TestClient(create_app(relay))


class ChatEndpointTests(unittest.TestCase):
    def test_streams_plain_text(self) -> None:
        provider = FakeProvider(["Hello", ", ", "world"])
        resp = _client(provider).post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hi"}], "mode": "general"},
        )

        self.assertEqual(200, resp.status_code)
        self.assertTrue(resp.headers["content-type"].startswith("text/plain"))
        self.assertEqual("Hello, world", resp.text)

    def test_empty_history_is_rejected_without_upstream_call(self) -> None:
        provider = FakeProvider()
        resp = _client(provider).post("/api/chat", json={"messages": []})

        self.assertEqual(400, resp.status_code)
        self.assertEqual({"error": "Valid message history is required"}, resp.json())
        self.assertEqual([], provider.calls)

    def test_missing_messages_is_rejected(self) -> None:
        client = _client(FakeProvider())
        for body in ({}, ["not", "an", "object"], {"messages": "hi"}):
            with self.subTest(body=body):
                resp = client.post("/api/chat", json=body)
                self.assertEqual(400, resp.status_code)
                self.assertEqual("Valid message history is required", resp.json()["error"])

    def test_unparseable_body_is_a_server_failure(self) -> None:
        provider = FakeProvider()
        resp = _client(provider).post(
            "/api/chat",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        self.assertEqual(500, resp.status_code)
        self.assertEqual(FAILURE_TEXT, resp.text)
        self.assertEqual([], provider.calls)

    def test_upstream_failure_before_streaming_returns_500(self) -> None:
        provider = FakeProvider(open_error=RuntimeError("invalid api key"))
        resp = _client(provider).post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        self.assertEqual(500, resp.status_code)
        self.assertEqual(FAILURE_TEXT, resp.text)

    def test_failure_mid_stream_truncates_body(self) -> None:
        provider = FakeProvider(["part", "ial", "never"], fail_after=2)
        resp = _client(provider).post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

        self.assertEqual(200, resp.status_code)
        self.assertEqual("partial", resp.text)

    def test_legacy_route_alias(self) -> None:
        resp = _client(FakeProvider(["ok"])).post(
            "/api/groq",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )
        self.assertEqual(200, resp.status_code)
        self.assertEqual("ok", resp.text)

    def test_healthz(self) -> None:
        resp = _client(FakeProvider()).get("/healthz")
        self.assertEqual({"ok": True}, resp.json())


class CreateAppFromConfigTests(unittest.TestCase):
    def test_missing_api_key_is_a_config_error(self) -> None:
        env = RuntimeEnv(provider_api_key="", provider_env_var="GROQ_API_KEY", supabase_url=None, supabase_anon_key=None)
        with self.assertRaises(ConfigError) as ctx:
            create_app_from_config(parse_app_config({}), env)
        self.assertIn("GROQ_API_KEY", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
