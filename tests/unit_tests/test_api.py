"""
API endpoint tests for the FastAPI application.

Exercises the chat completions and models endpoints end to end through
TestClient, with the Cloudflare backend mocked by respx.
"""

import asyncio
import json

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

import gateway.main
from gateway.dependencies import ServiceContainer
from gateway.main import create_app
from gateway.openai_protocol import SSE_DONE
from tests.fixtures import create_backend_payload
from tests.utils.gateway_helpers import (
    BACKEND_URL,
    TEST_MODEL,
    StreamingCollector,
    make_settings,
)


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test__health_endpoint__returns_healthy_status(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["model"] == TEST_MODEL
        assert "timestamp" in data


class TestModelsEndpoint:
    """Test models listing endpoint."""

    def test__models_endpoint__returns_configured_model(self, client: TestClient) -> None:
        response = client.get("/v1/models")

        assert response.status_code == 200
        data = response.json()
        assert data["object"] == "list"
        assert len(data["data"]) == 1
        model = data["data"][0]
        assert model["id"] == TEST_MODEL
        assert model["object"] == "model"
        assert model["owned_by"] == "openai"
        assert isinstance(model["created"], int)

    def test__models_endpoint__rejects_post(self, client: TestClient) -> None:
        response = client.post("/v1/models")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "method_not_allowed"

    def test__models_endpoint__reflects_model_setting(self, make_client) -> None:
        client = make_client(model="@cf/meta/llama-3.1-8b-instruct")
        assert client.get("/v1/models").json()["data"][0]["id"] == "@cf/meta/llama-3.1-8b-instruct"


class TestChatCompletionsEndpoint:
    """Test chat completions endpoint."""

    @respx.mock
    def test__non_streaming__answer_only(self, client: TestClient) -> None:
        respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(200, json=create_backend_payload(answer="hello")),
        )

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "hi"}], "stream": False},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        data = response.json()
        assert data["object"] == "chat.completion"
        assert len(data["choices"]) == 1
        assert data["choices"][0]["message"] == {"role": "assistant", "content": "hello"}
        assert data["choices"][0]["finish_reason"] == "stop"
        assert data["usage"] == {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17}

    @respx.mock
    def test__non_streaming__reasoning_wrapped_without_html_escaping(
            self, client: TestClient,
        ) -> None:
        respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(
                200,
                json=create_backend_payload(answer="The answer is 4.", reasoning="2 + 2 = 4"),
            ),
        )

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "2+2?"}]},
        )

        assert response.status_code == 200
        assert "<think>2 + 2 = 4</think>" in response.text
        assert "\\u003c" not in response.text
        content = response.json()["choices"][0]["message"]["content"]
        assert content == "<think>2 + 2 = 4</think>\nThe answer is 4."

    @respx.mock
    def test__request__forwarded_with_configured_model(self, client: TestClient) -> None:
        route = respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(200, json=create_backend_payload()),
        )
        messages = [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": [{"type": "text", "text": "hi"}]},
        ]

        client.post(
            "/v1/chat/completions",
            json={"model": "gpt-4o", "messages": messages, "temperature": 0.2},
        )

        sent = json.loads(route.calls.last.request.content)
        assert sent == {"model": TEST_MODEL, "input": messages, "temperature": 0.2}

    @respx.mock
    def test__streaming__ok_emits_start_content_end_done(self, client: TestClient) -> None:
        respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(200, json=create_backend_payload(answer="ok")),
        )

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "hi"}], "stream": True},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/event-stream; charset=utf-8"
        assert response.headers["cache-control"] == "no-cache"
        assert response.text.endswith(SSE_DONE)

        collector = StreamingCollector()
        collector.process_text(response.text)
        assert collector.done
        assert len(collector.chunks) == 4

        start, first, second, end = collector.chunks
        assert start["choices"][0]["delta"] == {"role": "assistant"}
        assert first["choices"][0]["delta"] == {"content": "o"}
        assert second["choices"][0]["delta"] == {"content": "k"}
        assert end["choices"][0]["finish_reason"] == "stop"
        assert end["usage"]["total_tokens"] == 17
        assert all(chunk["object"] == "chat.completion.chunk" for chunk in collector.chunks)

    @respx.mock
    def test__streaming__multibyte_reasoning_reassembles(self, client: TestClient) -> None:
        respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(
                200,
                json=create_backend_payload(answer="答案是 4 🎉", reasoning="二加二"),
            ),
        )

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "2+2?"}], "stream": True},
        )

        collector = StreamingCollector()
        collector.process_text(response.text)
        assert collector.content == "<think>二加二</think>\n答案是 4 🎉"

    @respx.mock
    def test__backend_error__500_with_backend_text(self, client: TestClient) -> None:
        respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(429, text='{"error":"rate limited"}'),
        )

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        error = response.json()["error"]
        assert "rate limited" in error["message"]
        assert error["type"] == "backend_error"
        assert error["code"] == "backend_status_429"

    @respx.mock
    def test__backend_error__raw_body_logged(
            self, client: TestClient, caplog: pytest.LogCaptureFixture,
        ) -> None:
        respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(503, text='{"error":"rate limited"}'),
        )

        with caplog.at_level("ERROR", logger="gateway.main"):
            client.post(
                "/v1/chat/completions",
                json={"messages": [{"role": "user", "content": "hi"}]},
            )

        assert any('{"error":"rate limited"}' in record.getMessage() for record in caplog.records)

    @respx.mock
    def test__backend_unreachable__500(self, client: TestClient) -> None:
        respx.post(BACKEND_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "hi"}], "stream": True},
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "backend_unreachable"

    @respx.mock
    def test__backend_garbage__500_decode_error(self, client: TestClient) -> None:
        respx.post(BACKEND_URL).mock(return_value=httpx.Response(200, text="not json"))

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "backend_decode_failed"

    @respx.mock
    def test__successful_call__raw_backend_body_logged(
            self, client: TestClient, caplog: pytest.LogCaptureFixture,
        ) -> None:
        payload = create_backend_payload(answer="hello")
        respx.post(BACKEND_URL).mock(return_value=httpx.Response(200, json=payload))

        with caplog.at_level("INFO", logger="gateway.main"):
            client.post(
                "/v1/chat/completions",
                json={"messages": [{"role": "user", "content": "hi"}]},
            )

        messages = [record.getMessage() for record in caplog.records]
        assert any("Client request JSON" in message for message in messages)
        assert any(
            message.startswith("Backend raw response") and payload["id"] in message
            for message in messages
        )

    @pytest.mark.parametrize("body", [
        "not json",
        "",
        "[1, 2, 3]",
        '{"messages": "hi"}',
        '{"messages": [{"content": "missing role"}]}',
    ])
    def test__malformed_body__400(self, client: TestClient, body: str) -> None:
        response = client.post(
            "/v1/chat/completions",
            content=body,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_request_error"

    def test__get_on_chat_completions__405(self, client: TestClient) -> None:
        response = client.get("/v1/chat/completions")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "method_not_allowed"

    @pytest.mark.parametrize("content", [5, True, None])
    @respx.mock
    def test__non_string_content__forwarded_unchanged(
            self, client: TestClient, content: object,
        ) -> None:
        route = respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(200, json=create_backend_payload()),
        )

        response = client.post(
            "/v1/chat/completions",
            json={"messages": [{"role": "user", "content": content}]},
        )

        assert response.status_code == 200
        sent = json.loads(route.calls.last.request.content)
        assert sent["input"] == [{"role": "user", "content": content}]

    @respx.mock
    def test__null_messages__forwarded_as_empty_input(self, client: TestClient) -> None:
        route = respx.post(BACKEND_URL).mock(
            return_value=httpx.Response(200, json=create_backend_payload()),
        )

        response = client.post("/v1/chat/completions", json={"messages": None})

        assert response.status_code == 200
        assert json.loads(route.calls.last.request.content)["input"] == []


class TestClientDisconnect:
    """Test that a client disconnect abandons the in-flight backend call."""

    @pytest.mark.asyncio
    async def test__disconnect_during_backend_call__cancels_call(self) -> None:
        backend_started = asyncio.Event()
        backend_cancelled = asyncio.Event()

        async def slow_backend(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
            backend_started.set()
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                backend_cancelled.set()
                raise
            return httpx.Response(200, json=create_backend_payload())

        body = json.dumps({"messages": [{"role": "user", "content": "hi"}]}).encode()
        pending = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive() -> dict:
            if pending:
                return pending.pop(0)
            # Client hangs up once the backend call is in flight
            await backend_started.wait()
            return {"type": "http.disconnect"}

        sent: list[dict] = []

        async def send(message: dict) -> None:
            sent.append(message)

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "POST",
            "scheme": "http",
            "path": "/v1/chat/completions",
            "raw_path": b"/v1/chat/completions",
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"testserver"), (b"content-type", b"application/json")],
            "client": ("testclient", 50000),
            "server": ("testserver", 80),
        }

        app = create_app(make_settings())
        async with ServiceContainer(app.state.settings) as services:
            await services.http_client.aclose()
            services.http_client = httpx.AsyncClient(transport=httpx.MockTransport(slow_backend))
            app.state.services = services
            await asyncio.wait_for(app(scope, receive, send), timeout=2)

        assert backend_started.is_set()
        assert backend_cancelled.is_set()
        assert sent[0]["status"] == 499
        assert not any(
            message.get("body", b"").startswith(b'{"id"') for message in sent
        )


class TestAppFactory:
    """Test application construction."""

    def test__import__does_not_build_an_app(self) -> None:
        assert not hasattr(gateway.main, "app")

    def test__create_app__without_settings_reads_environment(
            self, monkeypatch: pytest.MonkeyPatch,
        ) -> None:
        monkeypatch.setenv("CF_MODEL", "@cf/meta/llama-3.1-8b-instruct")
        app = create_app()
        assert app.state.settings.model == "@cf/meta/llama-3.1-8b-instruct"
