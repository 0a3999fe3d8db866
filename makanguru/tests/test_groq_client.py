from unittest.mock import MagicMock, patch

import groq
import httpx
import pytest

from makanguru.llm.config import ProviderConfig
from makanguru.llm.groq_client import GroqClient
from makanguru.llm.results import Fatal, MalformedResponse, RateLimited, ServerError, Success, Transient

CONFIG = ProviderConfig(
    name="groq",
    api_key="test-key",
    default_model="llama-3.3-70b-versatile",
    timeout=30.0,
)
URL = "https://api.groq.com/openai/v1/chat/completions"


def _mock_groq_response(content) -> MagicMock:
    response = MagicMock()
    response.model_dump.return_value = {
        "id": "chatcmpl-123",
        "model": "llama-3.3-70b-versatile",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 200, "completion_tokens": 50, "total_tokens": 250},
    }
    return response


def _status_error(cls, status: int):
    request = httpx.Request("POST", URL)
    response = httpx.Response(status, request=request, json={"error": {"message": "nope"}})
    return cls(f"Error code: {status}", response=response, body=None)


@patch("makanguru.llm.groq_client.Groq")
def test_call_success(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        "Makan at Restoran Oversea, boleh tahan!"
    )

    result = GroqClient(CONFIG).call("prompt text", "llama-3.3-70b-versatile", 12.0, persona="tauke")

    assert isinstance(result, Success)
    assert result.payload["choices"][0]["message"]["content"].startswith("Makan at")
    mock_groq_cls.assert_called_once_with(api_key="test-key", timeout=12.0, max_retries=0)

    kwargs = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "llama-3.3-70b-versatile"
    assert kwargs["messages"][0]["role"] == "system"
    assert "persona of tauke" in kwargs["messages"][0]["content"]
    assert kwargs["messages"][1] == {"role": "user", "content": "prompt text"}
    assert kwargs["temperature"] == CONFIG.temperature
    assert kwargs["max_tokens"] == CONFIG.max_tokens


@patch("makanguru.llm.groq_client.Groq")
def test_call_closes_sdk_client(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("Dewakan, darling.")

    GroqClient(CONFIG).call("p", "m", 1.0)

    mock_groq_cls.return_value.__enter__.assert_called_once()
    mock_groq_cls.return_value.__exit__.assert_called_once()


@patch("makanguru.llm.groq_client.Groq")
def test_call_closes_sdk_client_on_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = _status_error(groq.RateLimitError, 429)

    assert isinstance(GroqClient(CONFIG).call("p", "m", 1.0), RateLimited)
    mock_groq_cls.return_value.__exit__.assert_called_once()


@patch("makanguru.llm.groq_client.Groq")
def test_call_timeout_is_transient(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = groq.APITimeoutError(
        request=httpx.Request("POST", URL)
    )

    result = GroqClient(CONFIG).call("p", "m", 1.0)

    assert result == Transient("timeout")


@patch("makanguru.llm.groq_client.Groq")
def test_call_connection_error_is_transient(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = groq.APIConnectionError(
        request=httpx.Request("POST", URL)
    )

    result = GroqClient(CONFIG).call("p", "m", 1.0)

    assert isinstance(result, Transient)
    assert result.cause.startswith("APIConnectionError")


@patch("makanguru.llm.groq_client.Groq")
def test_call_429_is_rate_limited(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = _status_error(groq.RateLimitError, 429)

    assert isinstance(GroqClient(CONFIG).call("p", "m", 1.0), RateLimited)


@patch("makanguru.llm.groq_client.Groq")
def test_call_5xx_is_server_error(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = _status_error(
        groq.InternalServerError, 503
    )

    result = GroqClient(CONFIG).call("p", "m", 1.0)

    assert isinstance(result, ServerError)
    assert result.status == 503


@pytest.mark.parametrize("cls,status", [
    (groq.AuthenticationError, 401),
    (groq.PermissionDeniedError, 403),
    (groq.BadRequestError, 400),
])
@patch("makanguru.llm.groq_client.Groq")
def test_call_other_4xx_is_fatal(mock_groq_cls, cls, status):
    mock_groq_cls.return_value.chat.completions.create.side_effect = _status_error(cls, status)

    result = GroqClient(CONFIG).call("p", "m", 1.0)

    assert isinstance(result, Fatal)
    assert result.status == status


@pytest.mark.parametrize("content", [None, "", "   \n"])
@patch("makanguru.llm.groq_client.Groq")
def test_call_missing_text_is_malformed(mock_groq_cls, content):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(content)

    assert isinstance(GroqClient(CONFIG).call("p", "m", 1.0), MalformedResponse)


@patch("makanguru.llm.groq_client.Groq")
def test_call_without_key_is_fatal(mock_groq_cls):
    client = GroqClient(ProviderConfig(name="groq", api_key=""))

    result = client.call("p", "m", 1.0)

    assert isinstance(result, Fatal)
    assert result.status is None
    mock_groq_cls.assert_not_called()


@patch("makanguru.llm.groq_client.Groq")
def test_list_models(mock_groq_cls):
    model = MagicMock()
    model.model_dump.return_value = {"id": "llama-3.1-8b-instant", "owned_by": "Meta"}
    mock_groq_cls.return_value.models.list.return_value = MagicMock(data=[model])

    assert GroqClient(CONFIG).list_models() == [{"id": "llama-3.1-8b-instant", "owned_by": "Meta"}]


@patch("makanguru.llm.groq_client.Groq")
def test_health_check_handles_api_error(mock_groq_cls):
    mock_groq_cls.return_value.models.list.side_effect = groq.APIConnectionError(
        request=httpx.Request("GET", URL)
    )

    assert GroqClient(CONFIG).health_check() is False


def test_estimate_cost():
    assert GroqClient.estimate_cost(1_000_000, 1_000_000, "llama-3.1-8b-instant") == pytest.approx(0.13)
    assert GroqClient.estimate_cost(1_000_000, 0, "unknown-model") == pytest.approx(0.10)


@patch("makanguru.llm.groq_client.Groq")
def test_list_models_and_health_check_close_sdk_client(mock_groq_cls):
    mock_groq_cls.return_value.models.list.return_value = MagicMock(data=[])

    GroqClient(CONFIG).list_models()
    assert GroqClient(CONFIG).health_check() is True

    assert mock_groq_cls.return_value.__exit__.call_count == 2
