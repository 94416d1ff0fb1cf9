from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.ollama_backend import OllamaBackend


@pytest.mark.anyio
async def test_list_models_returns_model_names(mock_ollama_client):
    backend = OllamaBackend(client=mock_ollama_client)
    assert await backend.list_models() == ["llama3.2:3b", "mistral:7b"]


@pytest.mark.anyio
async def test_generate_is_non_streamed(mock_ollama_client):
    backend = OllamaBackend(client=mock_ollama_client)

    result = await backend.generate("llama3.2:3b", "hello", {"temperature": 0.7, "num_predict": 2048})

    assert result == {"model": "llama3.2:3b", "response": "non-streamed response"}
    mock_ollama_client.generate.assert_awaited_once_with(
        model="llama3.2:3b",
        prompt="hello",
        stream=False,
        options={"temperature": 0.7, "num_predict": 2048}
    )


def test_client_is_created_lazily_with_host_and_timeout(mocker):
    client_cls = mocker.patch("services.ollama_backend.ollama.AsyncClient")
    backend = OllamaBackend(host="http://gpu-box:11434", timeout=30)
    client_cls.assert_not_called()

    assert backend.client is client_cls.return_value
    assert backend.client is client_cls.return_value
    client_cls.assert_called_once_with(host="http://gpu-box:11434", timeout=30)


def test_reset_drops_the_client(mock_ollama_client):
    backend = OllamaBackend(client=mock_ollama_client)
    backend.reset()

    with patch("services.ollama_backend.ollama.AsyncClient") as client_cls:
        assert backend.client is client_cls.return_value


@pytest.mark.anyio
async def test_close_closes_the_http_client():
    client = MagicMock()
    client._client.aclose = AsyncMock()
    backend = OllamaBackend(client=client)

    await backend.close()
    await backend.close()

    client._client.aclose.assert_awaited_once()
