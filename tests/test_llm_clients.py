import asyncio
import json
import logging

import httpx
import pytest

from ragstore.clients.llm.LLMClientManager import LLMClientManager
from ragstore.clients.llm.ollama.LLMClientOllama import LLMClientOllama
from ragstore.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from ragstore.errors import ProviderAuthenticationError
from ragstore.helper.HelperConfig import HelperConfig


@pytest.fixture
def config(monkeypatch):
    monkeypatch.setenv("LLM_CHAT_MODEL", "tiny-chat")
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://ollama.test")
    monkeypatch.setenv("LLM_OPENAI_BASE_URL", "http://openai.test/v1")
    monkeypatch.setenv("LLM_OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("LLM_OPENAI_TEMPERATURE", raising=False)
    monkeypatch.delenv("LLM_OLLAMA_TEMPERATURE", raising=False)
    monkeypatch.delenv("LLM_OLLAMA_NUM_CTX", raising=False)
    return HelperConfig(logger=logging.getLogger("ragstore.tests.llm"))


def test_ollama_complete(config):
    seen = []

    def respond(request):
        seen.append(request)
        return httpx.Response(200, json={"model": "tiny-chat", "message": {"role": "assistant", "content": "a summary"}, "done": True})

    async def scenario():
        client = LLMClientOllama(config)
        await client.boot(transport=httpx.MockTransport(respond))
        try:
            return await client.complete("summarize this", system_prompt="be brief")
        finally:
            await client.close()

    assert asyncio.run(scenario()) == "a summary"
    assert seen[0].url.path == "/api/chat"
    assert json.loads(seen[0].content) == {
        "model": "tiny-chat",
        "messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "summarize this"},
        ],
        "stream": False,
        "options": {"temperature": 0.0},
    }


def test_openai_complete(config, monkeypatch):
    monkeypatch.setenv("LLM_OPENAI_TEMPERATURE", "0.5")
    seen = []

    def respond(request):
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"index": 0, "message": {"role": "assistant", "content": "hello"}}]})

    async def scenario():
        client = LLMClientOpenai(config)
        await client.boot(transport=httpx.MockTransport(respond))
        return await client.complete("hi")

    assert asyncio.run(scenario()) == "hello"
    body = json.loads(seen[0].content)
    assert str(seen[0].url) == "http://openai.test/v1/chat/completions"
    assert body["messages"] == [{"role": "user", "content": "hi"}]
    assert body["temperature"] == 0.5


def test_openai_empty_reply(config):
    async def scenario():
        client = LLMClientOpenai(config)
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []})))
        await client.complete("hi")

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_openai_bad_key(config):
    async def scenario():
        client = LLMClientOpenai(config)
        error = {"error": {"message": "Incorrect API key provided", "type": "invalid_request_error", "code": "invalid_api_key"}}
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(401, json=error)))
        await client.complete("hi")

    with pytest.raises(ProviderAuthenticationError):
        asyncio.run(scenario())


def test_llm_manager(config, monkeypatch):
    monkeypatch.setenv("LLM_ENGINE", "ollama")
    assert isinstance(LLMClientManager(config).get_client(), LLMClientOllama)

    monkeypatch.setenv("LLM_ENGINE", "unknown")
    with pytest.raises(ValueError):
        LLMClientManager(config)
