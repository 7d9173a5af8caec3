"""
Tests for reply generation and its degradation path.
"""

import asyncio
from types import SimpleNamespace

import pytest

from travel_rag.config import Settings
from travel_rag.llm.responder import (
    SYSTEM_PROMPT,
    TEMPLATE_UNAVAILABLE,
    ResponseGenerator,
    template_response,
)

from tests.fakes import make_hotel


def make_config(openai: bool = True, max_wait_ms: int = 200) -> Settings:
    config = Settings()
    config.OPENAI_API_KEY = "sk-test" if openai else ""
    config.OPENAI_MODEL = "gpt-test"
    config.OLLAMA_MODEL = "llama-test"
    config.LLM_MAX_WAIT_MS = max_wait_ms
    config.LLM_MAX_TOKENS = 800
    config.LLM_FALLBACK_TOKENS = 400
    return config


class FakeCompletions:
    """chat.completions stand-in; each outcome is a string, an exception or a delay"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, float):
            await asyncio.sleep(outcome)
            outcome = "too late"
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def openai_client(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class FakeOllama:
    def __init__(self, reply: str = "Hola!", list_error=None):
        self.reply = reply
        self.list_error = list_error
        self.calls = []

    async def chat(self, model, messages, options):
        self.calls.append({"model": model, "messages": messages, "options": options})
        return {"message": {"role": "assistant", "content": self.reply}}

    async def list(self):
        if self.list_error is not None:
            raise self.list_error
        return {"models": []}


HOTELS = [make_hotel("h1", "Azulik", "Tulum"), make_hotel("h2", "Casa Malca", "Tulum")]


class TestTemplate:
    def test_lists_hotels(self):
        text = template_response(HOTELS)
        assert text.splitlines()[1] == "1. Azulik - Tulum - $$$ - 4.4/5"
        assert "2. Casa Malca" in text

    def test_no_hotels(self):
        assert template_response([]) == TEMPLATE_UNAVAILABLE


class TestBuildMessages:
    def test_order_and_hotel_context(self):
        responder = ResponseGenerator(make_config(), openai_client=openai_client(FakeCompletions()))
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "Hola!"}]

        messages = responder.build_messages("beach hotels in tulum", HOTELS, history)

        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[1:3] == history
        assert messages[-1]["role"] == "user"
        assert "1. Azulik (Tulum, Mexico)" in messages[-1]["content"]

    def test_plain_query_without_hotels(self):
        responder = ResponseGenerator(make_config(), openai_client=openai_client(FakeCompletions()))
        assert responder.build_messages("what is a cenote?", [])[-1]["content"] == "what is a cenote?"


class TestGenerate:
    async def test_primary_completion(self):
        completions = FakeCompletions("  1. Azulik is lovely  ")
        responder = ResponseGenerator(make_config(), openai_client=openai_client(completions))

        assert await responder.generate("tulum", HOTELS) == "1. Azulik is lovely"
        assert completions.calls[0]["model"] == "gpt-test"
        assert completions.calls[0]["max_tokens"] == 800
        assert responder.provider == "OpenAI"

    async def test_retries_with_smaller_budget(self, monitor):
        completions = FakeCompletions(RuntimeError("rate limited"), "Short answer")
        responder = ResponseGenerator(make_config(), openai_client=openai_client(completions), monitor=monitor)

        assert await responder.generate("tulum", HOTELS) == "Short answer"
        assert [c["max_tokens"] for c in completions.calls] == [800, 400]
        assert monitor.counter_value("llm.completion_failed") == 1

    async def test_slow_then_empty_falls_back_to_template(self, monitor):
        completions = FakeCompletions(0.2, "   ")
        responder = ResponseGenerator(
            make_config(max_wait_ms=50), openai_client=openai_client(completions), monitor=monitor,
        )

        reply = await responder.generate("tulum", HOTELS)
        assert reply == template_response(HOTELS)
        assert monitor.counter_value("llm.fallback_failed") == 1

        # let the abandoned completion finish
        await asyncio.sleep(0.2)

    async def test_ollama(self):
        ollama_client = FakeOllama("  Hola from Ollama ")
        responder = ResponseGenerator(make_config(openai=False), ollama_client=ollama_client)

        assert responder.provider == "Ollama"
        assert await responder.generate("hi", []) == "Hola from Ollama"
        assert ollama_client.calls[0]["model"] == "llama-test"
        assert ollama_client.calls[0]["options"]["num_predict"] == 800


class TestPing:
    async def test_openai_is_assumed_reachable(self):
        responder = ResponseGenerator(make_config(), openai_client=openai_client(FakeCompletions()))
        assert await responder.ping()

    @pytest.mark.parametrize("error, expected", [(None, True), (ConnectionError("refused"), False)])
    async def test_ollama_list(self, error, expected):
        responder = ResponseGenerator(make_config(openai=False), ollama_client=FakeOllama(list_error=error))
        assert await responder.ping() is expected
