"""Gemini adapter, with the google-generativeai module replaced by a fake."""

from types import SimpleNamespace

import pytest

from sponsorcast.adapters import gemini_generator
from sponsorcast.adapters.gemini_generator import GeminiTextGenerator
from sponsorcast.domain.errors import GENERATION_FAILED, AIServiceError, ServiceKind


class _FakeModel:
    def __init__(self, model_name, generation_config):
        self.model_name = model_name
        self.generation_config = generation_config
        self.calls = []

    def generate_content(self, prompt, request_options=None):
        self.calls.append((prompt, request_options))
        part = SimpleNamespace(text="0.72")
        return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))], text="0.72")


class _FakeGenai:
    def __init__(self):
        self.keys = []

    def configure(self, api_key):
        self.keys.append(api_key)

    GenerativeModel = _FakeModel


def test_missing_key_is_not_retryable():
    generator = GeminiTextGenerator(api_key=None, model_id="gemini-1.5-flash", service=ServiceKind.matching)
    with pytest.raises(AIServiceError) as exc_info:
        generator.generate("prompt")
    assert exc_info.value.code == GENERATION_FAILED
    assert exc_info.value.retryable is False
    assert exc_info.value.service is ServiceKind.matching


def test_first_candidate_text_is_returned(monkeypatch):
    fake = _FakeGenai()
    monkeypatch.setattr(gemini_generator, "genai", fake)
    generator = GeminiTextGenerator(api_key="k", model_id="gemini-1.5-flash", temperature=0.2, timeout_seconds=5)
    assert generator.generate("score this") == "0.72"
    assert generator.generate("again") == "0.72"
    assert fake.keys == ["k"]
    model = generator._model
    assert model.model_name == "models/gemini-1.5-flash"
    assert model.generation_config == {"temperature": 0.2}
    assert model.calls[0] == ("score this", {"timeout": 5})
