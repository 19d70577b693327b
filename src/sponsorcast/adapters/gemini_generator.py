"""Gemini adapter implementing TextGenerator via google-generativeai."""

from __future__ import annotations

import google.generativeai as genai

from ..domain.errors import GENERATION_FAILED, AIServiceError, ServiceKind


class GeminiTextGenerator:
    """Calls a Gemini model; one instance per service kind and model."""

    def __init__(
        self,
        api_key: str | None,
        model_id: str,
        service: ServiceKind = ServiceKind.generation,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model_id = model_id
        self._service = service
        self._timeout = timeout_seconds
        self._generation_config = {"temperature": temperature}
        self._model = None

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_model(self):
        if self._model is None:
            if not self._api_key:
                raise AIServiceError(self._service, GENERATION_FAILED, "GEMINI_API_KEY is not set", retryable=False)
            genai.configure(api_key=self._api_key)
            model_name = self._model_id if self._model_id.startswith("models/") else f"models/{self._model_id}"
            self._model = genai.GenerativeModel(model_name=model_name, generation_config=self._generation_config)
        return self._model

    def generate(self, prompt: str) -> str:
        result = self._get_model().generate_content(prompt, request_options={"timeout": self._timeout})
        text = None
        if result and getattr(result, "candidates", None):
            first = result.candidates[0]
            if first and first.content and getattr(first.content, "parts", None):
                parts = first.content.parts
                if parts and getattr(parts[0], "text", None):
                    text = parts[0].text
        if not text and hasattr(result, "text"):
            text = result.text
        return text or ""
