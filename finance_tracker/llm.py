# finance_tracker/llm.py
# Chat-completion client for the Mistral OpenAI-compatible API

import logging
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from .config import get_settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when the model call fails or returns nothing usable."""


class LLMClient:
    """Thin wrapper over the openai SDK. `model` picks between the insights and chat models."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 base_url: Optional[str] = None, timeout: int = 60):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.mistral_api_key
        self.model = model or settings.mistral_model
        self.base_url = base_url or settings.mistral_base_url
        self.timeout = timeout
        self._client = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self.is_configured:
                raise LLMError("MISTRAL_API_KEY is not configured")
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def complete(self, messages: List[Dict[str, str]], temperature: float = 0.7,
                 max_tokens: int = 1000) -> str:
        """Run one chat completion and return the reply text."""
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            logger.error("LLM request failed (model=%s): %s", self.model, e)
            raise LLMError(str(e)) from e

        if not response.choices:
            raise LLMError("No response from AI")

        text = extract_text(response.choices[0].message.content)
        if not text:
            raise LLMError("No response from AI")
        return text


def extract_text(content) -> str:
    """Reply content is either a string or a list of chunks carrying `text`."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for chunk in content:
        if isinstance(chunk, dict):
            parts.append(chunk.get("text") or "")
        else:
            parts.append(getattr(chunk, "text", "") or "")
    return "".join(parts)
