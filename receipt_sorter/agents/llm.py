"""
Language Model Client

DESIGN DECISION: The rest of the system only needs "prompt in, text out".
Everything Gemini-specific lives here, behind a one-method interface, so the
engines can be tested with a stub and the provider can be swapped.

The model is a WRITER, not a SOURCE OF DATA. It rewrites numbers we already
computed from the user's receipts. Every caller keeps a deterministic
fallback for when the model is slow, down, or unhelpful.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import structlog

from receipt_sorter.config import GeminiSettings, get_settings


logger = structlog.get_logger(__name__)


class TextGenerationClient(ABC):
    """Anything that turns a prompt into text."""

    name: str = "llm"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Raises:
            Any exception on transport failure or timeout. Callers decide
            whether that means fallback or error.
        """
        pass


class GeminiTextClient(TextGenerationClient):
    """Gemini via google-generativeai, with a hard timeout per call."""

    name = "gemini"

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def generate(self, prompt: str) -> str:
        response = await asyncio.wait_for(
            self._model.generate_content_async(prompt),
            timeout=self._settings.timeout_seconds,
        )
        return response.text.strip()


def create_text_client(settings: Optional[GeminiSettings] = None) -> Optional[TextGenerationClient]:
    """
    Build the configured model client.

    Returns None when no API key is configured; the engines then answer
    with their heuristics.
    """
    settings = settings or get_settings().gemini
    if not settings.is_configured:
        logger.info("llm_not_configured", model=settings.model_name)
        return None
    return GeminiTextClient(settings)
