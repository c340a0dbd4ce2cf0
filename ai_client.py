"""
Gemini text generation client.

A thin wrapper around the Google GenAI SDK so the rewriter and enricher can be
handed a fake in tests.
"""
import logging
from typing import Optional

from google import genai

from errors import AIClientError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Single-prompt, single-response text generation. No retries."""

    def __init__(self, api_key: Optional[str], model: str = "gemini-1.5-flash"):
        self.api_key = api_key
        self.model = model
        self._client: Optional[genai.Client] = None
        if not self.api_key:
            logger.warning("GEMINI_API_KEY not configured. AI rewriting and enrichment are disabled.")

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise AIClientError("Gemini API key not configured")
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Gemini client initialized with model {self.model}")
        return self._client

    def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.models.generate_content(model=self.model, contents=prompt)
        except Exception as e:
            raise AIClientError(f"Gemini call failed: {e}") from e

        try:
            text = response.text
        except ValueError as e:
            # .text raises when the candidate was blocked or holds no text part
            raise AIClientError(f"Gemini returned no text: {e}") from e
        if not text or not text.strip():
            raise AIClientError("Gemini returned an empty response")
        return text
