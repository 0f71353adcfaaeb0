"""Recipe generation client backed by the Gemini multimodal API.

RecipeGenerationClient is the contract the orchestrator depends on: send one
image plus instructions and a response schema, get back the raw JSON text.
GeminiRecipeClient is the production implementation using google-genai.

Any SDK or transport failure (including a missing GEMINI_API_KEY) is reported as
ServiceUnavailableError. An empty response body is a MalformedResponseError.
"""

import asyncio
from typing import Any, Optional, Protocol

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from fridge_chef.services.errors import AnalysisError, MalformedResponseError, ServiceUnavailableError
from fridge_chef.utils.config import config
from fridge_chef.utils.logger import logger


class RecipeGenerationClient(Protocol):
    """Opaque capability that turns an image plus instructions into structured JSON."""

    async def generate(
        self,
        image_bytes: bytes,
        mime_type: str,
        instructions: str,
        response_schema: dict[str, Any],
    ) -> str:
        """Return the raw JSON response text, or raise an AnalysisError subclass."""
        ...


def extract_response_text(response) -> str:
    """Return JSON text from a Gemini response.

    Prefers response.text; falls back to the first non-empty text part of the
    first candidate.
    """
    text = getattr(response, "text", None)
    if isinstance(text, str) and text.strip():
        return text

    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str) and part_text.strip():
                return part_text
    return ""


class GeminiRecipeClient:
    """RecipeGenerationClient implementation using the google-genai SDK.

    The SDK client is created lazily on first use so a missing API key only fails
    the request that needs it, not process startup.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
    ) -> None:
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.temperature = config.TEMPERATURE if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or config.MAX_OUTPUT_TOKENS
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise ServiceUnavailableError("GEMINI_API_KEY is not configured")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        image_bytes: bytes,
        mime_type: str,
        instructions: str,
        response_schema: dict[str, Any],
    ) -> str:
        """Call Gemini once with the image, instructions and JSON response schema.

        Args:
            image_bytes: Raw encoded image (JPEG, PNG or WebP).
            mime_type: MIME type matching image_bytes.
            instructions: Composed instruction text.
            response_schema: Structural schema the JSON output must follow.

        Returns:
            Raw JSON text returned by the model.

        Raises:
            ServiceUnavailableError: Missing credentials, API error or transport failure.
            MalformedResponseError: The model returned no text.
        """
        client = self._get_client()

        try:
            # Sync SDK call runs in a worker thread to keep the event loop free
            response = await asyncio.to_thread(
                client.models.generate_content,
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    instructions,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=response_schema,
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except AnalysisError:
            raise
        except genai_errors.APIError as e:
            logger.warning(f"Gemini API error (code={e.code}, status={e.status}): {e.message}")
            raise ServiceUnavailableError(f"Gemini API error {e.code}: {e.message}") from e
        except Exception as e:
            logger.warning(f"Gemini request failed: {e}")
            raise ServiceUnavailableError(f"Gemini request failed: {e}") from e

        text = extract_response_text(response)
        if not text:
            raise MalformedResponseError("No response text from Gemini")

        logger.debug(f"Gemini response received ({len(text)} chars, model={self.model})")
        return text
