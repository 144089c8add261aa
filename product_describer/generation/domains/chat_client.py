"""Chat-completion client for the external text-generation endpoint."""
import logging
from typing import Any, Dict, Optional

import httpx

from ...errors import GenerationFailure
from .models import Failure, GenerationOutcome, GenerationRequest, Success

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_MAX_TOKENS = 100
DEFAULT_TIMEOUT = 30.0


class ChatCompletionClient:
    """Issues exactly one chat-completion request per call.

    No retries, no streaming. Every failure is returned as ``Failure``, never
    raised, so callers can always surface it to the user.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/chat/completions"

    def build_body(self, request: GenerationRequest) -> Dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": self._max_tokens,
        }

    async def complete(self, credential: str, request: GenerationRequest) -> GenerationOutcome:
        """
        Generate text for ``request``.

        Args:
            credential: Bearer token for the generation endpoint
            request: Subject and ordered features to describe

        Returns:
            Success(text) with the trimmed first completion, or
            Failure(reason) on non-2xx status, transport or parse error
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }
        body = self.build_body(request)

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.endpoint, json=body, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.endpoint, json=body, headers=headers)
            text = _extract_text(response)
        except httpx.HTTPError as e:
            logger.warning(f"Generation request failed: {e}")
            return Failure(reason=str(e) or e.__class__.__name__)
        except GenerationFailure as e:
            logger.warning(f"Generation failed: {e.message}")
            return Failure(reason=e.message)

        logger.debug(f"Generated {len(text)} characters for '{request.subject_name}'")
        return Success(text=text)


def _extract_text(response: httpx.Response) -> str:
    if not response.is_success:
        raise GenerationFailure(f"Error: {response.status_code} {response.reason_phrase}".rstrip())

    try:
        data = response.json()
        content = data["choices"][0]["message"]["content"]
    except ValueError as e:
        raise GenerationFailure(f"Invalid JSON in generation response: {e}") from e
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationFailure(f"Malformed generation response: missing {e}") from e

    if not isinstance(content, str):
        raise GenerationFailure("Malformed generation response: content is not text")
    return content.strip()
