import json
import logging
from enum import Enum
from typing import Any

import openai
from openai import AsyncOpenAI

from persona_places.errors import ConfigurationError

_log = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT = 30.0


class GenerationFailure(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"
    TRANSPORT = "transport"
    MALFORMED = "malformed"


class GenerationError(Exception):
    def __init__(self, kind: GenerationFailure, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class OpenAIGenerator:
    """Structured generation over OpenAI chat completions in JSON mode.

    ``generate`` returns the decoded JSON object, or None when the completion
    carries no content. Transport problems and non-object JSON raise
    GenerationError. The SDK's own retries are disabled so callers decide.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if not api_key and client is None:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.7,
    ) -> dict[str, Any] | None:
        try:
            response = await self.client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as exc:
            raise GenerationError(GenerationFailure.TIMEOUT, "OpenAI request timed out") from exc
        except openai.RateLimitError as exc:
            raise GenerationError(GenerationFailure.RATE_LIMITED, "OpenAI rate limit hit") from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise GenerationError(GenerationFailure.AUTH_FAILURE, "OpenAI rejected the credentials") from exc
        except openai.APIError as exc:
            raise GenerationError(GenerationFailure.TRANSPORT, f"OpenAI request failed: {type(exc).__name__}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            return None
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            _log.debug("Non-JSON completion: %.200s", content)
            raise GenerationError(GenerationFailure.MALFORMED, "completion is not valid JSON") from exc
        if not isinstance(data, dict):
            raise GenerationError(GenerationFailure.MALFORMED, "completion is not a JSON object")
        return data
