import logging
from typing import Any

import httpx
from pydantic import ValidationError

from persona_places.errors import ConfigurationError, SearchErrorKind
from persona_places.models import SearchRecord

_log = logging.getLogger(__name__)

EXA_BASE_URL = "https://api.exa.ai"
DEFAULT_TIMEOUT = 20.0


class SearchFailure(Exception):
    """A single Exa call failed; ``kind`` says how."""

    def __init__(self, kind: SearchErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind


class ExaClient:
    """Thin async client for the Exa search and contents endpoints.

    A fresh ``httpx.AsyncClient`` is opened per call; ``transport`` lets tests
    plug in an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = EXA_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("EXA_API_KEY is not set")
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"x-api-key": self._api_key, "Content-Type": "application/json"},
            ) as client:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise SearchFailure(SearchErrorKind.TIMEOUT, f"Exa {path} timed out") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                kind = SearchErrorKind.AUTH_FAILURE
            elif status == 429:
                kind = SearchErrorKind.RATE_LIMITED
            else:
                kind = SearchErrorKind.TRANSPORT
            raise SearchFailure(kind, f"Exa {path} returned HTTP {status}") from exc
        except httpx.HTTPError as exc:
            raise SearchFailure(SearchErrorKind.TRANSPORT, f"Exa {path} failed: {exc}") from exc
        except ValueError as exc:
            raise SearchFailure(SearchErrorKind.TRANSPORT, f"Exa {path} returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise SearchFailure(SearchErrorKind.TRANSPORT, f"Exa {path} returned a non-object body")
        return data

    @staticmethod
    def _records(data: dict[str, Any]) -> list[SearchRecord]:
        results = data.get("results")
        if not isinstance(results, list):
            raise SearchFailure(SearchErrorKind.TRANSPORT, "Exa response has no results list")
        records = []
        for item in results:
            try:
                records.append(SearchRecord.model_validate(item))
            except ValidationError:
                _log.debug("Skipping malformed Exa result: %r", item)
        return records

    async def search(
        self,
        query: str,
        *,
        num_results: int = 22,
        include_domains: list[str] | None = None,
        search_type: str = "keyword",
    ) -> list[SearchRecord]:
        payload: dict[str, Any] = {
            "query": query,
            "numResults": num_results,
            "type": search_type,
            "contents": {"text": True, "highlights": True},
        }
        if include_domains:
            payload["includeDomains"] = include_domains
        _log.debug("Exa search: %s", payload)
        return self._records(await self._post("/search", payload))

    async def fetch_contents(self, urls: list[str]) -> dict[str, SearchRecord]:
        """Fetch page text and highlights for ``urls``; returns records keyed by URL."""
        if not urls:
            return {}
        data = await self._post("/contents", {"urls": urls, "text": True, "highlights": True})
        return {record.url: record for record in self._records(data) if record.url}
