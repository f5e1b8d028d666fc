"""Find search results for an X handle, trying progressively looser queries."""
import logging
from dataclasses import dataclass

from persona_places.errors import SearchError, SearchErrorKind
from persona_places.fetchers.exa import ExaClient, SearchFailure
from persona_places.fetchers.extraction import is_profile_page, partition_records
from persona_places.models import SearchRecord

_log = logging.getLogger(__name__)

PROFILE_DOMAINS = ("twitter.com", "x.com")
MIN_TEXT_LENGTH = 80
MAX_ENRICH_URLS = 3


@dataclass(frozen=True)
class SearchStrategy:
    name: str
    query: str  # formatted with handle=
    search_type: str
    include_domains: tuple[str, ...] | None = None

    def build_query(self, handle: str) -> str:
        return self.query.format(handle=handle)


STRATEGIES: tuple[SearchStrategy, ...] = (
    SearchStrategy("profile_url", "x.com/{handle} OR twitter.com/{handle}", "keyword", PROFILE_DOMAINS),
    SearchStrategy("profile_query", "X (Twitter) profile and bio of @{handle}", "neural", PROFILE_DOMAINS),
    SearchStrategy("mentions", "@{handle} OR from:{handle}", "keyword", PROFILE_DOMAINS),
    SearchStrategy("open_web", "@{handle} twitter", "auto"),
)

# these cannot be fixed by trying a different query
_ABORT_KINDS = {SearchErrorKind.AUTH_FAILURE, SearchErrorKind.RATE_LIMITED}


def needs_enrichment(records: list[SearchRecord]) -> bool:
    return not any(
        len(record.text or "") >= MIN_TEXT_LENGTH or record.highlights
        for record in records
    )


def _enrichment_urls(records: list[SearchRecord], handle: str) -> list[str]:
    urls = [r.url for r in records if r.url and is_profile_page(r.url, handle)]
    urls += [r.url for r in records if r.url and r.url not in urls]
    return list(dict.fromkeys(urls))[:MAX_ENRICH_URLS]


class ProfileSearch:
    def __init__(
        self,
        client: ExaClient,
        *,
        num_results: int = 22,
        strategies: tuple[SearchStrategy, ...] = STRATEGIES,
    ) -> None:
        self._client = client
        self._num_results = num_results
        self._strategies = strategies

    async def find(self, handle: str) -> list[SearchRecord] | SearchError:
        """Return the results of the first strategy that mentions the handle.

        Auth and rate-limit failures stop the loop at once; timeouts and
        transport errors move on to the next strategy. If every strategy
        raised, the last failure kind is returned instead of NO_RESULTS.
        """
        failures: list[SearchFailure] = []
        for strategy in self._strategies:
            try:
                records = await self._client.search(
                    strategy.build_query(handle),
                    num_results=self._num_results,
                    include_domains=list(strategy.include_domains) if strategy.include_domains else None,
                    search_type=strategy.search_type,
                )
            except SearchFailure as exc:
                if exc.kind in _ABORT_KINDS:
                    _log.warning("Search aborted on %s (%s): %s", strategy.name, exc.kind.value, exc)
                    return SearchError(exc.kind, str(exc))
                _log.info("Search strategy %s failed (%s), trying next", strategy.name, exc.kind.value)
                failures.append(exc)
                continue

            relevant, _ = partition_records(records, handle)
            if not relevant:
                _log.info("Search strategy %s: %d results, none relevant to @%s", strategy.name, len(records), handle)
                continue

            _log.info("Search strategy %s won: %d results, %d relevant", strategy.name, len(records), len(relevant))
            if needs_enrichment(records):
                records = await self._enrich(records, handle)
            return records

        if len(failures) == len(self._strategies):
            return SearchError(failures[-1].kind, str(failures[-1]))
        return SearchError(SearchErrorKind.NO_RESULTS, f"no strategy found results for @{handle}")

    async def _enrich(self, records: list[SearchRecord], handle: str) -> list[SearchRecord]:
        urls = _enrichment_urls(records, handle)
        if not urls:
            return records
        try:
            contents = await self._client.fetch_contents(urls)
        except SearchFailure as exc:
            _log.warning("Content enrichment failed, keeping original results: %s", exc)
            return records

        merged = []
        for record in records:
            fetched = contents.get(record.url) if record.url else None
            if fetched is None:
                merged.append(record)
                continue
            merged.append(record.model_copy(update={
                "text": fetched.text or record.text,
                "highlights": fetched.highlights or record.highlights,
            }))
        return merged
