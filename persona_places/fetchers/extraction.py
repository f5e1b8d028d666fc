"""Pull a ProfileSignal out of noisy search results.

Every step prefers records that reference the handle (``@handle``,
``from:handle`` or an ``x.com/handle`` profile path) and only falls back to
the full result set when none do. All functions here are pure.
"""
import re
from collections.abc import Iterable, Iterator, Sequence
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError

from persona_places.errors import ExtractionError
from persona_places.models import ProfileSignal, SearchRecord, capitalize_handle

DEFAULT_TWEET_LIMIT = 22

_MIN_FRAGMENT_LEN = 12
_MAX_FRAGMENT_LEN = 280
_MIN_BIO_LEN = 10
_MIN_PARAGRAPH_LEN = 20
_MAX_BIO_LEN = 300

_BOILERPLATE = re.compile(
    r"[\d,.]+\s*[KkMm]?\s+(?:followers?|following|posts|tweets|likes)\b"
    r"|\b(?:followers|following)\b"
    r"|\bjoined\s+(?:in\s+)?\w+\s+\d{4}"
    r"|\b(?:sign up|log in|create account|new to x|terms of service|privacy policy|cookie policy)\b"
    r"|don.t miss what.s happening|see new posts|people on x are the first to know",
    re.IGNORECASE,
)
_URL_ONLY = re.compile(r"\S*https?://\S+")
_MARKUP = re.compile(r"<[^>]+>")
_LEADING_MARKUP = re.compile(r"^[\s#>*\-•]+")

_META_DESCRIPTION = re.compile(
    r"<meta[^>]+(?:name|property)=[\"'](?:og:|twitter:)?description[\"'][^>]*content=[\"']([^\"']{10,300})[\"']"
    r"|(?:og:|twitter:)?description[\"']?\s*[:=]\s*[\"']([^\"']{10,300})[\"']",
    re.IGNORECASE,
)
_TITLE_QUOTE = re.compile(r"[:\-]\s*[\"“](.{10,}?)[\"”]")
_TITLE_SPLIT = re.compile(r"\s+[|/–—-]\s+")

_NAME_PREFIX = re.compile(r"^\s*([^(@|]+?)\s*[(@|]")
_PLATFORM_SUFFIX = re.compile(r"\s+on\s+(?:x|twitter)\s*:?$", re.IGNORECASE)
_GENERIC_NAMES = {
    "x", "twitter", "x.com", "twitter.com", "home", "explore", "search",
    "log in", "sign up", "profile", "notifications", "posts", "tweets",
}

_IMAGE_URL = re.compile(
    r"https?://[^\s\"'<>()]+\.(?:jpg|jpeg|png|gif|webp)(?:\?[^\s\"'<>()]*)?",
    re.IGNORECASE,
)
_PLATFORM_PHOTO = re.compile(
    r"https?://(?:www\.)?(?:twitter|x)\.com/[^/\s]+/photo/\d+"
    r"|https?://pbs\.twimg\.com/profile_images/[^\s\"'<>()]+",
    re.IGNORECASE,
)

# descriptor -> keywords looked for in titles and URLs when no bio is found
_DESCRIPTORS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("developer", ("developer", "engineer", "github", "programming", "software", "coding")),
    ("artist", ("artist", "illustrat", "painter", "artstation", "behance", "dribbble")),
    ("musician", ("musician", "music", "band", "soundcloud", "bandcamp", "spotify")),
    ("writer", ("writer", "author", "journalist", "substack", "newsletter", "blog")),
    ("crypto enthusiast", ("crypto", "web3", "blockchain", "bitcoin", "ethereum", "dao", "nft")),
    ("founder", ("founder", "startup", "ceo", "entrepreneur")),
    ("photographer", ("photographer", "photography")),
    ("gamer", ("gamer", "gaming", "twitch", "esports")),
)


def _coerce_records(records: Any) -> list[SearchRecord]:
    if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
        raise ExtractionError("search results must be a sequence of records")
    if not records:
        raise ExtractionError("no search results to extract from")
    coerced = []
    for record in records:
        if isinstance(record, SearchRecord):
            coerced.append(record)
        elif isinstance(record, dict):
            try:
                coerced.append(SearchRecord.model_validate(record))
            except ValidationError as exc:
                raise ExtractionError(f"malformed search record: {exc.error_count()} errors") from exc
        else:
            raise ExtractionError(f"malformed search record of type {type(record).__name__}")
    return coerced


def _handle_pattern(handle: str) -> re.Pattern[str]:
    h = re.escape(handle)
    return re.compile(
        rf"@{h}\b|from:{h}\b|(?:^|[\s/.(])(?:twitter|x)\.com/{h}(?:[/?#\s)]|$)",
        re.IGNORECASE,
    )


def is_relevant(record: SearchRecord, handle: str) -> bool:
    """True if the record's URL, text or title references the handle."""
    pattern = _handle_pattern(handle)
    return any(
        field and pattern.search(field)
        for field in (record.url, record.text, record.title)
    )


def partition_records(
    records: Iterable[SearchRecord], handle: str
) -> tuple[list[SearchRecord], list[SearchRecord]]:
    """Split records into (relevant, other), preserving order."""
    relevant: list[SearchRecord] = []
    other: list[SearchRecord] = []
    for record in records:
        (relevant if is_relevant(record, handle) else other).append(record)
    return relevant, other


def is_profile_page(url: str | None, handle: str) -> bool:
    """URL points at the handle's profile (``/handle``, ``/handle/media``), not a single post."""
    if not url:
        return False
    segments = [s.lower() for s in urlparse(url).path.split("/") if s]
    return handle.lower() in segments and "status" not in segments


def _clean(line: str) -> str:
    return " ".join(_LEADING_MARKUP.sub("", line).split())


def _lines(text: str | None) -> Iterator[str]:
    if not text:
        return
    for raw in text.splitlines():
        line = _clean(raw)
        if line:
            yield line


def _text_units(text: str | None) -> Iterator[str]:
    """Line-like units of text; overlong lines are broken at sentence ends."""
    for line in _lines(text):
        if len(line) <= _MAX_FRAGMENT_LEN:
            yield line
            continue
        for sentence in re.split(r"(?<=[.!?])\s+", line):
            yield sentence.strip()


def _has_letters(line: str) -> bool:
    return bool(re.search(r"[^\W\d_]", line))


def _is_boilerplate(line: str) -> bool:
    return bool(_BOILERPLATE.search(line))


def _bio_ok(line: str, min_len: int = _MIN_BIO_LEN) -> bool:
    return (
        min_len <= len(line) <= _MAX_BIO_LEN
        and not line.startswith("@")
        and _has_letters(line)
        and not _URL_ONLY.fullmatch(line)
        and not _MARKUP.search(line)
        and not _is_boilerplate(line)
    )


def _is_paragraph(line: str) -> bool:
    return _bio_ok(line, _MIN_PARAGRAPH_LEN) and line.count(" ") >= 2


def _title_fragments(title: str) -> Iterator[str]:
    match = _TITLE_QUOTE.search(title)
    if match:
        yield match.group(1).strip()
    for part in _TITLE_SPLIT.split(title)[1:]:
        yield part.strip()


def _infer_descriptor(records: Sequence[SearchRecord]) -> str | None:
    haystack = " ".join(
        f"{r.title or ''} {r.url or ''}" for r in records
    ).lower()
    best, best_hits = None, 0
    for descriptor, keywords in _DESCRIPTORS:
        hits = sum(len(re.findall(rf"\b{re.escape(k)}", haystack)) for k in keywords)
        if hits > best_hits:
            best, best_hits = descriptor, hits
    return best


def default_bio(handle: str, descriptor: str | None = None) -> str:
    if descriptor:
        return f"@{handle} is a {descriptor} sharing updates on X."
    return f"@{handle} shares thoughts and updates on X."


def extract_bio(records: Sequence[SearchRecord], handle: str) -> str:
    """Run the bio cascade; the first strategy that finds a line wins."""
    # (a) paragraphs from profile pages
    for record in records:
        if is_profile_page(record.url, handle):
            for line in _lines(record.text):
                if _is_paragraph(line):
                    return line
    # (b) highlights
    for record in records:
        for highlight in record.highlights:
            line = _clean(highlight)
            if _bio_ok(line):
                return line
    # (c) any text line
    for record in records:
        for line in _lines(record.text):
            if _bio_ok(line):
                return line
    # (d) meta descriptions embedded in raw text
    for record in records:
        for match in _META_DESCRIPTION.finditer(record.text or ""):
            line = _clean(match.group(1) or match.group(2))
            if _bio_ok(line):
                return line
    # (e) title fragments
    for record in records:
        for fragment in _title_fragments(record.title or ""):
            line = _clean(fragment)
            if _bio_ok(line) and line.lower() not in _GENERIC_NAMES:
                return line
    return default_bio(handle, _infer_descriptor(records))


def _is_generic_name(candidate: str) -> bool:
    lowered = candidate.lower()
    return (
        not candidate
        or lowered in _GENERIC_NAMES
        or lowered.startswith("home")
        or ":" in candidate
        or len(candidate) > 50
        or len(candidate.split()) > 5
        or not _has_letters(candidate)
    )


def extract_name(records: Sequence[SearchRecord], handle: str) -> str:
    for record in records:
        match = _NAME_PREFIX.match(record.title or "")
        if not match:
            continue
        candidate = _PLATFORM_SUFFIX.sub("", match.group(1)).strip(" -:\"'–—")
        if not _is_generic_name(candidate):
            return candidate
    return capitalize_handle(handle)


def _image_from_record(record: SearchRecord) -> str | None:
    extra = (record.extra_info or {}).get("image_url")
    direct = (
        record.image_url
        or record.image
        or (extra if isinstance(extra, str) else None)
        or next((u for u in record.image_urls if u), None)
    )
    if direct:
        return direct
    if record.text:
        match = _IMAGE_URL.search(record.text)
        if match:
            return match.group(0)
    for source in (record.url, record.text):
        if source:
            match = _PLATFORM_PHOTO.search(source)
            if match:
                return match.group(0)
    return None


def extract_image(records: Sequence[SearchRecord]) -> str | None:
    for record in records:
        image = _image_from_record(record)
        if image:
            return image
    return None


def collect_tweets(records: Sequence[SearchRecord], limit: int = DEFAULT_TWEET_LIMIT) -> list[str]:
    """Distinct post-like fragments in discovery order, capped at ``limit``."""
    tweets: list[str] = []
    seen: set[str] = set()
    for record in records:
        candidates = [record.title or "", *record.highlights, *_text_units(record.text)]
        for raw in candidates:
            fragment = _clean(raw)
            if not (_MIN_FRAGMENT_LEN <= len(fragment) <= _MAX_FRAGMENT_LEN):
                continue
            if fragment in seen or _is_boilerplate(fragment) or not _has_letters(fragment):
                continue
            if _URL_ONLY.fullmatch(fragment) or _MARKUP.search(fragment):
                continue
            seen.add(fragment)
            tweets.append(fragment)
            if len(tweets) >= limit:
                return tweets
    return tweets


def extract_profile_signal(
    records: Sequence[SearchRecord] | Sequence[dict[str, Any]],
    handle: str,
    *,
    tweet_limit: int = DEFAULT_TWEET_LIMIT,
) -> ProfileSignal:
    """Build a ProfileSignal from raw search results.

    ``handle`` is trusted (already @-stripped) and copied to the signal as is.
    Raises ExtractionError only for an empty or malformed result collection.
    """
    if not handle:
        raise ExtractionError("handle must not be empty")
    parsed = _coerce_records(records)
    relevant, _ = partition_records(parsed, handle)
    preferred = relevant or parsed

    return ProfileSignal(
        tweets=collect_tweets(preferred, tweet_limit),
        bio=extract_bio(preferred, handle),
        name=extract_name(preferred, handle),
        handle=handle,
        profile_image_url=extract_image(preferred),
    )
