import logging

from persona_places.analyzers.generator import GenerationError, GenerationFailure, OpenAIGenerator
from persona_places.analyzers.schemas import PersonaPayload, SchemaError, parse_persona
from persona_places.errors import PersonaError, PersonaErrorKind
from persona_places.models import Persona, ProfileSignal, capitalize_handle

_log = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown User"
MAX_TWEETS = 22
MAX_TWEET_CHARS = 280
MAX_BIO_CHARS = 500

SYSTEM_PROMPT = """You are an expert profiler who understands people from their social media presence.
Create a persona from someone's X (formerly Twitter) posts and bio. Analyze the content, style,
interests and values expressed in their posts.

Focus on identifying:
1. Personality traits (e.g. analytical, creative, empathetic)
2. Communication style (e.g. direct, humorous, formal)
3. Values and beliefs (e.g. values authenticity, environmental consciousness)
4. Interests and activities (e.g. technology, cooking, hiking)
5. Lifestyle indicators (e.g. urban professional, outdoor enthusiast)

Return a JSON object with exactly these fields:
- name: their actual name from the data (never "Unknown User"; use the handle if unsure)
- handle: their X handle without the @
- bio: a concise 1-2 sentence description of who they are
- traits: list of 3-5 personality, communication-style and values descriptors
- interests: list of 3-5 specific topics or activities they care about

Base the assessment only on the provided data. Return only valid JSON."""

_FAILURE_KINDS = {
    GenerationFailure.TIMEOUT: PersonaErrorKind.TIMEOUT,
    GenerationFailure.RATE_LIMITED: PersonaErrorKind.RATE_LIMITED,
    GenerationFailure.AUTH_FAILURE: PersonaErrorKind.AUTH_FAILURE,
    GenerationFailure.TRANSPORT: PersonaErrorKind.UPSTREAM,
    GenerationFailure.MALFORMED: PersonaErrorKind.INVALID_SCHEMA,
}


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1].rstrip() + "…"


def build_user_prompt(signal: ProfileSignal, *, max_tweets: int = MAX_TWEETS) -> str:
    tweet_list = "\n".join(
        f"• {_truncate(tweet, MAX_TWEET_CHARS)}" for tweet in signal.tweets[:max_tweets]
    )
    return (
        f"Here's information from the X (Twitter) profile of @{signal.handle}:\n\n"
        f"Name: {signal.name}\n"
        f"Bio: {_truncate(signal.bio, MAX_BIO_CHARS)}\n\n"
        f"Recent posts:\n{tweet_list or '(none found)'}\n\n"
        "Based on this information, create a persona for this user following the format in your instructions. "
        "Focus especially on traits and interests that might influence what places they would enjoy visiting."
    )


def finalize_persona(payload: PersonaPayload, signal: ProfileSignal) -> Persona:
    """Apply the mandatory post-processing to a validated payload.

    The requested handle always wins over the generated one, and a blank or
    placeholder name falls back to the capitalised handle.
    """
    if not payload.traits or not payload.interests:
        raise SchemaError("persona must have traits and interests")
    name = (payload.name or "").strip()
    if not name or name.lower() == UNKNOWN_NAME.lower():
        name = capitalize_handle(signal.handle)
    return Persona(
        name=name,
        handle=signal.handle,
        bio=payload.bio.strip(),
        traits=payload.traits,
        interests=payload.interests,
        profile_image_url=signal.profile_image_url,
    )


class PersonaSynthesizer:
    """Single-attempt ProfileSignal -> Persona conversion."""

    def __init__(self, generator: OpenAIGenerator, *, max_tweets: int = MAX_TWEETS) -> None:
        self._generator = generator
        self._max_tweets = max_tweets

    async def synthesize(self, signal: ProfileSignal) -> Persona | PersonaError:
        try:
            data = await self._generator.generate(
                SYSTEM_PROMPT,
                build_user_prompt(signal, max_tweets=self._max_tweets),
                temperature=0.7,
            )
        except GenerationError as exc:
            _log.warning("Persona generation for @%s failed: %s", signal.handle, exc)
            return PersonaError(_FAILURE_KINDS[exc.kind], str(exc))

        if data is None:
            return PersonaError(PersonaErrorKind.EMPTY_RESPONSE, "empty completion")
        try:
            return finalize_persona(parse_persona(data), signal)
        except SchemaError as exc:
            _log.warning("Persona response for @%s rejected: %s", signal.handle, exc)
            return PersonaError(PersonaErrorKind.INVALID_SCHEMA, str(exc))
