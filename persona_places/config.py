"""Runtime settings resolved from the environment (and ``.env`` via python-dotenv)."""
import os
from dataclasses import dataclass

from persona_places.cities import CITIES
from persona_places.errors import ConfigurationError

STRATEGIES = ("batch", "fanout")


def _number(name: str, default: str, cast):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    exa_api_key: str
    openai_api_key: str
    openai_model: str = "gpt-4o"
    search_timeout: float = 20.0
    generation_timeout: float = 30.0
    tweet_limit: int = 22
    recommendation_count: int = 5
    recommendation_strategy: str = "batch"
    city: str = "toronto"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises ConfigurationError naming every missing credential, so the
        failure surfaces before any network call is attempted.
        """
        missing = [name for name in ("EXA_API_KEY", "OPENAI_API_KEY") if not os.getenv(name)]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        strategy = os.getenv("RECOMMENDATION_STRATEGY", "batch").strip().lower()
        if strategy not in STRATEGIES:
            raise ConfigurationError(
                f"RECOMMENDATION_STRATEGY must be one of {', '.join(STRATEGIES)}, got {strategy!r}"
            )

        city = os.getenv("CITY", "toronto").strip().lower()
        if city not in CITIES:
            raise ConfigurationError(f"Unsupported CITY {city!r}; known: {', '.join(sorted(CITIES))}")

        return cls(
            exa_api_key=os.environ["EXA_API_KEY"],
            openai_api_key=os.environ["OPENAI_API_KEY"],
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
            search_timeout=_number("SEARCH_TIMEOUT", "20", float),
            generation_timeout=_number("GENERATION_TIMEOUT", "30", float),
            tweet_limit=_number("TWEET_LIMIT", "22", int),
            recommendation_count=_number("RECOMMENDATION_COUNT", "5", int),
            recommendation_strategy=strategy,
            city=city,
        )
