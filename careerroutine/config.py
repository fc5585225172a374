"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RiskRule(BaseModel):
    """One row of the risk table: a regex in a category with a fixed weight."""

    model_config = ConfigDict(frozen=True)

    category: str
    pattern: str
    weight: int


# Category weights. A single inappropriate or low-quality hit is enough to
# push a field past the HIGH threshold on its own.
_WEIGHTS = {
    "inappropriate": 11,
    "offtopic": 5,
    "suspiciousURLs": 8,
    "lowQuality": 11,
    "malformed": 2,
}

_PATTERNS = {
    "inappropriate": [r"\bviolen(ce|t)\b", r"\bharmful\b", r"\billegal\b", r"\bspam\b", r"\bphishing\b"],
    "offtopic": [
        r"financial advice",
        r"medical advice",
        r"legal advice",
        r"\binvest(ment|ing)\b",
        r"\bcrypto(currency)?\b",
        r"unrelated topic",
    ],
    "suspiciousURLs": [
        r"https?://(www\.)?bit\.ly",
        r"https?://(www\.)?tinyurl",
        r"https?://(www\.)?t\.co/",
        r"https?://(www\.)?goo\.gl",
    ],
    "lowQuality": [
        r"\bplaceholder\b",
        r"\bexample\.com\b",
        r"\blorem ipsum\b",
        r"\btest data\b",
        r"\[TODO\]",
        r"\[FIXME\]",
    ],
    "malformed": [r"\bundefined\b", r"\bnull\b", r"\bNaN\b"],
}


def default_risk_rules() -> tuple[RiskRule, ...]:
    return tuple(
        RiskRule(category=category, pattern=pattern, weight=_WEIGHTS[category])
        for category, patterns in _PATTERNS.items()
        for pattern in patterns
    )


class SafetyPolicy(BaseModel):
    """Tunable data driving the safety gate.

    Everything here is empirically chosen; treat it as configuration for
    offline eval-driven tuning rather than as fixed constants.
    """

    model_config = ConfigDict(frozen=True)

    risk_rules: tuple[RiskRule, ...] = Field(default_factory=default_risk_rules)
    # Inclusive upper bounds of the score bands; anything above medium is HIGH.
    low_max_score: int = 5
    medium_max_score: int = 10

    placeholder_penalty: float = 0.1
    short_content_chars: int = 50
    short_content_penalty: float = 0.2
    long_content_chars: int = 10000
    long_content_penalty: float = 0.1
    insecure_url_penalty: float = 0.15
    min_confidence: float = 0.5

    duration_tolerance_hours: float = 0.1
    shortener_domains: tuple[str, ...] = ("bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "is.gd")
    redaction_marker: str = "[Content filtered for safety]"


class Settings(BaseSettings):
    """Type-safe configuration sourced from .env / environment."""

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    model: str = "llama3.2"
    model_timeout_ms: int = 15000
    temperature: float = 0.3

    # Request handling
    max_input_chars: int = 2000
    disconnect_poll_seconds: float = 0.5

    # Eval logging
    eval_log_path: str = "./eval-logs/interactions.jsonl"
    eval_transcript_path: str = "./eval-logs/transcripts.jsonl"
    store_transcripts: bool = False
    snippet_max_chars: int = 200

    safety: SafetyPolicy = Field(default_factory=SafetyPolicy)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        protected_namespaces=(),
    )

    @property
    def model_timeout_seconds(self) -> float:
        return self.model_timeout_ms / 1000


settings = Settings()
