"""Comment content screening.

- Length validation on the trimmed text
- Sanitization (markup, scripts, pseudo-protocols, inline handlers)
- Spam heuristics returning a verdict plus human-readable reasons

Everything here is pure; the post existence check lives in the service.
"""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import CommentValidationError


if TYPE_CHECKING:
    from blog_comments.config.settings import Settings


# ==============================================================================
# Validation
# ==============================================================================


def validate_content(content: str | None, min_length: int = 5, max_length: int = 2000) -> str:
    """Validate raw comment text and return it trimmed.

    Raises:
        CommentValidationError: empty, too_short or too_long
    """
    trimmed = (content or "").strip()

    if not trimmed:
        raise CommentValidationError("Comment content is required", "empty")

    if len(trimmed) < min_length:
        raise CommentValidationError(
            f"Comment must be at least {min_length} characters long", "too_short"
        )

    if len(trimmed) > max_length:
        raise CommentValidationError(
            f"Comment must not exceed {max_length} characters", "too_long"
        )

    return trimmed


# ==============================================================================
# Sanitization
# ==============================================================================


SCRIPT_BLOCK_PATTERN = re.compile(
    r"<\s*(script|style)\b[^>]*>.*?<\s*/\s*\1\s*>", re.IGNORECASE | re.DOTALL
)
TAG_PATTERN = re.compile(r"<[^>]*>")
PSEUDO_PROTOCOL_PATTERN = re.compile(r"\b(?:javascript|vbscript|livescript)\s*:", re.IGNORECASE)
EVENT_HANDLER_PATTERN = re.compile(r"\bon\w+\s*=", re.IGNORECASE)


def sanitize_content(content: str) -> str:
    """Strip markup and script vectors from comment text.

    Script/style blocks go with their body; other tags are dropped and their
    inner text kept. Deterministic: sanitizing twice changes nothing.
    """
    previous = None
    sanitized = content
    # Removing one construct can splice together another (e.g. "<scr<b>ipt>")
    while sanitized != previous:
        previous = sanitized
        sanitized = SCRIPT_BLOCK_PATTERN.sub("", sanitized)
        sanitized = TAG_PATTERN.sub("", sanitized)
        sanitized = PSEUDO_PROTOCOL_PATTERN.sub("", sanitized)
        sanitized = EVENT_HANDLER_PATTERN.sub("", sanitized)
    return sanitized.strip()


# ==============================================================================
# Spam Heuristics
# ==============================================================================


URL_PATTERN = re.compile(
    r"(https?://[^\s]+)|(www\.[^\s]+)|([a-zA-Z0-9-]+\.com[/a-zA-Z0-9]*)", re.IGNORECASE
)


@dataclass
class SpamVerdict:
    """Outcome of the spam heuristics."""

    is_spam: bool
    reasons: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str | None:
        """Reasons joined into one line, for rejection-reason prefilling."""
        return "; ".join(self.reasons) if self.reasons else None


@dataclass
class SpamHeuristics:
    """Keyword, URL, shouting and character-repetition rules.

    Each rule is independently sufficient; all triggered rules are reported.
    """

    keywords: list[str]
    max_urls: int = 2
    caps_ratio: float = 0.7
    caps_min_length: int = 20
    repeat_run: int = 6

    def __post_init__(self) -> None:
        self._keywords = [k.lower() for k in self.keywords if k.strip()]
        self._repeat_pattern = re.compile(r"(.)\1{%d,}" % (self.repeat_run - 1), re.DOTALL)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SpamHeuristics":
        """Build the rule set from application settings."""
        return cls(
            keywords=settings.comment_spam_keywords,
            max_urls=settings.comment_spam_max_urls,
            caps_ratio=settings.comment_spam_caps_ratio,
            caps_min_length=settings.comment_spam_caps_min_length,
            repeat_run=settings.comment_spam_repeat_run,
        )

    def check(self, content: str) -> SpamVerdict:
        """Score sanitized comment text."""
        reasons: list[str] = []
        lowered = content.lower()

        reasons.extend(
            f'Contains spam keyword: "{keyword}"'
            for keyword in self._keywords
            if keyword in lowered
        )

        url_count = len(URL_PATTERN.findall(content))
        if url_count > self.max_urls:
            reasons.append(f"Too many URLs ({url_count})")

        if len(content) > self.caps_min_length:
            uppercase = sum(1 for char in content if char.isupper())
            if uppercase / len(content) > self.caps_ratio:
                reasons.append("Excessive capitalization")

        if self._repeat_pattern.search(content):
            reasons.append("Repetitive characters detected")

        return SpamVerdict(is_spam=bool(reasons), reasons=reasons)
