"""Keyword and pattern classifier for listings and chat messages.

Two rules, applied in order:

1. Keyword containment. The lower-cased ``title + " " + body`` is searched for
   each suspicious keyword as a plain substring, so ``"cashew"`` matches
   ``"cash"``. Every hit adds its own reason.
2. Spam patterns. The combined text, in its original case, is matched
   against the spam regexes. Any number of hits adds a single reason.
"""

from __future__ import annotations

import re
from typing import Optional

from barterguard.config import DEFAULT_KEYWORDS, DEFAULT_SPAM_PATTERNS
from barterguard.moderation.models import Verdict

SPAM_REASON = "Contains spam-like patterns"


def _compile(patterns: list[tuple[str, bool]]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE if ci else 0) for p, ci in patterns]


class ContentClassifier:
    """Stateless content classifier. Safe to share between threads."""

    def __init__(
        self,
        keywords: Optional[list[str]] = None,
        spam_patterns: Optional[list[tuple[str, bool]]] = None,
    ) -> None:
        self.keywords = list(keywords) if keywords is not None else list(DEFAULT_KEYWORDS)
        self._patterns = _compile(
            spam_patterns if spam_patterns is not None else DEFAULT_SPAM_PATTERNS
        )

    def matches_spam_patterns(self, text: Optional[str]) -> bool:
        """Return True if *text* matches any spam pattern."""
        if not text:
            return False
        return any(pattern.search(text) for pattern in self._patterns)

    def classify(self, title: Optional[str] = "", body: Optional[str] = "") -> Verdict:
        combined = f"{title or ''} {body or ''}"
        lowered = combined.lower()

        reasons = [
            f"Contains suspicious keyword: {keyword}"
            for keyword in self.keywords
            if keyword in lowered
        ]
        if self.matches_spam_patterns(combined):
            reasons.append(SPAM_REASON)

        return Verdict(flagged=bool(reasons), reasons=reasons)


_default = ContentClassifier()


def classify(title: Optional[str] = "", body: Optional[str] = "") -> Verdict:
    """Classify content with the default keyword list and patterns."""
    return _default.classify(title, body)


def matches_spam_patterns(text: Optional[str]) -> bool:
    return _default.matches_spam_patterns(text)
