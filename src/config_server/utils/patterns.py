"""Wildcard matching for repository routing patterns."""

import re
from collections.abc import Iterable
from functools import lru_cache


def split_list(value: str | None) -> list[str]:
    """Split a comma-delimited request value, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.DOTALL)


def simple_match(pattern: str | None, text: str | None) -> bool:
    """Match text against a pattern where ``*`` is the only wildcard.

    >>> simple_match("foo/*", "foo/dev")
    True
    >>> simple_match("*-service/prod", "orders-service/prod")
    True
    """
    if pattern is None or text is None:
        return False
    return _compile(pattern).fullmatch(text) is not None


def match_any(patterns: Iterable[str], text: str) -> bool:
    return any(simple_match(pattern, text) for pattern in patterns)


class PatternRule:
    """Ordered ``application/profile`` patterns selecting a named repository.

    A raw pattern without a profile segment also matches any profile, and a
    pattern naming a single profile also matches requests that list further
    profiles after it.
    """

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = self.normalize(patterns)

    @staticmethod
    def normalize(raw_patterns: Iterable[str]) -> tuple[str, ...]:
        patterns: list[str] = []
        other_profiles: list[str] = []
        for pattern in raw_patterns:
            if not pattern:
                continue
            if "/" not in pattern:
                patterns.append(f"{pattern}/*")
            if not pattern.endswith("*"):
                other_profiles.append(f"{pattern},*")
            patterns.append(pattern)
        patterns.extend(other_profiles)
        return tuple(dict.fromkeys(patterns))

    def matches(self, application: str, profile: str | None) -> bool:
        """Return True when any requested profile, or the full list, matches."""
        if not self.patterns:
            return False
        profiles = split_list(profile)
        for single in reversed(profiles):
            if match_any(self.patterns, f"{application}/{single}"):
                return True
        return bool(profiles) and match_any(self.patterns, f"{application}/{profile}")

    def __repr__(self) -> str:
        return f"PatternRule({list(self.patterns)!r})"
