"""Composition of task-detection regexes from language comment fragments.

``compose_regex_pair`` is the single place where regex source text is
assembled. Every caller goes through ``LanguageAwareRegexBuilder``, which
adds keyword normalization and a compiled-pattern cache.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from .keywords import ALL_BUILTIN_KEYWORDS
from .languages import FragmentRole, LanguageDefinition
from .models import RegexPair


# Bullets, numbers, letters, parenthesized labels, or a markdown checkbox
_LIST_MARKER = (
    r"(?:(?:[-*+]|\d+[.)]|[A-Za-z][.)]|\([A-Za-z0-9]+\)){ws}+"
    r"|[-*+]{ws}*\[[ xX]\]{ws}+)"
)

# Closers recognised at end of line for every language
_GENERIC_CLOSERS: Tuple[str, ...] = (r"\*/", "#>")

# Quote marker with an optional [!type] callout header and collapse sign
_CALLOUT_PREFIX = r">{ws}*(?:\[!{ws}*[^\]\n]+?{ws}*\]-?{ws}*)?"

_NEVER_MATCHES = "(?!)"

_PREFIX_ORDER: Tuple[FragmentRole, ...] = (
    FragmentRole.SINGLE_LINE,
    FragmentRole.BLOCK_START,
    FragmentRole.BLOCK_CONTINUATION,
    FragmentRole.INLINE,
)


class RegexCache:
    """Cache of compiled patterns keyed by (pattern, flags)."""

    def __init__(self):
        self._cache: Dict[Tuple[str, int], Pattern[str]] = {}

    def get(self, pattern: str, flags: int = 0) -> Pattern[str]:
        """Return the compiled pattern, compiling and caching it on first use."""
        key = (pattern, int(flags))
        compiled = self._cache.get(key)
        if compiled is None:
            compiled = re.compile(pattern, flags)
            self._cache[key] = compiled
        return compiled

    def has(self, pattern: str, flags: int = 0) -> bool:
        return (pattern, int(flags)) in self._cache

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


def keyword_alternation(keywords: Iterable[str]) -> str:
    """Escaped, de-duplicated alternation of keywords.

    An empty keyword list yields a pattern that never matches.
    """
    unique = dict.fromkeys(k for k in keywords if isinstance(k, str) and k)
    if not unique:
        return _NEVER_MATCHES
    return "|".join(re.escape(keyword) for keyword in unique)


def list_marker_source(whitespace: str = r"\s") -> str:
    return _LIST_MARKER.format(ws=whitespace)


def _prefix_alternation(language: LanguageDefinition, whitespace: str) -> str:
    alternatives: List[str] = []
    for role in _PREFIX_ORDER:
        for fragment in language.fragments_for(role):
            source = fragment.prefix_source(whitespace)
            if source not in alternatives:
                alternatives.append(source)
    return "|".join(alternatives)


def _closer_alternation(language: LanguageDefinition) -> str:
    closers: List[str] = []
    for marker in _GENERIC_CLOSERS:
        if marker not in closers:
            closers.append(marker)
    for fragment in language.fragments_for(FragmentRole.BLOCK_END):
        if fragment.marker not in closers:
            closers.append(fragment.marker)
    return "|".join(f"(?:{closer})" for closer in closers)


def compose_sources(keywords: Sequence[str], language: Optional[LanguageDefinition]) -> Tuple[str, str]:
    """Return (test, capture) regex source for a keyword set and language.

    The test source is searched against one line. The capture source is
    compiled with ``re.MULTILINE`` and exposes the named groups ``indent``,
    ``prefix``, ``marker``, ``keyword``, ``text`` and ``trailing`` in that
    order.
    """
    kw = keyword_alternation(keywords)
    test_marker = list_marker_source(r"\s")
    capture_marker = list_marker_source(r"[ \t]")

    if language is None:
        test = rf"^[ \t]*(?:{test_marker})?(?:{kw})\s+"
        capture = (
            rf"^(?P<indent>[ \t]*)(?P<marker>{capture_marker})?"
            rf"(?P<keyword>{kw})[ \t]+(?P<text>[^\n]*?)[ \t]*$"
        )
        return test, capture

    test_prefix = _prefix_alternation(language, r"\s")
    capture_prefix = _prefix_alternation(language, r"[ \t]")
    closers = _closer_alternation(language)

    test = rf"^[ \t]*(?:{test_prefix})(?:{test_marker})?(?:{kw})\s+"
    capture = (
        rf"^(?P<indent>[ \t]*)(?P<prefix>{capture_prefix})?(?P<marker>{capture_marker})?"
        rf"(?P<keyword>{kw})[ \t]+(?P<text>[^\n]*?)"
        rf"(?P<trailing>[ \t]*(?:{closers}))?[ \t]*$"
    )
    return test, capture


def compose_callout_sources(keywords: Sequence[str]) -> Tuple[str, str]:
    """Return (test, capture) regex source for tasks inside quote and callout blocks.

    The quote marker and any ``[!type]`` header land in the ``prefix`` group.
    """
    kw = keyword_alternation(keywords)
    test_callout = _CALLOUT_PREFIX.format(ws=r"\s")
    test_marker = list_marker_source(r"\s")
    capture_callout = _CALLOUT_PREFIX.format(ws=r"[ \t]")
    capture_marker = list_marker_source(r"[ \t]")
    test = (
        rf"^[ \t]*{test_callout}"
        rf"(?:{test_marker})?(?:{kw})\s+"
    )
    capture = (
        rf"^(?P<indent>[ \t]*)(?P<prefix>{capture_callout})"
        rf"(?P<marker>{capture_marker})?"
        rf"(?P<keyword>{kw})[ \t]+(?P<text>[^\n]*?)[ \t]*$"
    )
    return test, capture


def _compile_pair(test_source: str, capture_source: str, cache: Optional[RegexCache]) -> RegexPair:
    if cache is None:
        return RegexPair(
            test=re.compile(test_source),
            capture=re.compile(capture_source, re.MULTILINE),
        )
    return RegexPair(
        test=cache.get(test_source),
        capture=cache.get(capture_source, re.MULTILINE),
    )


def compose_regex_pair(
    keywords: Sequence[str],
    language: Optional[LanguageDefinition],
    cache: Optional[RegexCache] = None,
) -> RegexPair:
    """Compile the test/capture pair for a keyword set and language."""
    test_source, capture_source = compose_sources(keywords, language)
    return _compile_pair(test_source, capture_source, cache)


class LanguageAwareRegexBuilder:
    """Builds RegexPairs for keyword sets, optionally per language."""

    def __init__(self, cache: Optional[RegexCache] = None):
        self.cache = cache if cache is not None else RegexCache()

    def build_regex(self, keywords: Sequence[str], language: Optional[LanguageDefinition] = None) -> RegexPair:
        """Build the pair for ``keywords`` using ``language``'s comment syntax.

        Without a language the pair matches plain lines only.
        """
        logger = logging.getLogger("todoseq.regex")
        pair = compose_regex_pair(keywords, language, self.cache)
        logger.debug(
            f"Built regex pair for {language.name if language else 'plain text'}",
            extra={"extra_fields": {
                "language": language.name if language else None,
                "keyword_count": len(keywords),
                "cache_size": self.cache.size(),
            }},
        )
        return pair

    def build_default_regex(self, keywords: Sequence[str]) -> RegexPair:
        return self.build_regex(keywords, None)

    def build_regex_with_all_keywords(
        self,
        language: Optional[LanguageDefinition],
        additional_keywords: Iterable[str] = (),
    ) -> RegexPair:
        """Build a pair seeded with every built-in keyword plus extras."""
        extras = [k for k in additional_keywords if isinstance(k, str) and k]
        return self.build_regex(list(ALL_BUILTIN_KEYWORDS) + extras, language)

    def build_callout_regex(self, keywords: Sequence[str]) -> RegexPair:
        """Build the pair for tasks written inside ``>`` quote or callout blocks."""
        test_source, capture_source = compose_callout_sources(keywords)
        pair = _compile_pair(test_source, capture_source, self.cache)
        logging.getLogger("todoseq.regex").debug(
            "Built callout regex pair",
            extra={"extra_fields": {"keyword_count": len(keywords), "cache_size": self.cache.size()}},
        )
        return pair
