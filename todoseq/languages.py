"""Comment syntax catalog for languages found in fenced code blocks.

Each language is described by a list of ``CommentFragment`` values. A
fragment pairs a role (single-line comment, block start, block end, block
continuation, inline trailing comment) with the regex source of the marker
that introduces it, for example ``//`` or ``/\\*+``. The regex builder and
the multiline comment tracker derive everything they need from these
fragments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple


class FragmentRole(str, Enum):
    """Role a comment fragment plays in a language's comment grammar."""

    SINGLE_LINE = "singleLine"
    BLOCK_START = "multiLineStart"
    BLOCK_END = "multiLineEnd"
    BLOCK_CONTINUATION = "multiLineAdditional"
    INLINE = "inline"


@dataclass(frozen=True, slots=True)
class CommentFragment:
    """A comment marker and the role it plays.

    ``marker`` is regex source for the marker alone, without surrounding
    whitespace. A continuation fragment may have an empty marker, meaning
    continuation lines inside a block comment carry no marker at all.
    """

    role: FragmentRole
    marker: str
    matcher: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.marker and self.role is not FragmentRole.BLOCK_CONTINUATION:
            raise ValueError(f"{self.role.value} fragment requires a marker")
        object.__setattr__(self, "matcher", re.compile(self.line_source()))

    def prefix_source(self, whitespace: str = r"\s") -> str:
        """Regex source matching this fragment as the prefix before a keyword.

        The source never includes the leading indent of the line.
        """
        m = self.marker
        if self.role is FragmentRole.BLOCK_CONTINUATION:
            return f"(?:(?:{m}){whitespace}+)?" if m else ""
        if self.role is FragmentRole.INLINE:
            return f".*{whitespace}+(?:{m}){whitespace}+"
        return f"(?:{m}){whitespace}+"

    def line_source(self) -> str:
        """Regex source used to detect this fragment anywhere on a raw line."""
        m = self.marker
        if self.role is FragmentRole.INLINE:
            return rf".*\s+(?:{m})\s+"
        if self.role is FragmentRole.BLOCK_END:
            return f"(?:{m})"
        # Anchored: a block opened after code on the same line is not tracked
        return rf"^\s*(?:{m})"

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "marker": self.marker}


def single_line(marker: str) -> CommentFragment:
    return CommentFragment(FragmentRole.SINGLE_LINE, marker)


def block_start(marker: str) -> CommentFragment:
    return CommentFragment(FragmentRole.BLOCK_START, marker)


def block_end(marker: str) -> CommentFragment:
    return CommentFragment(FragmentRole.BLOCK_END, marker)


def block_continuation(marker: str = "") -> CommentFragment:
    return CommentFragment(FragmentRole.BLOCK_CONTINUATION, marker)


def inline(marker: str) -> CommentFragment:
    return CommentFragment(FragmentRole.INLINE, marker)


@dataclass(frozen=True, slots=True)
class LanguageDefinition:
    """Comment grammar of one programming language."""

    name: str
    fragments: Tuple[CommentFragment, ...]
    aliases: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "fragments", tuple(self.fragments))
        object.__setattr__(self, "aliases", tuple(self.aliases))

    def fragments_for(self, role: FragmentRole) -> Tuple[CommentFragment, ...]:
        return tuple(fragment for fragment in self.fragments if fragment.role is role)

    def _combined(self, role: FragmentRole) -> Optional[Pattern[str]]:
        fragments = self.fragments_for(role)
        if not fragments:
            return None
        if len(fragments) == 1:
            return fragments[0].matcher
        return re.compile("|".join(f"(?:{fragment.line_source()})" for fragment in fragments))

    @property
    def single_line(self) -> Optional[Pattern[str]]:
        return self._combined(FragmentRole.SINGLE_LINE)

    @property
    def multi_line_start(self) -> Optional[Pattern[str]]:
        return self._combined(FragmentRole.BLOCK_START)

    @property
    def multi_line_end(self) -> Optional[Pattern[str]]:
        return self._combined(FragmentRole.BLOCK_END)

    @property
    def multi_line_additional(self) -> Optional[Pattern[str]]:
        return self._combined(FragmentRole.BLOCK_CONTINUATION)

    @property
    def inline(self) -> Optional[Pattern[str]]:
        return self._combined(FragmentRole.INLINE)

    def identifiers(self) -> Tuple[str, ...]:
        return (self.name,) + self.aliases

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "aliases": list(self.aliases),
            "fragments": [fragment.to_dict() for fragment in self.fragments],
        }


HASH_STYLE_FRAGMENTS: Tuple[CommentFragment, ...] = (
    single_line("#"),
    inline("#"),
)


def _c_style(single: str = "//", start: str = r"/\*+") -> Tuple[CommentFragment, ...]:
    return (
        single_line(single),
        block_start(start),
        block_end(r"\*/"),
        block_continuation(r"\*"),
        inline("//"),
        inline(r"/\*"),
    )


# Shared comment grammars
C_STYLE_FRAGMENTS: Tuple[CommentFragment, ...] = _c_style()

BUILTIN_LANGUAGES: Tuple[LanguageDefinition, ...] = (
    LanguageDefinition("c", C_STYLE_FRAGMENTS),
    LanguageDefinition("cpp", C_STYLE_FRAGMENTS, aliases=("c++",)),
    LanguageDefinition("csharp", _c_style(single="///?"), aliases=("cs",)),
    LanguageDefinition("dockerfile", HASH_STYLE_FRAGMENTS),
    LanguageDefinition("go", C_STYLE_FRAGMENTS, aliases=("golang",)),
    LanguageDefinition(
        "ini",
        (single_line("[;#]"), inline("[;#]")),
    ),
    LanguageDefinition("java", C_STYLE_FRAGMENTS),
    LanguageDefinition("javascript", C_STYLE_FRAGMENTS, aliases=("js",)),
    LanguageDefinition("kotlin", C_STYLE_FRAGMENTS, aliases=("kt",)),
    LanguageDefinition(
        "powershell",
        (
            single_line("#"),
            block_start("<#"),
            block_end("#>"),
            block_continuation(r"\*"),
            inline("#"),
            inline("<#"),
        ),
        aliases=("ps1",),
    ),
    LanguageDefinition(
        "python",
        (
            single_line("#"),
            block_start(r"['\"]{3}"),
            block_end(r"['\"]{3}"),
            block_continuation(),
            inline("#"),
        ),
        aliases=("py",),
    ),
    LanguageDefinition("r", HASH_STYLE_FRAGMENTS),
    LanguageDefinition(
        "ruby",
        (
            single_line("#"),
            block_start("=begin"),
            block_end("=end"),
            block_continuation(),
            inline("#"),
        ),
        aliases=("rb",),
    ),
    LanguageDefinition("rust", _c_style(single="//[/!]?", start=r"/\*\*?"), aliases=("rs",)),
    LanguageDefinition("shell", HASH_STYLE_FRAGMENTS, aliases=("sh", "bash")),
    LanguageDefinition(
        "sql",
        (
            single_line("--"),
            single_line("#"),
            block_start(r"/\*+"),
            block_end(r"\*/"),
            block_continuation(r"\*"),
            inline("--"),
            inline(r"/\*"),
        ),
    ),
    LanguageDefinition("swift", _c_style(single="///?")),
    LanguageDefinition("toml", HASH_STYLE_FRAGMENTS),
    LanguageDefinition("typescript", C_STYLE_FRAGMENTS, aliases=("ts",)),
    LanguageDefinition("yaml", HASH_STYLE_FRAGMENTS, aliases=("yml",)),
)


class LanguageRegistry:
    """Case-insensitive lookup of language definitions by name or alias."""

    def __init__(self, languages: Iterable[LanguageDefinition] = ()):
        self._languages: Dict[str, LanguageDefinition] = {}
        self._aliases: Dict[str, LanguageDefinition] = {}
        for language in languages:
            self.register_language(language)

    def register_language(self, language: LanguageDefinition) -> None:
        """Register a language; a later registration replaces an earlier one."""
        self._languages[language.name.lower()] = language
        for alias in language.aliases:
            self._aliases[alias.lower()] = language

    def get_language(self, name: Optional[str]) -> Optional[LanguageDefinition]:
        if not name:
            return None
        return self._languages.get(name.lower())

    def get_language_by_alias(self, alias: Optional[str]) -> Optional[LanguageDefinition]:
        if not alias:
            return None
        return self._aliases.get(alias.lower())

    def get_language_by_identifier(self, identifier: Optional[str]) -> Optional[LanguageDefinition]:
        """Look up by canonical name first, then by alias."""
        return self.get_language(identifier) or self.get_language_by_alias(identifier)

    def get_all_languages(self) -> List[LanguageDefinition]:
        return list(self._languages.values())

    def is_language_enabled(self, name: str, enabled_languages: Sequence[str]) -> bool:
        return name.lower() in {language.lower() for language in enabled_languages}

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.get_language_by_identifier(identifier) is not None

    def __len__(self) -> int:
        return len(self._languages)


def default_registry() -> LanguageRegistry:
    """Build a registry holding every built-in language."""
    return LanguageRegistry(BUILTIN_LANGUAGES)
