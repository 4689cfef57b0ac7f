"""Task extraction from markdown-like documents.

The extractor walks a document line by line, follows fenced code blocks
and math blocks, switches comment syntax per code block language and
applies the matching RegexPair to every line. Outside code blocks it also
follows ``>`` quote and callout blocks. ``SCHEDULED:`` and ``DEADLINE:``
lines directly below a task attach dates to it.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .comment_state import MultilineCommentState
from .keywords import KeywordManager
from .languages import LanguageDefinition, LanguageRegistry
from .models import CommentState, RegexPair, Task, TaskLineParts
from .regex_builder import LanguageAwareRegexBuilder
from .todoseq_logging import log_performance


PRIORITY_LEVELS: Dict[str, str] = {"A": "high", "B": "med", "C": "low"}

# Prefixes that are only valid on lines inside a block comment
_CONTINUATION_ONLY_PREFIXES = ("", "*")

_DATE_KINDS = ("SCHEDULED", "DEADLINE")

# <2024-01-01>, <2024-01-01 Mon>, <2024-01-01 10:30>, <2024-01-01 Mon 10:30>
_DATE_PATTERN = re.compile(
    r"^<(\d{4}-\d{2}-\d{2})(?:\s+(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun))?(?:\s+(\d{2}:\d{2}))?>"
)
_DATE_PREFIX_PATTERN = re.compile(r"^\s*(?:>\s*)?(?:SCHEDULED|DEADLINE):\s*")


def parse_task_date(value: str) -> Optional[str]:
    """Parse an org-style ``<YYYY-MM-DD [Dow] [HH:MM]>`` stamp to ISO 8601.

    Returns None when the stamp is malformed or names an impossible date.
    """
    match = _DATE_PATTERN.match(value.strip())
    if match is None:
        return None
    day, time = match.groups()
    try:
        if time:
            return datetime.strptime(f"{day} {time}", "%Y-%m-%d %H:%M").isoformat(timespec="minutes")
        return datetime.strptime(day, "%Y-%m-%d").date().isoformat()
    except ValueError:
        return None


def date_line_kind(line: str, task_indent: str) -> Optional[str]:
    """Return ``"scheduled"`` or ``"deadline"`` for a date line below a task.

    Quoted date lines always qualify; other lines must be indented at least
    as deep as the task.
    """
    stripped = line.strip()
    if line.startswith(">"):
        quoted = stripped[1:].strip()
        for kind in _DATE_KINDS:
            if quoted.startswith(f"{kind}:"):
                return kind.lower()

    found = next((kind for kind in _DATE_KINDS if stripped.startswith(f"{kind}:")), None)
    if found is None:
        return None
    line_indent = line[: len(line) - len(line.lstrip())]
    if not line_indent.startswith(task_indent):
        return None
    return found.lower()


class TaskExtractor:
    """Extracts ``Task`` records from document text."""

    _FENCE_PATTERN = re.compile(r"^[ \t]*(`{3,}|~{3,}|\$\$)([\w+#.-]*)")
    _PRIORITY_PATTERN = re.compile(r"(\s*)\[#([ABC])\](\s*)")
    _CHECKED_PATTERN = re.compile(r"\[[xX]\]")
    _CALLOUT_HEADER_PATTERN = re.compile(r"^[ \t]*>\s*(?:\[!\s*([^\]]+)\s*\]\s*)?-?\s*$")

    def __init__(
        self,
        keyword_manager: KeywordManager,
        registry: LanguageRegistry,
        builder: Optional[LanguageAwareRegexBuilder] = None,
        include_code_blocks: bool = True,
        language_comment_support: bool = True,
        include_callout_blocks: bool = True,
    ):
        self.keyword_manager = keyword_manager
        self.registry = registry
        self.builder = builder or LanguageAwareRegexBuilder()
        self.include_code_blocks = include_code_blocks
        self.language_comment_support = language_comment_support
        self.include_callout_blocks = include_callout_blocks
        self._plain_pair: Optional[RegexPair] = None
        self._callout_pair: Optional[RegexPair] = None
        self._language_pairs: Dict[str, RegexPair] = {}

    def regex_for(self, language: Optional[LanguageDefinition]) -> RegexPair:
        """Return the cached pair for a language, or the plain-text pair."""
        keywords = self.keyword_manager.get_all_keywords()
        if language is None:
            if self._plain_pair is None:
                self._plain_pair = self.builder.build_default_regex(keywords)
            return self._plain_pair

        pair = self._language_pairs.get(language.name)
        if pair is None:
            pair = self.builder.build_regex(keywords, language)
            self._language_pairs[language.name] = pair
        return pair

    def callout_regex(self) -> RegexPair:
        if self._callout_pair is None:
            self._callout_pair = self.builder.build_callout_regex(self.keyword_manager.get_all_keywords())
        return self._callout_pair

    def resolve_language(self, tag: str) -> Optional[LanguageDefinition]:
        if not self.language_comment_support or not tag:
            return None
        return self.registry.get_language_by_identifier(tag)

    @log_performance("extract_tasks")
    def extract(self, text: str, path: str = "") -> List[Task]:
        """Extract every task from ``text``.

        Line numbers are 0-based. Math blocks are always skipped; code
        blocks are skipped unless ``include_code_blocks`` is set, quote and
        callout blocks unless ``include_callout_blocks`` is set.
        """
        logger = logging.getLogger("todoseq.extractor")
        comment_state = MultilineCommentState()
        tasks: List[Task] = []

        fence_marker: Optional[str] = None
        language: Optional[LanguageDefinition] = None
        callout: Optional[str] = None

        lines = [raw_line.rstrip("\r") for raw_line in text.split("\n")]
        for index, line in enumerate(lines):
            fence = self._FENCE_PATTERN.match(line)
            if fence:
                marker = fence.group(1)[0]
                if fence_marker is None:
                    fence_marker = marker
                    language = None if marker == "$" else self.resolve_language(fence.group(2))
                    comment_state.set_language(language)
                    callout = None
                    continue
                if marker == fence_marker:
                    fence_marker = None
                    language = None
                    comment_state.set_language(None)
                    continue
                # A different fence character inside a block is plain content

            if fence_marker == "$":
                continue
            if fence_marker is not None and not self.include_code_blocks:
                continue

            if fence_marker is None:
                callout = self._next_callout(line, callout)
                if callout is not None:
                    if not self.include_callout_blocks:
                        continue
                    quoted = self.callout_regex().decompose(line)
                    if quoted is not None:
                        task = self._build_task(path, index, line, quoted, None, "", callout)
                        tasks.append(self._attach_dates(task, lines, index, in_callout=True))
                        continue

            before = comment_state.state
            after = comment_state.handle_line(line) if language is not None else CommentState.outside()

            pair = self.regex_for(language)
            if not pair.is_task(line):
                continue
            parts = pair.decompose(line)
            if parts is None:
                continue

            if language is not None and parts.comment_prefix.strip() in _CONTINUATION_ONLY_PREFIXES:
                if not (before.in_multiline_comment or after.in_multiline_comment):
                    continue

            if before.in_multiline_comment:
                comment_indent = before.multiline_comment_indent
            else:
                comment_indent = after.multiline_comment_indent

            task = self._build_task(path, index, line, parts, language, comment_indent)
            tasks.append(self._attach_dates(task, lines, index))

        logger.debug(f"Extracted {len(tasks)} tasks from {path or '<text>'}")
        return tasks

    def _build_task(
        self,
        path: str,
        index: int,
        line: str,
        parts: TaskLineParts,
        language: Optional[LanguageDefinition],
        comment_indent: str,
        callout: Optional[str] = None,
    ) -> Task:
        priority, text = self.extract_priority(parts.text)
        checked = bool(self._CHECKED_PATTERN.search(parts.list_marker))
        return Task(
            path=path,
            line=index,
            raw_text=line,
            indent=parts.indent,
            comment_prefix=parts.comment_prefix,
            list_marker=parts.list_marker,
            state=parts.keyword,
            text=text,
            completed=checked or self.keyword_manager.is_completed(parts.keyword),
            priority=priority,
            trailing_comment_end=parts.trailing_comment_end,
            language=language.name if language else None,
            comment_indent=comment_indent,
            callout=callout,
        )

    def _next_callout(self, line: str, current: Optional[str]) -> Optional[str]:
        """Callout type in effect after ``line``, or None outside quote blocks.

        A header line (``>`` or ``> [!type]``) opens a block and a quoted
        task line opens a plain quote block. Any line not starting with
        ``>`` closes it.
        """
        header = self._CALLOUT_HEADER_PATTERN.match(line)
        if header:
            return (header.group(1) or "").strip() or "quote"
        if not line.strip().startswith(">"):
            return None
        if current is None and self.callout_regex().is_task(line):
            return "quote"
        return current

    def _attach_dates(self, task: Task, lines: List[str], index: int, in_callout: bool = False) -> Task:
        """Fill ``scheduled`` and ``deadline`` from the date lines after a task."""
        logger = logging.getLogger("todoseq.extractor")
        for number in range(index + 1, len(lines)):
            line = lines[number]
            if not line.strip():
                continue
            if in_callout and not line.startswith(">"):
                break

            kind = date_line_kind(line, task.indent)
            if kind is not None and getattr(task, kind) is None:
                value = parse_task_date(_DATE_PREFIX_PATTERN.sub("", line, count=1))
                if value is None:
                    logger.warning(f"Invalid {kind} date at line {number + 1}: {line.strip()!r}")
                else:
                    setattr(task, kind, value)
            elif kind is None or (task.scheduled is not None and task.deadline is not None):
                break
        return task

    @classmethod
    def extract_priority(cls, text: str) -> Tuple[Optional[str], str]:
        """Pull the first ``[#A]``/``[#B]``/``[#C]`` token out of ``text``."""
        match = cls._PRIORITY_PATTERN.search(text)
        if match is None:
            return None, text
        before = text[: match.start()]
        after = text[match.end():]
        cleaned = re.sub(r"[ \t]+", " ", f"{before} {after}").strip()
        return PRIORITY_LEVELS[match.group(2)], cleaned

    def clear_cache(self) -> None:
        self._plain_pair = None
        self._callout_pair = None
        self._language_pairs.clear()
