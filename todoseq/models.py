"""Data models for todoseq keyword parsing.

This module contains the core data structures shared by keyword resolution,
state transitions, regex composition and task extraction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Pattern, Set, Tuple


class KeywordGroup(str, Enum):
    """Semantic group a task keyword belongs to."""

    ACTIVE = "activeKeywords"
    INACTIVE = "inactiveKeywords"
    WAITING = "waitingKeywords"
    COMPLETED = "completedKeywords"
    ARCHIVED = "archivedKeywords"

    @property
    def label(self) -> str:
        return self.name.lower()


class KeywordAction(str, Enum):
    """Whether a configured token adds a keyword or removes a built-in one."""

    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class KeywordToken:
    """A single parsed entry from a keyword settings list."""

    keyword: str
    action: KeywordAction
    group: KeywordGroup

    @property
    def is_removal(self) -> bool:
        return self.action is KeywordAction.REMOVE

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "keyword": self.keyword,
            "type": self.action.value,
            "group": self.group.value,
        }


@dataclass(frozen=True, slots=True)
class KeywordIssue:
    """An error or warning raised while resolving keyword settings."""

    keyword: str
    group: KeywordGroup
    message: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "keyword": self.keyword,
            "group": self.group.value,
            "message": self.message,
        }


@dataclass(slots=True)
class KeywordValidationResult:
    """Validation report produced alongside a keyword resolution."""

    errors: List[KeywordIssue] = field(default_factory=list)
    warnings: List[KeywordIssue] = field(default_factory=list)
    invalid_keywords: Set[str] = field(default_factory=set)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def errors_for_group(self, group: KeywordGroup) -> List[KeywordIssue]:
        """Return the errors reported against one group."""
        return [issue for issue in self.errors if issue.group is group]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "invalid_keywords": sorted(self.invalid_keywords),
        }


@dataclass(frozen=True, slots=True)
class KeywordResolution:
    """Effective keyword order per group plus the derived lookup."""

    order: Dict[KeywordGroup, Tuple[str, ...]]
    lookup: Dict[str, KeywordGroup]
    validation: KeywordValidationResult

    @property
    def all_keywords(self) -> Tuple[str, ...]:
        return tuple(keyword for group in KeywordGroup for keyword in self.order[group])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "groups": {group.value: list(self.order[group]) for group in KeywordGroup},
            "validation": self.validation.to_dict(),
        }


class TransitionErrorType(str, Enum):
    """Kinds of problems reported by the transition parser."""

    INVALID_KEYWORD = "invalid-keyword"
    CONFLICT = "conflict"
    SYNTAX_ERROR = "syntax-error"


@dataclass(frozen=True, slots=True)
class TransitionError:
    """A problem with one transition statement."""

    line: str
    message: str
    error_type: TransitionErrorType

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "line": self.line,
            "message": self.message,
            "type": self.error_type.value,
        }


@dataclass(slots=True)
class ParsedTransitionResult:
    """Edges keyed by source keyword, plus every error seen while parsing."""

    transitions: Dict[str, str] = field(default_factory=dict)
    errors: List[TransitionError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "transitions": dict(self.transitions),
            "errors": [error.to_dict() for error in self.errors],
        }


@dataclass(frozen=True, slots=True)
class TaskLineParts:
    """Decomposition of one task line by a capture pattern."""

    indent: str
    comment_prefix: str
    list_marker: str
    keyword: str
    text: str
    trailing_comment_end: str


@dataclass(frozen=True, slots=True)
class RegexPair:
    """Test and capture patterns for one (keyword set, language) combination."""

    test: Pattern[str]
    capture: Pattern[str]

    def is_task(self, line: str) -> bool:
        return self.test.search(line) is not None

    def decompose(self, line: str) -> Optional[TaskLineParts]:
        """Split a single task line into its parts, or None if it does not match."""
        match = self.capture.match(line)
        if match is None:
            return None
        return _parts_from_match(match)

    def iter_matches(self, block: str) -> Iterator[TaskLineParts]:
        """Yield the parts of every task line found in a multi-line block."""
        for match in self.capture.finditer(block):
            yield _parts_from_match(match)


def _parts_from_match(match) -> TaskLineParts:
    groups = match.groupdict()
    return TaskLineParts(
        indent=groups.get("indent") or "",
        comment_prefix=groups.get("prefix") or "",
        list_marker=groups.get("marker") or "",
        keyword=groups.get("keyword") or "",
        text=(groups.get("text") or "").strip(),
        trailing_comment_end=groups.get("trailing") or "",
    )


@dataclass(frozen=True, slots=True)
class CommentState:
    """Snapshot of the multiline comment tracker after one line."""

    in_multiline_comment: bool = False
    multiline_comment_indent: str = ""

    @classmethod
    def outside(cls) -> "CommentState":
        return cls(False, "")

    @classmethod
    def inside(cls, indent: str) -> "CommentState":
        return cls(True, indent)


@dataclass(slots=True)
class Task:
    """A task extracted from one line of a document."""

    path: str
    line: int
    raw_text: str
    indent: str
    comment_prefix: str
    list_marker: str
    state: str
    text: str
    completed: bool
    priority: Optional[str] = None
    trailing_comment_end: str = ""
    language: Optional[str] = None
    comment_indent: str = ""
    callout: Optional[str] = None
    scheduled: Optional[str] = None
    deadline: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "path": self.path,
            "line": self.line,
            "raw_text": self.raw_text,
            "indent": self.indent,
            "comment_prefix": self.comment_prefix,
            "list_marker": self.list_marker,
            "state": self.state,
            "text": self.text,
            "completed": self.completed,
            "priority": self.priority,
            "trailing_comment_end": self.trailing_comment_end,
            "language": self.language,
            "comment_indent": self.comment_indent,
            "callout": self.callout,
            "scheduled": self.scheduled,
            "deadline": self.deadline,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary representation."""
        return cls(
            path=data.get("path", ""),
            line=data["line"],
            raw_text=data.get("raw_text", ""),
            indent=data.get("indent", ""),
            comment_prefix=data.get("comment_prefix", ""),
            list_marker=data.get("list_marker", ""),
            state=data["state"],
            text=data.get("text", ""),
            completed=data.get("completed", False),
            priority=data.get("priority"),
            trailing_comment_end=data.get("trailing_comment_end", ""),
            language=data.get("language"),
            comment_indent=data.get("comment_indent", ""),
            callout=data.get("callout"),
            scheduled=data.get("scheduled"),
            deadline=data.get("deadline"),
        )
