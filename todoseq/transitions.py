"""State transitions between task keywords.

Transitions are described with a small line-oriented syntax::

    TODO -> DOING -> DONE            chain
    (WAIT | WAITING) -> IN-PROGRESS  group alternative
    TODO -> [DONE]                   terminal shorthand, DONE loops to itself

``TransitionParser`` turns statements into an edge map and a list of
errors. ``TaskStateTransitionManager`` combines those edges with
per-group defaults to answer "next state" and "cycle state" queries.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from .keywords import KeywordManager
from .models import ParsedTransitionResult, TransitionError, TransitionErrorType
from .todoseq_logging import log_transition_errors


DEFAULT_TRANSITION_STATEMENTS: Tuple[str, ...] = (
    "TODO -> DOING -> DONE",
    "(WAIT | WAITING) -> IN-PROGRESS",
    "LATER -> NOW -> DONE",
)

DEFAULT_INACTIVE_KEYWORD = "TODO"
DEFAULT_ACTIVE_KEYWORD = "DOING"
DEFAULT_COMPLETED_KEYWORD = "DONE"

_ARROW = "->"
_GROUP_PATTERN = re.compile(r"^\((?P<members>.*)\)$")
_TERMINAL_PATTERN = re.compile(r"^\[(?P<keyword>.*)\]$")
_INVALID_KEYWORD_CHARS = re.compile(r"[\s|()\[\]]")


class _StatementSyntaxError(Exception):
    pass


class TransitionParser:
    """Parser for declarative transition statements."""

    def __init__(self, keyword_manager: KeywordManager):
        self.keyword_manager = keyword_manager

    def parse(self, statements: Sequence[str]) -> ParsedTransitionResult:
        """Parse every statement; a bad statement never stops the others."""
        result = ParsedTransitionResult()

        for statement in statements:
            if not statement or not statement.strip():
                continue

            try:
                edges = self._parse_statement(statement)
            except _StatementSyntaxError as e:
                result.errors.append(
                    TransitionError(statement, str(e), TransitionErrorType.SYNTAX_ERROR)
                )
                continue

            unknown = self._first_unknown_keyword(edges)
            if unknown is not None:
                result.errors.append(
                    TransitionError(
                        statement,
                        f"Keyword '{unknown}' not found in any keyword group",
                        TransitionErrorType.INVALID_KEYWORD,
                    )
                )
                continue

            for source, target in edges:
                existing = result.transitions.get(source)
                if existing is None:
                    result.transitions[source] = target
                elif existing != target:
                    result.errors.append(
                        TransitionError(
                            statement,
                            f"State '{source}' already transitions to '{existing}'",
                            TransitionErrorType.CONFLICT,
                        )
                    )

        return result

    def _parse_statement(self, statement: str) -> List[Tuple[str, str]]:
        parts = [part.strip() for part in statement.strip().split(_ARROW)]
        if len(parts) < 2:
            raise _StatementSyntaxError("Invalid syntax: expected at least one -> operator")
        if any(not part for part in parts):
            raise _StatementSyntaxError("Invalid syntax: empty state around ->")

        positions: List[List[str]] = []
        terminal: Optional[str] = None
        for index, part in enumerate(parts):
            terminal_match = _TERMINAL_PATTERN.match(part)
            if terminal_match:
                if index != len(parts) - 1:
                    raise _StatementSyntaxError(
                        f"Invalid syntax: terminal state '{part}' must be the last state"
                    )
                terminal = self._normalize_single(terminal_match.group("keyword"))
                positions.append([terminal])
            else:
                positions.append(self._parse_position(part))

        edges: List[Tuple[str, str]] = []
        for sources, targets in zip(positions, positions[1:]):
            for source in sources:
                for target in targets:
                    edges.append((source, target))
        if terminal is not None:
            edges.append((terminal, terminal))
        return edges

    def _parse_position(self, part: str) -> List[str]:
        group_match = _GROUP_PATTERN.match(part)
        if group_match:
            members = [member.strip() for member in group_match.group("members").split("|")]
            if any(not member for member in members):
                raise _StatementSyntaxError(f"Invalid syntax: empty alternative in '{part}'")
            return [self._normalize_single(member) for member in members]
        return [self._normalize_single(part)]

    @staticmethod
    def _normalize_single(token: str) -> str:
        keyword = token.strip()
        if not keyword or _INVALID_KEYWORD_CHARS.search(keyword):
            raise _StatementSyntaxError(f"Invalid syntax: '{token}' is not a keyword")
        return keyword.upper()

    def _first_unknown_keyword(self, edges: List[Tuple[str, str]]) -> Optional[str]:
        known = set(self.keyword_manager.get_all_keywords())
        for source, target in edges:
            for keyword in (source, target):
                if keyword not in known:
                    return keyword
        return None

    @staticmethod
    def is_terminal_state(state: str, transitions: Dict[str, str]) -> bool:
        """A terminal state is one whose edge points back to itself."""
        return transitions.get(state) == state


class TaskStateTransitionManager:
    """Computes next and cycle states from parsed edges and group defaults."""

    def __init__(
        self,
        keyword_manager: KeywordManager,
        transition_statements: Optional[Sequence[str]] = None,
        default_inactive: Optional[str] = None,
        default_active: Optional[str] = None,
        default_completed: Optional[str] = None,
    ):
        self.keyword_manager = keyword_manager
        self.default_inactive = _normalize_default(default_inactive, DEFAULT_INACTIVE_KEYWORD)
        self.default_active = _normalize_default(default_active, DEFAULT_ACTIVE_KEYWORD)
        self.default_completed = _normalize_default(default_completed, DEFAULT_COMPLETED_KEYWORD)

        statements = [s for s in (transition_statements or ()) if s and s.strip()]
        if not statements:
            statements = list(DEFAULT_TRANSITION_STATEMENTS)
        self.statements: Tuple[str, ...] = tuple(statements)

        self._parsed = TransitionParser(keyword_manager).parse(self.statements)
        if self._parsed.errors:
            log_transition_errors(self._parsed.errors)

        logger = logging.getLogger("todoseq.transitions")
        logger.debug(
            f"Parsed {len(self._parsed.transitions)} transitions",
            extra={"extra_fields": {
                "statement_count": len(self.statements),
                "error_count": len(self._parsed.errors),
            }},
        )

    def get_next_state(self, current: str) -> str:
        """Return the state a task moves to from ``current``."""
        keywords = self.keyword_manager
        if keywords.is_archived(current) or not keywords.is_known_keyword(current):
            return current

        target = self._parsed.transitions.get(current)
        if target is not None:
            return target

        return self._group_default(current)

    def get_cycle_state(self, current: str) -> str:
        """Like ``get_next_state`` but an empty state starts the cycle and
        completed states cycle back to no keyword at all."""
        if current == "":
            return self.default_inactive

        keywords = self.keyword_manager
        if keywords.is_archived(current) or not keywords.is_known_keyword(current):
            return current

        target = self._parsed.transitions.get(current)
        if target is not None:
            return target

        if keywords.is_completed(current):
            return ""
        return self._group_default(current)

    def _group_default(self, current: str) -> str:
        keywords = self.keyword_manager
        if keywords.is_inactive(current) or keywords.is_waiting(current):
            return self.default_active
        if keywords.is_active(current):
            return self.default_completed
        if keywords.is_completed(current):
            return self.default_inactive
        return current

    def is_terminal_state(self, state: str) -> bool:
        return TransitionParser.is_terminal_state(state, self._parsed.transitions)

    def can_transition(self, state: str) -> bool:
        return not self.keyword_manager.is_archived(state)

    def is_archived_state(self, state: str) -> bool:
        return self.keyword_manager.is_archived(state)

    def get_transitions(self) -> Dict[str, str]:
        return dict(self._parsed.transitions)

    def get_validation_errors(self) -> List[TransitionError]:
        return list(self._parsed.errors)

    def has_validation_errors(self) -> bool:
        return bool(self._parsed.errors)


def _normalize_default(value: Optional[str], fallback: str) -> str:
    if value is None or not value.strip():
        return fallback
    return value.strip().upper()
