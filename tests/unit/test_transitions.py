"""Unit tests for transition parsing and state computation."""

import pytest

from todoseq.keywords import KeywordManager
from todoseq.models import KeywordGroup, TransitionErrorType
from todoseq.transitions import (
    DEFAULT_TRANSITION_STATEMENTS,
    TaskStateTransitionManager,
    TransitionParser,
)


@pytest.fixture
def keywords():
    return KeywordManager()


@pytest.fixture
def parser(keywords):
    return TransitionParser(keywords)


class TestTransitionParser:
    """Test cases for TransitionParser."""

    def test_chain(self, parser):
        """Test a simple chain produces consecutive edges."""
        result = parser.parse(["TODO -> DOING -> DONE"])

        assert result.transitions == {"TODO": "DOING", "DOING": "DONE"}
        assert result.errors == []

    def test_keywords_are_case_folded(self, parser):
        """Test that whitespace and case are insignificant."""
        result = parser.parse(["  todo->doing  "])
        assert result.transitions == {"TODO": "DOING"}

    def test_group_alternative_source(self, parser):
        """Test that a group on the left expands to every member."""
        result = parser.parse(["(WAIT | WAITING) -> IN-PROGRESS"])
        assert result.transitions == {"WAIT": "IN-PROGRESS", "WAITING": "IN-PROGRESS"}

    def test_group_alternative_mid_chain(self, parser):
        """Test a group in the middle of a chain links both neighbours."""
        result = parser.parse(["TODO -> (NOW|DOING) -> DONE"])

        assert result.transitions["NOW"] == "DONE"
        assert result.transitions["DOING"] == "DONE"
        assert result.transitions["TODO"] == "NOW"
        # TODO -> DOING is a second edge for TODO within the same statement
        assert [e.error_type for e in result.errors] == [TransitionErrorType.CONFLICT]

    def test_terminal_shorthand(self, parser):
        """Test that [FINAL] adds the edge and a self-loop."""
        result = parser.parse(["TODO -> [DONE]"])

        assert result.transitions == {"TODO": "DONE", "DONE": "DONE"}
        assert TransitionParser.is_terminal_state("DONE", result.transitions)
        assert not TransitionParser.is_terminal_state("TODO", result.transitions)

    def test_terminal_at_end_of_chain(self, parser):
        """Test the terminal shorthand as the last hop of a chain."""
        result = parser.parse(["LATER -> NOW -> [CANCELED]"])
        assert result.transitions == {"LATER": "NOW", "NOW": "CANCELED", "CANCELED": "CANCELED"}

    def test_terminal_with_group_source(self, parser):
        """Test a group source with a terminal target."""
        result = parser.parse(["(TODO | LATER) -> [DONE]"])

        assert result.transitions == {"TODO": "DONE", "LATER": "DONE", "DONE": "DONE"}
        assert result.errors == []

    def test_blank_statements_skipped(self, parser):
        """Test that blank statements are ignored silently."""
        result = parser.parse(["", "   ", "TODO -> DONE"])
        assert result.transitions == {"TODO": "DONE"}
        assert result.errors == []

    @pytest.mark.parametrize("statement", [
        "TODO",
        "TODO ->",
        "-> DONE",
        "TODO -> -> DONE",
        "[TODO] -> DONE",
        "TODO -> [DONE] -> NOW",
        "TODO -> (DOING | ) ",
        "TODO -> DOING DONE",
        "TODO -> [DONE | NOW]",
    ])
    def test_syntax_errors(self, parser, statement):
        """Test malformed statements report syntax errors and add nothing."""
        result = parser.parse([statement])

        assert result.transitions == {}
        assert len(result.errors) == 1
        assert result.errors[0].error_type is TransitionErrorType.SYNTAX_ERROR
        assert result.errors[0].line == statement

    def test_unknown_keyword_rejects_whole_statement(self, parser):
        """Test that one unknown keyword discards every edge of the statement."""
        result = parser.parse(["TODO -> REVIEW -> DONE"])

        assert result.transitions == {}
        assert len(result.errors) == 1
        assert result.errors[0].error_type is TransitionErrorType.INVALID_KEYWORD
        assert "REVIEW" in result.errors[0].message

    def test_removed_keyword_is_invalid(self):
        """Test that a removed built-in can no longer appear in transitions."""
        parser = TransitionParser(KeywordManager({KeywordGroup.INACTIVE: ["-LATER"]}))
        result = parser.parse(["LATER -> NOW"])

        assert result.transitions == {}
        assert result.errors[0].error_type is TransitionErrorType.INVALID_KEYWORD

    def test_custom_keyword_is_valid(self):
        """Test that custom keywords may be used."""
        parser = TransitionParser(KeywordManager({KeywordGroup.ACTIVE: ["review"]}))
        result = parser.parse(["DOING -> REVIEW -> DONE"])
        assert result.transitions == {"DOING": "REVIEW", "REVIEW": "DONE"}

    def test_conflict_keeps_first_edge(self, parser):
        """Test that a later different edge for the same source is a conflict."""
        result = parser.parse(["TODO -> DOING", "TODO -> NOW"])

        assert result.transitions == {"TODO": "DOING"}
        assert len(result.errors) == 1
        assert result.errors[0].error_type is TransitionErrorType.CONFLICT
        assert result.errors[0].line == "TODO -> NOW"

    def test_identical_edge_is_not_a_conflict(self, parser):
        """Test that repeating the same edge is accepted."""
        result = parser.parse(["TODO -> DOING", "TODO -> DOING -> DONE"])

        assert result.transitions == {"TODO": "DOING", "DOING": "DONE"}
        assert result.errors == []

    def test_errors_do_not_stop_later_statements(self, parser):
        """Test that parsing continues after a bad statement."""
        result = parser.parse(["nonsense", "LATER -> NOW"])

        assert result.transitions == {"LATER": "NOW"}
        assert len(result.errors) == 1


class TestTaskStateTransitionManager:
    """Test cases for TaskStateTransitionManager."""

    @pytest.fixture
    def manager(self, keywords):
        return TaskStateTransitionManager(keywords)

    def test_default_program(self, manager):
        """Test that the built-in program is used without statements."""
        assert manager.statements == DEFAULT_TRANSITION_STATEMENTS
        assert manager.get_transitions() == {
            "TODO": "DOING",
            "DOING": "DONE",
            "WAIT": "IN-PROGRESS",
            "WAITING": "IN-PROGRESS",
            "LATER": "NOW",
            "NOW": "DONE",
        }
        assert not manager.has_validation_errors()

    def test_blank_statements_use_default_program(self, keywords):
        """Test that only blank statements count as none."""
        manager = TaskStateTransitionManager(keywords, ["", "  "])
        assert manager.statements == DEFAULT_TRANSITION_STATEMENTS

    def test_next_state_follows_edges(self, manager):
        """Test explicit edges."""
        assert manager.get_next_state("TODO") == "DOING"
        assert manager.get_next_state("DOING") == "DONE"
        assert manager.get_next_state("WAITING") == "IN-PROGRESS"

    def test_next_state_group_defaults(self, manager):
        """Test fallbacks for keywords without an edge."""
        # IN-PROGRESS is Active without an explicit edge
        assert manager.get_next_state("IN-PROGRESS") == "DONE"
        assert manager.get_next_state("DONE") == "TODO"
        assert manager.get_next_state("CANCELLED") == "TODO"

    def test_waiting_default_is_active(self, keywords):
        """Test the Waiting group falls back to the default active keyword."""
        manager = TaskStateTransitionManager(keywords, ["TODO -> DONE"])
        assert manager.get_next_state("WAIT") == "DOING"
        assert manager.get_next_state("LATER") == "DOING"

    def test_configured_defaults(self, keywords):
        """Test user-provided defaults are upper-cased and used."""
        manager = TaskStateTransitionManager(
            keywords,
            ["TODO -> DONE"],
            default_inactive="later",
            default_active=" now ",
            default_completed="cancelled",
        )

        assert manager.default_inactive == "LATER"
        assert manager.get_next_state("DOING") == "CANCELLED"
        assert manager.get_next_state("WAIT") == "NOW"
        assert manager.get_next_state("DONE") == "LATER"

    def test_blank_defaults_fall_back(self, keywords):
        """Test that blank defaults use the built-in fallbacks."""
        manager = TaskStateTransitionManager(keywords, default_active="  ")
        assert manager.default_active == "DOING"

    def test_archived_and_unknown_unchanged(self, manager):
        """Test that archived and unknown keywords never advance."""
        assert manager.get_next_state("ARCHIVED") == "ARCHIVED"
        assert manager.get_next_state("NOPE") == "NOPE"
        assert manager.get_cycle_state("ARCHIVED") == "ARCHIVED"
        assert manager.get_cycle_state("NOPE") == "NOPE"

    def test_terminal_state_is_idempotent(self, keywords):
        """Test that a terminal keyword stays put."""
        manager = TaskStateTransitionManager(keywords, ["TODO -> [DONE]"])

        state = "DONE"
        for _ in range(5):
            state = manager.get_next_state(state)
        assert state == "DONE"
        assert manager.is_terminal_state("DONE")

    def test_cycle_state(self, manager):
        """Test cycling from empty through completion and back to empty."""
        assert manager.get_cycle_state("") == "TODO"
        assert manager.get_cycle_state("TODO") == "DOING"
        assert manager.get_cycle_state("DOING") == "DONE"
        assert manager.get_cycle_state("DONE") == ""

    def test_cycle_and_next_differ_for_completed(self, manager):
        """Test the deliberate asymmetry between cycling and advancing a completed task."""
        assert manager.get_next_state("DONE") == "TODO"
        assert manager.get_cycle_state("DONE") == ""
        assert manager.get_next_state("CANCELED") == "TODO"
        assert manager.get_cycle_state("CANCELED") == ""

    def test_cycle_uses_explicit_edge_for_completed(self, keywords):
        """Test that an explicit edge wins over the completed special case."""
        manager = TaskStateTransitionManager(keywords, ["DONE -> TODO"])
        assert manager.get_cycle_state("DONE") == "TODO"

    def test_cycle_empty_uses_configured_inactive(self, keywords):
        """Test that the cycle starts at the configured inactive keyword."""
        manager = TaskStateTransitionManager(keywords, default_inactive="later")
        assert manager.get_cycle_state("") == "LATER"

    def test_next_state_of_empty_is_unchanged(self, manager):
        """Test that advancing a line with no keyword keeps it empty."""
        assert manager.get_next_state("") == ""

    def test_can_transition(self, manager):
        """Test transition and archive predicates."""
        assert manager.can_transition("TODO")
        assert not manager.can_transition("ARCHIVED")
        assert manager.is_archived_state("ARCHIVED")
        assert not manager.is_archived_state("DONE")

    def test_errors_are_retained_not_raised(self, keywords):
        """Test that a bad program leaves the manager usable."""
        manager = TaskStateTransitionManager(keywords, ["TODO -> NOPE", "LATER -> NOW"])

        assert manager.has_validation_errors()
        assert len(manager.get_validation_errors()) == 1
        assert manager.get_next_state("LATER") == "NOW"
        # No edge for TODO, so the inactive default applies
        assert manager.get_next_state("TODO") == "DOING"

    def test_returned_collections_are_copies(self, manager):
        """Test that callers cannot mutate the parsed state."""
        manager.get_transitions()["TODO"] = "DONE"
        manager.get_validation_errors().append(None)

        assert manager.get_next_state("TODO") == "DOING"
        assert not manager.has_validation_errors()
