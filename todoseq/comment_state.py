"""Tracking of unterminated block comments while scanning a code block."""

from __future__ import annotations

from typing import Optional

from .languages import LanguageDefinition
from .models import CommentState


class MultilineCommentState:
    """Line-by-line tracker of whether the scan is inside a block comment.

    One instance belongs to one sequential scan. Changing language or
    calling ``reset`` always returns to the outside state.
    """

    def __init__(self, language: Optional[LanguageDefinition] = None):
        self.current_language: Optional[LanguageDefinition] = language
        self.in_multiline_comment = False
        self.multiline_comment_indent = ""

    def set_language(self, language: Optional[LanguageDefinition]) -> None:
        self.current_language = language
        self.reset()

    def reset(self) -> None:
        self.in_multiline_comment = False
        self.multiline_comment_indent = ""

    @property
    def state(self) -> CommentState:
        return CommentState(self.in_multiline_comment, self.multiline_comment_indent)

    def handle_line(self, line: str) -> CommentState:
        """Advance the tracker past ``line`` and return the resulting state."""
        language = self.current_language
        if language is None:
            return CommentState.outside()

        if not self.in_multiline_comment:
            start = language.multi_line_start
            if start is None:
                return self.state
            opened = start.search(line)
            if opened is None:
                return self.state
            end = language.multi_line_end
            # Opened and closed on the same line
            if end is not None and end.search(line, opened.end()) is not None:
                return self.state
            self.in_multiline_comment = True
            self.multiline_comment_indent = line[: len(line) - len(line.lstrip())]
            return self.state

        end = language.multi_line_end
        if end is not None and end.search(line) is not None:
            self.reset()
        return self.state
