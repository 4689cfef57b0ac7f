"""Task engine for todoseq.

This module wires keyword resolution, transition parsing, the language
registry and task extraction together from one ``TaskSettings`` value.
A settings change rebuilds every component; nothing is mutated in place.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .extractor import TaskExtractor
from .keywords import KeywordManager
from .languages import LanguageRegistry, default_registry
from .models import KeywordGroup, Task
from .regex_builder import LanguageAwareRegexBuilder, RegexCache
from .settings import TaskSettings
from .todoseq_logging import (
    log_error_with_context,
    log_operation,
    log_performance,
    observability_hooks,
)
from .transitions import TaskStateTransitionManager


class TaskEngine:
    """Facade over every todoseq component for one configuration."""

    def __init__(self, settings: Optional[TaskSettings] = None, registry: Optional[LanguageRegistry] = None):
        self.registry = registry if registry is not None else default_registry()
        self.regex_cache = RegexCache()
        self._build(settings or TaskSettings())

    def _build(self, settings: TaskSettings) -> None:
        with log_operation("build_engine", include_code_blocks=settings.include_code_blocks):
            self.settings = settings
            self.keyword_manager = KeywordManager(settings.keyword_settings())
            self.transition_manager = TaskStateTransitionManager(
                self.keyword_manager,
                settings.transition_statements,
                default_inactive=settings.default_inactive,
                default_active=settings.default_active,
                default_completed=settings.default_completed,
            )
            self.regex_cache.clear()
            self.extractor = TaskExtractor(
                self.keyword_manager,
                self.registry,
                LanguageAwareRegexBuilder(self.regex_cache),
                include_code_blocks=settings.include_code_blocks,
                include_callout_blocks=settings.include_callout_blocks,
                language_comment_support=settings.language_comment_support,
            )

        validation = self.keyword_manager.validation
        observability_hooks.log_event(
            "keywords_resolved",
            keyword_count=len(self.keyword_manager.get_all_keywords()),
            error_count=len(validation.errors),
            warning_count=len(validation.warnings),
        )
        observability_hooks.log_event(
            "transitions_parsed",
            transition_count=len(self.transition_manager.get_transitions()),
            error_count=len(self.transition_manager.get_validation_errors()),
        )

    def reload(self, settings: TaskSettings) -> None:
        """Rebuild every component from new settings."""
        logger = logging.getLogger("todoseq.engine")
        self._build(settings)
        logger.info("Task engine reloaded")
        observability_hooks.log_event(
            "engine_reloaded",
            keyword_count=len(self.keyword_manager.get_all_keywords()),
        )

    @log_performance("engine_extract_tasks")
    def extract_tasks(self, text: str, path: str = "") -> List[Task]:
        """Extract tasks from document text."""
        logger = logging.getLogger("todoseq.engine")
        try:
            tasks = self.extractor.extract(text, path)
        except Exception as e:
            logger.error(f"Failed to extract tasks from {path or '<text>'}: {e}")
            log_error_with_context(e, {
                "operation": "extract_tasks",
                "path": path,
                "length": len(text),
            })
            raise

        observability_hooks.log_event(
            "tasks_extracted",
            path=path,
            task_count=len(tasks),
            completed_count=sum(1 for task in tasks if task.completed),
        )
        return tasks

    def next_state(self, current: str) -> str:
        return self.transition_manager.get_next_state(current)

    def cycle_state(self, current: str) -> str:
        return self.transition_manager.get_cycle_state(current)

    def keyword_groups(self) -> Dict[str, List[str]]:
        return self.keyword_manager.groups()

    def validation_report(self) -> Dict[str, Any]:
        """Keyword and transition problems for the current settings."""
        keyword_validation = self.keyword_manager.validation
        transition_errors = self.transition_manager.get_validation_errors()
        return {
            "valid": keyword_validation.is_valid and not transition_errors,
            "settings_issues": self.settings.validate(),
            "keywords": keyword_validation.to_dict(),
            "transitions": {
                "edges": self.transition_manager.get_transitions(),
                "errors": [error.to_dict() for error in transition_errors],
                "statements": list(self.transition_manager.statements),
            },
            "defaults": {
                "inactive": self.transition_manager.default_inactive,
                "active": self.transition_manager.default_active,
                "completed": self.transition_manager.default_completed,
            },
        }

    def describe_keyword(self, keyword: str) -> Dict[str, Any]:
        group: Optional[KeywordGroup] = self.keyword_manager.get_group(keyword)
        return {
            "keyword": keyword,
            "group": group.value if group else None,
            "next_state": self.next_state(keyword),
            "cycle_state": self.cycle_state(keyword),
            "terminal": self.transition_manager.is_terminal_state(keyword),
            "can_transition": self.transition_manager.can_transition(keyword),
        }
