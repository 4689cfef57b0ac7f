"""Configuration for todoseq.

Settings are plain JSON. Keys may use snake_case or the camelCase names
of the host plugin's settings file; unknown keys are ignored.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import KeywordGroup
from .todoseq_logging import log_error_with_context


SETTINGS_ENV_VAR = "TODOSEQ_SETTINGS"

_LIST_FIELDS = (
    "additional_active_keywords",
    "additional_inactive_keywords",
    "additional_waiting_keywords",
    "additional_completed_keywords",
    "additional_archived_keywords",
    "transition_statements",
)

_OPTIONAL_STRING_FIELDS = ("default_inactive", "default_active", "default_completed")

_BOOL_FIELDS = ("include_code_blocks", "include_callout_blocks", "language_comment_support")

# camelCase names used by the host plugin
_ALIASES: Dict[str, str] = {
    "additionalActiveKeywords": "additional_active_keywords",
    "additionalInactiveKeywords": "additional_inactive_keywords",
    "additionalTaskKeywords": "additional_inactive_keywords",
    "additionalWaitingKeywords": "additional_waiting_keywords",
    "additionalCompletedKeywords": "additional_completed_keywords",
    "additionalArchivedKeywords": "additional_archived_keywords",
    "stateTransitions": "transition_statements",
    "transitionStatements": "transition_statements",
    "defaultInactiveKeyword": "default_inactive",
    "defaultActiveKeyword": "default_active",
    "defaultCompletedKeyword": "default_completed",
    "includeCodeBlocks": "include_code_blocks",
    "includeCalloutBlocks": "include_callout_blocks",
    "languageCommentSupport": "language_comment_support",
}


@dataclass(slots=True)
class TaskSettings:
    """User configuration consumed by the task engine."""

    additional_active_keywords: List[str] = field(default_factory=list)
    additional_inactive_keywords: List[str] = field(default_factory=list)
    additional_waiting_keywords: List[str] = field(default_factory=list)
    additional_completed_keywords: List[str] = field(default_factory=list)
    additional_archived_keywords: List[str] = field(default_factory=list)
    transition_statements: List[str] = field(default_factory=list)
    default_inactive: Optional[str] = None
    default_active: Optional[str] = None
    default_completed: Optional[str] = None
    include_code_blocks: bool = True
    include_callout_blocks: bool = True
    language_comment_support: bool = True

    def keyword_settings(self) -> Dict[KeywordGroup, List[str]]:
        """Raw keyword entries keyed by group."""
        return {
            KeywordGroup.ACTIVE: list(self.additional_active_keywords),
            KeywordGroup.INACTIVE: list(self.additional_inactive_keywords),
            KeywordGroup.WAITING: list(self.additional_waiting_keywords),
            KeywordGroup.COMPLETED: list(self.additional_completed_keywords),
            KeywordGroup.ARCHIVED: list(self.additional_archived_keywords),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            data[item.name] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskSettings":
        """Create from dictionary representation.

        Raises:
            ValueError: if the data is not a mapping or a field has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError("Settings must be a JSON object")

        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name in _LIST_FIELDS:
                values[name] = _string_list(name, value)
            elif name in _OPTIONAL_STRING_FIELDS:
                values[name] = _optional_string(name, value)
            elif name == "language_comment_support":
                values[name] = _comment_support_flag(value)
            elif name in _BOOL_FIELDS:
                if not isinstance(value, bool):
                    raise ValueError(f"Setting '{key}' must be a boolean")
                values[name] = value
        return cls(**values)

    def validate(self) -> List[str]:
        """Validate the settings and return any issues."""
        issues = []
        for name in _OPTIONAL_STRING_FIELDS:
            value = getattr(self, name)
            if value is not None and not value.strip():
                issues.append(f"Setting '{name}' is blank")
        for name in _LIST_FIELDS:
            for entry in getattr(self, name):
                if not entry.strip() or entry.strip() == "-":
                    issues.append(f"Setting '{name}' contains an empty entry")
                    break
        return issues


def _string_list(name: str, value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        raise ValueError(f"Setting '{name}' must be a list of strings, not a string")
    if not isinstance(value, list):
        raise ValueError(f"Setting '{name}' must be a list of strings")
    for entry in value:
        if not isinstance(entry, str):
            raise ValueError(f"Setting '{name}' contains a non-string entry: {entry!r}")
    return list(value)


def _optional_string(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Setting '{name}' must be a string")
    return value


def _comment_support_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, dict) and isinstance(value.get("enabled"), bool):
        return value["enabled"]
    raise ValueError("Setting 'language_comment_support' must be a boolean or {\"enabled\": bool}")


def load_settings(path: Optional[Union[str, Path]] = None) -> TaskSettings:
    """Load settings from ``path``, the TODOSEQ_SETTINGS file, or defaults."""
    logger = logging.getLogger("todoseq.settings")

    source = path or os.getenv(SETTINGS_ENV_VAR)
    if not source:
        logger.debug("No settings file configured, using defaults")
        return TaskSettings()

    settings_path = Path(source).expanduser()
    try:
        if not settings_path.is_file():
            raise ValueError(f"Settings file '{settings_path}' does not exist")
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Settings file '{settings_path}' is not valid JSON: {e}") from e
        settings = TaskSettings.from_dict(data)
    except ValueError as e:
        log_error_with_context(e, {
            "operation": "load_settings",
            "path": str(settings_path),
            "from_env": path is None,
        })
        raise

    logger.info(f"Loaded settings from {settings_path}")
    return settings
