"""Unit tests for settings loading."""

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from todoseq.models import KeywordGroup
from todoseq.settings import SETTINGS_ENV_VAR, TaskSettings, load_settings


class TestTaskSettings:
    """Test cases for TaskSettings."""

    def test_defaults(self):
        """Test the default configuration."""
        settings = TaskSettings()

        assert settings.transition_statements == []
        assert settings.default_active is None
        assert settings.include_code_blocks is True
        assert settings.include_callout_blocks is True
        assert settings.language_comment_support is True
        assert settings.validate() == []

    def test_from_dict_snake_case(self):
        """Test loading snake_case keys."""
        settings = TaskSettings.from_dict({
            "additional_active_keywords": ["review"],
            "transition_statements": ["TODO -> DONE"],
            "default_completed": "cancelled",
            "include_code_blocks": False,
        })

        assert settings.additional_active_keywords == ["review"]
        assert settings.transition_statements == ["TODO -> DONE"]
        assert settings.default_completed == "cancelled"
        assert settings.include_code_blocks is False

    def test_from_dict_camel_case(self):
        """Test loading the host plugin's camelCase keys."""
        settings = TaskSettings.from_dict({
            "additionalTaskKeywords": ["idea"],
            "additionalWaitingKeywords": ["blocked"],
            "stateTransitions": ["IDEA -> TODO"],
            "defaultInactiveKeyword": "LATER",
            "languageCommentSupport": {"enabled": False},
            "includeCalloutBlocks": False,
            "unrelatedSetting": 42,
        })

        assert settings.additional_inactive_keywords == ["idea"]
        assert settings.additional_waiting_keywords == ["blocked"]
        assert settings.transition_statements == ["IDEA -> TODO"]
        assert settings.default_inactive == "LATER"
        assert settings.language_comment_support is False
        assert settings.include_callout_blocks is False

    @pytest.mark.parametrize("data", [
        {"additional_active_keywords": "review"},
        {"additional_active_keywords": ["ok", 3]},
        {"stateTransitions": {"TODO": "DONE"}},
        {"default_active": 5},
        {"include_code_blocks": "yes"},
        {"language_comment_support": {"enabled": "yes"}},
    ])
    def test_from_dict_rejects_bad_types(self, data):
        """Test malformed fields raise ValueError."""
        with pytest.raises(ValueError):
            TaskSettings.from_dict(data)

    def test_from_dict_requires_mapping(self):
        """Test a non-object payload raises ValueError."""
        with pytest.raises(ValueError, match="JSON object"):
            TaskSettings.from_dict(["TODO"])

    def test_null_list_means_empty(self):
        """Test that null list fields load as empty lists."""
        assert TaskSettings.from_dict({"additional_active_keywords": None}).additional_active_keywords == []

    def test_keyword_settings(self):
        """Test the mapping handed to KeywordManager."""
        settings = TaskSettings(additional_archived_keywords=["shelved"])
        mapping = settings.keyword_settings()

        assert list(mapping) == list(KeywordGroup)
        assert mapping[KeywordGroup.ARCHIVED] == ["shelved"]

    def test_to_dict_round_trip(self):
        """Test to_dict output loads back unchanged."""
        settings = TaskSettings(additional_active_keywords=["review"], default_active="NOW")
        assert TaskSettings.from_dict(settings.to_dict()) == settings

    def test_validate_reports_blank_entries(self):
        """Test validation issues for blank defaults and entries."""
        settings = TaskSettings(additional_active_keywords=["-"], default_active="  ")
        issues = settings.validate()

        assert any("default_active" in issue for issue in issues)
        assert any("additional_active_keywords" in issue for issue in issues)


class TestLoadSettings:
    """Test cases for load_settings."""

    @pytest.fixture
    def settings_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "todoseq.json"
            path.write_text(json.dumps({"additionalActiveKeywords": ["review"]}), encoding="utf-8")
            yield path

    def test_defaults_without_source(self):
        """Test defaults when no path or environment variable is set."""
        with patch.dict(os.environ, {}, clear=True):
            assert load_settings() == TaskSettings()

    def test_explicit_path(self, settings_file):
        """Test loading an explicit file."""
        assert load_settings(settings_file).additional_active_keywords == ["review"]

    def test_environment_variable(self, settings_file):
        """Test loading the file named by the environment variable."""
        with patch.dict(os.environ, {SETTINGS_ENV_VAR: str(settings_file)}):
            assert load_settings().additional_active_keywords == ["review"]

    def test_explicit_path_wins_over_environment(self, settings_file):
        """Test an explicit path takes precedence."""
        with patch.dict(os.environ, {SETTINGS_ENV_VAR: "/nonexistent/settings.json"}):
            assert load_settings(str(settings_file)).additional_active_keywords == ["review"]

    def test_missing_file(self):
        """Test a missing file raises ValueError."""
        with pytest.raises(ValueError, match="does not exist"):
            load_settings("/nonexistent/todoseq.json")

    def test_invalid_json(self):
        """Test malformed JSON raises ValueError."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "broken.json"
            path.write_text("{not json", encoding="utf-8")

            with pytest.raises(ValueError, match="not valid JSON"):
                load_settings(path)

    def test_errors_are_logged_with_context(self):
        """Test failures are logged before being raised."""
        with patch("todoseq.settings.log_error_with_context") as mock_log:
            with pytest.raises(ValueError):
                load_settings("/nonexistent/todoseq.json")

            mock_log.assert_called_once()
            context = mock_log.call_args[0][1]
            assert context["operation"] == "load_settings"
