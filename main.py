"""MCP server exposing todoseq task parsing and state transition tools."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from todoseq.engine import TaskEngine
from todoseq.languages import default_registry
from todoseq.models import KeywordGroup
from todoseq.settings import TaskSettings, load_settings
from todoseq.todoseq_logging import log_error_with_context, setup_logging

mcp = FastMCP("todoseq")


def _engine(settings_path: Optional[str] = None, settings: Optional[Dict[str, Any]] = None) -> TaskEngine:
    """Build an engine from inline settings, a settings file, or TODOSEQ_SETTINGS."""
    try:
        if settings is not None:
            resolved = TaskSettings.from_dict(settings)
        else:
            resolved = load_settings(settings_path)
    except ValueError as e:
        log_error_with_context(e, {
            "operation": "resolve_settings",
            "settings_path": settings_path,
            "inline": settings is not None,
        })
        raise
    return TaskEngine(resolved)


@mcp.tool()
def extract_tasks(
    text: str,
    path: str = "",
    settings_path: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Extract TODO-style tasks from markdown text, including comments inside fenced code blocks.
    Line numbers are 0-based. Settings may be passed inline or loaded from a JSON file."""

    engine = _engine(settings_path, settings)
    tasks = engine.extract_tasks(text, path)
    return {
        "path": path,
        "count": len(tasks),
        "tasks": [task.to_dict() for task in tasks],
    }


@mcp.tool()
def next_state(
    keyword: str,
    settings_path: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return the keyword a task moves to when advanced from `keyword`."""

    engine = _engine(settings_path, settings)
    return {
        "keyword": keyword,
        "next_state": engine.next_state(keyword),
        "terminal": engine.transition_manager.is_terminal_state(keyword),
    }


@mcp.tool()
def cycle_state(
    keyword: str = "",
    settings_path: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return the keyword a task cycles to from `keyword`.
    An empty keyword starts the cycle; completed keywords cycle back to no keyword."""

    engine = _engine(settings_path, settings)
    return {
        "keyword": keyword,
        "cycle_state": engine.cycle_state(keyword),
    }


@mcp.tool()
def keyword_groups(
    settings_path: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """List the effective keywords of every group, in resolved order."""

    engine = _engine(settings_path, settings)
    manager = engine.keyword_manager
    return {
        "groups": engine.keyword_groups(),
        "custom": {group.value: list(manager.get_custom_keywords(group)) for group in KeywordGroup},
        "all_keywords": list(manager.get_all_keywords()),
    }


@mcp.tool()
def validate_settings(
    settings_path: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Report keyword and transition configuration problems without failing."""

    engine = _engine(settings_path, settings)
    return engine.validation_report()


@mcp.tool()
def list_languages() -> Dict[str, Any]:
    """List the programming languages whose comments are scanned inside code blocks."""

    languages: List[Dict[str, Any]] = [language.to_dict() for language in default_registry().get_all_languages()]
    return {"count": len(languages), "languages": languages}


@mcp.resource("todoseq://keywords")
def resource_keywords() -> str:
    """Resource view of the effective keyword groups and transitions."""

    try:
        engine = _engine(None)
    except ValueError as e:
        logging.getLogger("todoseq.server").warning(f"Falling back to default settings: {e}")
        engine = TaskEngine()

    lines = ["todoseq Keywords"]
    for group, keywords in engine.keyword_groups().items():
        lines.append("")
        lines.append(f"- {group}: {', '.join(keywords) if keywords else '(none)'}")

    transitions = engine.transition_manager.get_transitions()
    if transitions:
        lines.append("")
        lines.append("Transitions")
        for source, target in transitions.items():
            suffix = " (terminal)" if source == target else ""
            lines.append(f"- {source} -> {target}{suffix}")

    return "\n".join(lines)


if __name__ == "__main__":
    log_file = os.getenv("TODOSEQ_LOG_FILE")
    setup_logging(os.getenv("TODOSEQ_LOG_LEVEL", "INFO").upper(), Path(log_file) if log_file else None)
    mcp.run(transport="stdio")
