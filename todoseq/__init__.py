"""todoseq - task keyword parsing and state transition core."""

# No imports at package level to avoid circular import issues
# Import modules directly where needed

__all__ = [
    "comment_state",
    "engine",
    "extractor",
    "keywords",
    "languages",
    "models",
    "regex_builder",
    "settings",
    "todoseq_logging",
    "transitions",
]
