"""Unit tests for the language comment catalog and registry."""

import pytest

from todoseq.languages import (
    BUILTIN_LANGUAGES,
    CommentFragment,
    FragmentRole,
    LanguageDefinition,
    LanguageRegistry,
    block_continuation,
    block_end,
    block_start,
    default_registry,
    inline,
    single_line,
)


class TestCommentFragment:
    """Test cases for CommentFragment."""

    def test_prefix_sources(self):
        """Test the prefix source emitted for each role."""
        assert single_line("//").prefix_source() == r"(?://)\s+"
        assert block_start(r"/\*+").prefix_source() == r"(?:/\*+)\s+"
        assert block_continuation(r"\*").prefix_source() == r"(?:(?:\*)\s+)?"
        assert block_continuation().prefix_source() == ""
        assert inline("#").prefix_source(r"[ \t]") == r".*[ \t]+(?:#)[ \t]+"

    def test_marker_required_except_continuation(self):
        """Test that only continuation fragments may omit the marker."""
        with pytest.raises(ValueError):
            CommentFragment(FragmentRole.SINGLE_LINE, "")
        assert block_continuation().marker == ""

    def test_matchers(self):
        """Test the compiled line matchers."""
        assert block_start(r"/\*").matcher.search("   /* open")
        assert not block_start(r"/\*").matcher.search("code(); /* open")
        assert block_end(r"\*/").matcher.search("still */ here")
        assert inline("#").matcher.search("x = 1  # note ")

    def test_equality_ignores_compiled_matcher(self):
        """Test fragments compare by role and marker."""
        assert single_line("#") == single_line("#")
        assert single_line("#") != inline("#")


class TestLanguageDefinition:
    """Test cases for LanguageDefinition."""

    def test_role_properties(self):
        """Test the per-role pattern accessors."""
        python = default_registry().get_language("python")

        assert python.single_line.search("# comment")
        assert python.multi_line_start.search('    """')
        assert python.multi_line_end.search("'''")
        assert python.multi_line_additional is not None
        assert python.inline.search("x = 1  # note ")

    def test_missing_roles_are_none(self):
        """Test that unsupported comment styles are absent."""
        yaml = default_registry().get_language("yaml")

        assert yaml.multi_line_start is None
        assert yaml.multi_line_end is None
        assert yaml.multi_line_additional is None
        assert yaml.single_line is not None

    def test_combined_role_pattern(self):
        """Test that several fragments of one role combine into one pattern."""
        sql = default_registry().get_language("sql")

        assert sql.single_line.search("-- note")
        assert sql.single_line.search("# note")
        assert not sql.single_line.search("select 1")

    def test_to_dict(self):
        """Test dictionary representation."""
        language = LanguageDefinition("demo", (single_line(";"),), aliases=("dm",))
        assert language.to_dict() == {
            "name": "demo",
            "aliases": ["dm"],
            "fragments": [{"role": "singleLine", "marker": ";"}],
        }

    def test_sequences_are_frozen_to_tuples(self):
        """Test that list arguments are stored as tuples."""
        language = LanguageDefinition("demo", [single_line(";")], aliases=["dm"])
        assert isinstance(language.fragments, tuple)
        assert language.identifiers() == ("demo", "dm")


class TestLanguageRegistry:
    """Test cases for LanguageRegistry."""

    @pytest.fixture
    def registry(self):
        return default_registry()

    def test_catalog_contents(self, registry):
        """Test that every built-in language is registered."""
        names = {language.name for language in registry.get_all_languages()}
        assert names == {
            "c", "cpp", "csharp", "dockerfile", "go", "ini", "java", "javascript",
            "kotlin", "powershell", "python", "r", "ruby", "rust", "shell", "sql",
            "swift", "toml", "typescript", "yaml",
        }
        assert len(registry) == len(BUILTIN_LANGUAGES)

    def test_lookup_is_case_insensitive(self, registry):
        """Test name lookups ignore case."""
        assert registry.get_language("PyThOn").name == "python"

    def test_alias_lookup(self, registry):
        """Test alias lookups."""
        assert registry.get_language_by_alias("c++").name == "cpp"
        assert registry.get_language_by_alias("YML").name == "yaml"
        assert registry.get_language_by_alias("python") is None

    def test_identifier_lookup(self, registry):
        """Test lookups by name or alias."""
        assert registry.get_language_by_identifier("bash").name == "shell"
        assert registry.get_language_by_identifier("ts").name == "typescript"
        assert registry.get_language_by_identifier("rust").name == "rust"
        assert "js" in registry

    @pytest.mark.parametrize("identifier", [None, "", "brainfuck"])
    def test_unknown_identifiers(self, registry, identifier):
        """Test that unknown or empty identifiers return None."""
        assert registry.get_language(identifier) is None
        assert registry.get_language_by_identifier(identifier) is None

    def test_register_language(self):
        """Test registering an extra language in an empty registry."""
        registry = LanguageRegistry()
        lua = LanguageDefinition(
            "lua",
            (single_line("--"), block_start(r"--\[\["), block_end(r"\]\]"), inline("--")),
        )
        registry.register_language(lua)

        assert registry.get_language("LUA") is lua
        assert len(registry) == 1

    def test_registries_are_independent(self):
        """Test that each factory call builds its own registry."""
        first = default_registry()
        second = default_registry()
        first.register_language(LanguageDefinition("lua", (single_line("--"),)))

        assert second.get_language("lua") is None

    def test_is_language_enabled(self, registry):
        """Test the enabled-languages check."""
        assert registry.is_language_enabled("Python", ["python", "go"])
        assert not registry.is_language_enabled("ruby", ["python"])
