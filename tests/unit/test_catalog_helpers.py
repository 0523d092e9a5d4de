"""
Tests for listing slugs, authors, categories and tags.
"""

import pytest

from app.services.catalog import (
    DEFAULT_CATEGORY,
    DEFAULT_TAGS,
    MAX_TAGS,
    author_from_url,
    categorize,
    generate_tags,
    slugify,
)


@pytest.mark.unit
class TestSlugify:
    def test_lowercases_and_joins_words(self) -> None:
        assert slugify("Brave Search MCP") == "brave-search-mcp"

    def test_strips_leading_and_trailing_separators(self) -> None:
        assert slugify("  --Postgres (read-only)!  ") == "postgres-read-only"

    def test_truncates_to_fifty_characters(self) -> None:
        assert len(slugify("a" * 80)) == 50


@pytest.mark.unit
class TestAuthorFromUrl:
    def test_github_owner(self) -> None:
        assert author_from_url("https://github.com/modelcontextprotocol/servers/tree/main") == "modelcontextprotocol"

    @pytest.mark.parametrize("url", [None, "", "https://gitlab.com/someone/repo"])
    def test_unknown_without_github_url(self, url) -> None:
        assert author_from_url(url) == "Unknown"


@pytest.mark.unit
class TestCategorize:
    def test_first_matching_category_wins(self) -> None:
        # "file" (filesystem) is checked before "sql" (database)
        assert categorize("sqlite file browser", None) == "filesystem"

    def test_matches_description(self) -> None:
        assert categorize("Acme", "Query your Postgres warehouse") == "database"

    def test_falls_back_to_default(self) -> None:
        assert categorize("Zzz", "nothing relevant") == DEFAULT_CATEGORY


@pytest.mark.unit
class TestGenerateTags:
    def test_collects_keywords_in_order(self) -> None:
        assert generate_tags("Slack bot", "Post notification to slack") == ["slack", "notification"]

    def test_caps_tag_count(self) -> None:
        text = "api automation search database cloud ai web file"
        assert len(generate_tags(text, text)) == MAX_TAGS

    def test_default_tags_when_nothing_matches(self) -> None:
        tags = generate_tags("Zzz", "nothing relevant")
        assert tags == DEFAULT_TAGS
        assert tags is not DEFAULT_TAGS
