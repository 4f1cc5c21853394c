"""Tests for post template rendering."""
import json
import logging

import pytest

from feed_to_mastodon.errors import RenderError, ValidationError
from feed_to_mastodon.service.renderer import DEFAULT_TEMPLATE, TemplateRenderer, truncate


def _data(**fields) -> bytes:
    return json.dumps(fields).encode("utf-8")


class TestTruncate:
    """Test the truncate template filter."""

    @pytest.mark.parametrize(
        "value, limit, expected",
        [
            ("hello world", 20, "hello world"),
            ("hello world", 11, "hello world"),
            ("hello world", 8, "hello..."),
            ("hello", 3, "hel"),
            ("hello", 1, "h"),
            ("hello", 0, ""),
            ("hello", -5, ""),
            ("", 10, ""),
        ],
    )
    def test_lengths(self, value, limit, expected):
        assert truncate(value, limit) == expected

    def test_counts_characters_not_bytes(self):
        assert truncate("ééééé", 4) == "é..."
        assert truncate("😀😀😀😀😀", 4) == "😀..."

    def test_result_never_exceeds_limit(self):
        for limit in range(0, 15):
            assert len(truncate("abcdefghij", limit)) <= limit

    def test_non_numeric_limit_returns_input(self):
        assert truncate("hello", "abc") == "hello"
        assert truncate("hello", None) == "hello"
        assert truncate("hello", True) == "hello"

    def test_float_limit(self):
        assert truncate("hello world", 8.0) == "hello..."


class TestTemplateRenderer:
    """Test TemplateRenderer."""

    def test_default_template(self):
        renderer = TemplateRenderer(DEFAULT_TEMPLATE)

        text = renderer.render(_data(title="Hello", link="https://example.com/hello"))

        assert text == "Hello\nhttps://example.com/hello"

    def test_truncate_filter_in_template(self):
        renderer = TemplateRenderer("{{ item.title | truncate(8) }}")

        assert renderer.render(_data(title="hello world")) == "hello..."

    def test_no_html_escaping(self):
        renderer = TemplateRenderer("{{ item.title }}")

        assert renderer.render(_data(title="Tom & Jerry <3")) == "Tom & Jerry <3"

    def test_feed_variables(self):
        renderer = TemplateRenderer("{{ feed.title }}: {{ item.title }}", feed={"title": "Blog"})

        assert renderer.render(_data(title="Post")) == "Blog: Post"

    def test_set_feed_replaces_metadata(self):
        renderer = TemplateRenderer("{{ feed.title }}")
        renderer.set_feed({"title": "New"})

        assert renderer.render(_data()) == "New"

        renderer.set_feed(None)
        assert renderer.render(_data()) == ""

    def test_missing_item_field_renders_empty(self):
        renderer = TemplateRenderer("[{{ item.author }}]")

        assert renderer.render(_data(title="x")) == "[]"

    def test_invalid_json_raises_render_error(self):
        renderer = TemplateRenderer(DEFAULT_TEMPLATE)

        with pytest.raises(RenderError):
            renderer.render(b"{not json")

    def test_non_object_json_raises_render_error(self):
        renderer = TemplateRenderer(DEFAULT_TEMPLATE)

        with pytest.raises(RenderError):
            renderer.render(b"[1, 2, 3]")

    def test_template_runtime_error_raises_render_error(self):
        renderer = TemplateRenderer("{{ item.title | truncate(item.missing.deeper) }}")

        with pytest.raises(RenderError):
            renderer.render(_data(title="x"))

    def test_arithmetic_error_raises_render_error(self):
        renderer = TemplateRenderer("{{ 10 // (item.categories | length) }}")

        with pytest.raises(RenderError):
            renderer.render(_data(categories=[]))

    def test_syntax_error_raises_validation_error(self):
        with pytest.raises(ValidationError):
            TemplateRenderer("{{ item.title ")

    def test_character_limit_is_advisory(self, caplog):
        """Over-long output is returned unchanged and logged."""
        renderer = TemplateRenderer("{{ item.title }}", character_limit=5)

        with caplog.at_level(logging.WARNING, logger="feed_to_mastodon.service.renderer"):
            text = renderer.render(_data(title="much longer than five"))

        assert text == "much longer than five"
        assert "exceeds character limit" in caplog.text

    def test_from_file(self, tmp_path):
        path = tmp_path / "template.txt"
        path.write_text("{{ item.link }}", encoding="utf-8")

        renderer = TemplateRenderer.from_file(path, character_limit=100)

        assert renderer.character_limit == 100
        assert renderer.render(_data(link="https://x")) == "https://x"

    def test_from_missing_file_raises_validation_error(self, tmp_path):
        with pytest.raises(ValidationError):
            TemplateRenderer.from_file(tmp_path / "missing.txt")
