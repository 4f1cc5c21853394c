"""Template rendering of stored entries into Mastodon post text."""
from __future__ import annotations

import json
import logging
from logging import Logger
from pathlib import Path
from typing import Any, Mapping, Optional

from jinja2 import Environment, TemplateError

from ..errors import RenderError, ValidationError


DEFAULT_TEMPLATE = "{{ item.title }}\n{{ item.link }}"


def truncate(s: Any, max_len: Any) -> str:
    """Truncate ``s`` to ``max_len`` characters, ending in "..." when cut.

    Counts code points, not bytes. Limits of 3 or less cut without an
    ellipsis; a non-numeric limit returns the string unchanged.
    """
    s = "" if s is None else str(s)
    if isinstance(max_len, bool) or not isinstance(max_len, (int, float)):
        return s

    limit = int(max_len)
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    if limit <= 3:
        return s[:limit]
    return s[:limit - 3] + "..."


class TemplateRenderer:
    """Renders entry data through a Jinja2 template.

    Templates see two variables: ``item`` (the decoded feed item) and
    ``feed`` (the last stored feed-level metadata, possibly empty).
    """

    def __init__(
        self,
        template_text: str,
        character_limit: int = 500,
        feed: Optional[Mapping[str, Any]] = None,
        logger: Optional[Logger] = None,
    ):
        """
        Compile the template.

        Args:
            template_text: Jinja2 template source
            character_limit: Advisory post length; longer output is logged
            feed: Feed-level metadata exposed as ``feed``
            logger: Logger instance

        Raises:
            ValidationError: If the template has a syntax error
        """
        self.character_limit = character_limit
        self.feed: dict[str, Any] = dict(feed or {})
        self.logger = logger or logging.getLogger(__name__)

        self.env = Environment(autoescape=False)
        self.env.filters["truncate"] = truncate

        try:
            self.template = self.env.from_string(template_text)
        except TemplateError as e:
            raise ValidationError(f"failed to parse template: {e}") from e

    @classmethod
    def from_file(
        cls,
        template_path: str | Path,
        character_limit: int = 500,
        logger: Optional[Logger] = None,
    ) -> "TemplateRenderer":
        """
        Load and compile a template file.

        Raises:
            ValidationError: If the file cannot be read or parsed
        """
        try:
            template_text = Path(template_path).read_text(encoding="utf-8")
        except OSError as e:
            raise ValidationError(f"failed to read template file {template_path}: {e}") from e
        return cls(template_text, character_limit=character_limit, logger=logger)

    def set_feed(self, feed: Optional[Mapping[str, Any]]) -> None:
        """Replace the feed-level metadata available to templates."""
        self.feed = dict(feed or {})

    def render(self, entry_data: bytes | str) -> str:
        """
        Render one entry.

        Args:
            entry_data: Serialized feed item as stored in the entry store

        Returns:
            Rendered post text

        Raises:
            RenderError: If the data is not a JSON object or the template fails
        """
        try:
            item = json.loads(entry_data)
        except (TypeError, ValueError) as e:
            raise RenderError(f"failed to decode entry: {e}") from e
        if not isinstance(item, dict):
            raise RenderError("failed to decode entry: expected a JSON object")

        # User templates can fail with any runtime error on odd entry data.
        try:
            rendered = self.template.render(item=item, feed=self.feed)
        except Exception as e:
            raise RenderError(f"failed to execute template: {e}") from e

        length = len(rendered)
        if length > self.character_limit:
            self.logger.warning(
                "Rendered post exceeds character limit: %d > %d", length, self.character_limit
            )

        return rendered
