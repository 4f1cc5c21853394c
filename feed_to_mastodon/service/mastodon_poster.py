"""Posting of rendered statuses to a Mastodon server."""
from __future__ import annotations

from logging import Logger
from typing import Optional

import requests

from ..domain.models import Visibility
from ..errors import DispatchError, ValidationError
from .base_service import BaseService
from .http_client import HttpClient


class MastodonPoster(BaseService):
    """Publishes statuses through the Mastodon REST API."""

    STATUSES_PATH = "/api/v1/statuses"

    def __init__(
        self,
        server: str,
        access_token: str,
        visibility: str = Visibility.PUBLIC.value,
        content_warning: str = "",
        logger: Optional[Logger] = None,
        http_client: Optional[HttpClient] = None,
        timeout: int = HttpClient.DEFAULT_TIMEOUT,
    ):
        """
        Initialize poster.

        Args:
            server: Mastodon server base URL
            access_token: OAuth access token with write:statuses scope
            visibility: One of public, unlisted, private, direct
            content_warning: Spoiler text added to every post (empty for none)
            logger: Logger instance
            http_client: HTTP client (created if None)
            timeout: Request timeout in seconds

        Raises:
            ValidationError: If ``visibility`` is not a known value
        """
        super().__init__(logger=logger, http_client=http_client, timeout=timeout)

        if not Visibility.is_valid(visibility):
            raise ValidationError(
                f"invalid visibility: {visibility} (must be public, unlisted, private, or direct)"
            )

        self.server = server.rstrip("/")
        self.access_token = access_token
        self.visibility = Visibility(visibility)
        self.content_warning = content_warning

    def post(self, content: str, dry_run: bool = False) -> Optional[str]:
        """
        Post content as a new status.

        With ``dry_run`` the content is only logged: no request is made and
        the call always succeeds.

        Returns:
            URL of the created status, or None for a dry run

        Raises:
            DispatchError: If the API request fails
        """
        if dry_run:
            self.logger.info("DRY RUN: Would post to Mastodon")
            self.logger.debug("DRY RUN: Content: %s", content)
            return None

        data = {
            "status": content,
            "visibility": self.visibility.value,
        }
        if self.content_warning:
            data["spoiler_text"] = self.content_warning

        try:
            response = self.http_client.post(
                f"{self.server}{self.STATUSES_PATH}",
                data=data,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
            status = response.json()
        except (requests.RequestException, ValueError) as e:
            raise DispatchError(f"failed to post to Mastodon: {e}") from e

        url = None
        if isinstance(status, dict):
            url = status.get("url") or status.get("uri")
        self.logger.info("Posted to Mastodon: %s", url)
        return url
