"""Shared HTTP client for feed downloads and Mastodon API requests."""

from logging import Logger
from typing import Any, Optional

import requests

from .. import __version__


class HttpClient:
    """Thin wrapper around ``requests`` used by every outbound call.

    Features:
    - Default timeout and User-Agent on every request
    - Centralized request/error logging
    - ``raise_for_status`` on every response

    Requests are attempted once; a failed run is simply retried by the next
    invocation of the tool.
    """

    DEFAULT_TIMEOUT = 30  # seconds
    USER_AGENT = f"feed-to-mastodon/{__version__}"

    def __init__(self, logger: Logger, timeout: int = DEFAULT_TIMEOUT) -> None:
        """Initialize HTTP client.

        Args:
            logger: Logger instance for request/error logging
            timeout: Request timeout in seconds
        """
        self.logger = logger
        self.timeout = timeout

    def get(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Execute GET request.

        Args:
            url: Request URL
            params: Query parameters
            **kwargs: Additional arguments passed to requests.request

        Returns:
            Response object

        Raises:
            requests.RequestException: On network error or non-2xx status
        """
        return self._request("GET", url, params=params, **kwargs)

    def post(
        self,
        url: str,
        data: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Execute POST request.

        Args:
            url: Request URL
            data: Form data
            json: JSON data
            **kwargs: Additional arguments passed to requests.request

        Returns:
            Response object

        Raises:
            requests.RequestException: On network error or non-2xx status
        """
        return self._request("POST", url, data=data, json=json, **kwargs)

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = {"User-Agent": self.USER_AGENT}
        headers.update(kwargs.pop("headers", None) or {})
        kwargs.setdefault("timeout", self.timeout)

        self.logger.debug("HTTP %s %s", method, url)

        try:
            response = requests.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            body = e.response.text[:200] if e.response is not None else ""
            self.logger.error("HTTP %s %s failed with status %s: %s", method, url, status, body)
            raise
        except requests.RequestException as e:
            self.logger.error("HTTP %s %s failed: %s", method, url, e)
            raise

        return response
