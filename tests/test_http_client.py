"""Tests for HttpClient request handling.

The client makes exactly one attempt per request and surfaces every
failure to the caller.
"""

from __future__ import annotations

from logging import Logger
from unittest.mock import Mock, patch

import pytest
import requests

from feed_to_mastodon.service.http_client import HttpClient


def _response(status_code: int) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.text = "body"
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


def test_get_sets_user_agent_and_timeout() -> None:
    client = HttpClient(logger=Mock(spec=Logger), timeout=12)

    with patch(
        "feed_to_mastodon.service.http_client.requests.request",
        return_value=_response(200),
    ) as request:
        response = client.get("https://example.com/feed", params={"a": 1})

    assert response.status_code == 200
    args, kwargs = request.call_args
    assert args == ("GET", "https://example.com/feed")
    assert kwargs["params"] == {"a": 1}
    assert kwargs["timeout"] == 12
    assert kwargs["headers"]["User-Agent"] == HttpClient.USER_AGENT


def test_post_merges_headers() -> None:
    client = HttpClient(logger=Mock(spec=Logger))

    with patch(
        "feed_to_mastodon.service.http_client.requests.request",
        return_value=_response(200),
    ) as request:
        client.post("https://example.com/api", data={"x": "y"}, headers={"Authorization": "Bearer t"})

    kwargs = request.call_args.kwargs
    assert kwargs["data"] == {"x": "y"}
    assert kwargs["headers"]["Authorization"] == "Bearer t"
    assert "User-Agent" in kwargs["headers"]


@pytest.mark.parametrize("status_code", [400, 404, 429, 500, 503])
def test_error_status_is_not_retried(status_code: int) -> None:
    """Any non-2xx status raises after a single attempt."""
    logger = Mock(spec=Logger)
    client = HttpClient(logger=logger)

    with patch(
        "feed_to_mastodon.service.http_client.requests.request",
        return_value=_response(status_code),
    ) as request:
        with pytest.raises(requests.HTTPError):
            client.get("https://example.com/feed")

    assert request.call_count == 1
    logger.error.assert_called_once()


def test_network_error_is_raised() -> None:
    client = HttpClient(logger=Mock(spec=Logger))

    with patch(
        "feed_to_mastodon.service.http_client.requests.request",
        side_effect=requests.Timeout("timed out"),
    ) as request:
        with pytest.raises(requests.Timeout):
            client.get("https://example.com/feed")

    assert request.call_count == 1
