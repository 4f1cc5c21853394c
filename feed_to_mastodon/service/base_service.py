"""Base service with common initialization logic for network-facing services.

This module provides a base class that unifies logger setup and HTTP client
initialization across the fetcher, poster and auth services.
"""
from __future__ import annotations

import logging
from abc import ABC
from logging import Logger
from typing import Optional

from .http_client import HttpClient


class BaseService(ABC):
    """Base class for services that talk HTTP.

    Provides:
    - Logger initialization (defaults to the subclass module logger)
    - HTTP client initialization (injectable for tests)
    """

    def __init__(
        self,
        logger: Optional[Logger] = None,
        http_client: Optional[HttpClient] = None,
        timeout: int = HttpClient.DEFAULT_TIMEOUT,
    ):
        """Initialize base service.

        Args:
            logger: Logger instance for this service
            http_client: Optional HTTP client (auto-created if None)
            timeout: Request timeout for the auto-created client
        """
        self.logger = logger or logging.getLogger(type(self).__module__)
        self.http_client = http_client or HttpClient(logger=self.logger, timeout=timeout)
