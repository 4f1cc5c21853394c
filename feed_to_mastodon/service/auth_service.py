"""Authentication service for Mastodon OAuth2 (out-of-band flow)."""
from __future__ import annotations

from logging import Logger
from typing import Optional
from urllib.parse import urlencode

import requests

from ..config import Config
from ..errors import AuthenticationError, ValidationError
from ..storage import ACCESS_TOKEN_KEY, SettingsRepository
from .base_service import BaseService
from .http_client import HttpClient


class AuthService(BaseService):
    """Service for obtaining and looking up the Mastodon access token.

    The user opens the authorization link, approves the application and
    pastes the displayed code back; the code is exchanged for a token that
    is stored in the settings table.
    """

    REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
    SCOPES = "read write"

    def __init__(
        self,
        config: Config,
        settings_repo: Optional[SettingsRepository],
        logger: Optional[Logger] = None,
        http_client: Optional[HttpClient] = None,
    ):
        """
        Initialize authentication service.

        Args:
            config: Application configuration
            settings_repo: Settings repository holding the stored token
                (only needed for exchange_code and get_access_token)
            logger: Logger instance
            http_client: HTTP client (created if None)
        """
        super().__init__(logger=logger, http_client=http_client, timeout=config.request_timeout)
        self.config = config
        self.settings_repo = settings_repo

    def _require(self, *keys: str) -> None:
        for key in keys:
            if not getattr(self.config, key):
                raise ValidationError(
                    f"{key} is required - set it in your config file or via "
                    f"FEED_TO_MASTODON_{key.upper()} environment variable"
                )

    def build_authorization_url(self) -> str:
        """
        Build the URL the user visits to authorize the application.

        Raises:
            ValidationError: If server or client id is not configured
        """
        self._require("mastodon_server", "mastodon_client_id")

        params = {
            "client_id": self.config.mastodon_client_id,
            "scope": self.SCOPES,
            "redirect_uri": self.REDIRECT_URI,
            "response_type": "code",
        }
        return f"{self.config.mastodon_server}/oauth/authorize?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for an access token and store it.

        Args:
            code: Authorization code shown after approving the application

        Returns:
            The access token

        Raises:
            ValidationError: If client settings are missing
            AuthenticationError: If the exchange fails or returns no token
        """
        self._require("mastodon_server", "mastodon_client_id", "mastodon_client_secret")

        token_params = {
            "grant_type": "authorization_code",
            "client_id": self.config.mastodon_client_id,
            "client_secret": self.config.mastodon_client_secret,
            "redirect_uri": self.REDIRECT_URI,
            "scope": self.SCOPES,
            "code": code,
        }

        self.logger.info("Exchanging authorization code for access token")
        try:
            response = self.http_client.post(
                f"{self.config.mastodon_server}/oauth/token", data=token_params
            )
            token_data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise AuthenticationError(f"failed to exchange authorization code: {e}") from e

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token:
            raise AuthenticationError("received empty access token")

        self.settings_repo.set_setting(ACCESS_TOKEN_KEY, access_token)
        self.logger.info("Access token saved to database")
        return access_token

    def get_access_token(self) -> str:
        """
        Return the token to post with: config token first, then stored token.

        Raises:
            ValidationError: If neither is available
        """
        if self.config.mastodon_token:
            return self.config.mastodon_token

        token = self.settings_repo.get_setting(ACCESS_TOKEN_KEY)
        if not token:
            raise ValidationError(
                "no access token found - run 'link' and 'code' commands to authenticate, "
                "or set mastodon_token in config"
            )
        return token
