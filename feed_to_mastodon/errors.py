"""Exception types shared across the application."""


class FeedToMastodonError(Exception):
    """Base class for all application errors."""


class StorageError(FeedToMastodonError):
    """The database could not be opened, migrated, read or written."""


class NotFoundError(FeedToMastodonError):
    """An entry with the requested id does not exist."""

    def __init__(self, entry_id: str):
        super().__init__(f"entry not found: {entry_id}")
        self.entry_id = entry_id


class FetchError(FeedToMastodonError):
    """The feed could not be retrieved or parsed."""


class RenderError(FeedToMastodonError):
    """An entry could not be rendered through the post template."""


class DispatchError(FeedToMastodonError):
    """A rendered post could not be delivered to Mastodon."""


class ValidationError(FeedToMastodonError, ValueError):
    """Configuration, template or credential check failed."""


class AuthenticationError(FeedToMastodonError):
    """The OAuth authorization code could not be exchanged for a token."""
