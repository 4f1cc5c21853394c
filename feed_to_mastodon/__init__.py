"""Fetch RSS/Atom feeds, store entries in SQLite and post them to Mastodon."""

__version__ = "0.3.0"
