"""Main entry point for feed-to-mastodon."""
from feed_to_mastodon.cli import main


if __name__ == '__main__':
    main()
