"""CLI entry point for feed-to-mastodon."""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from .config import DEFAULT_CONFIG_TEXT, Config, load_config
from .errors import FeedToMastodonError, ValidationError
from .log.logger import setup_logger
from .service import (
    DEFAULT_TEMPLATE,
    AuthService,
    FeedFetcher,
    IngestionService,
    MastodonPoster,
    PostingService,
    TemplateRenderer,
    catch_up,
    mark_entries_posted,
)
from .storage import EntryRepository, SettingsRepository, create_repositories

logger = logging.getLogger(__name__)

PREVIEW_COUNT = 5


@dataclass(frozen=True)
class RunOptions:
    """Global options shared by all commands."""
    config_file: Optional[str]
    verbose: bool
    debug: bool

    @property
    def console_level(self) -> int:
        if self.debug:
            return logging.DEBUG
        if self.verbose:
            return logging.INFO
        return logging.WARNING


def _load_config(options: RunOptions) -> Config:
    """Load config and reconfigure logging with its log settings."""
    try:
        config = load_config(options.config_file)
    except ValidationError as e:
        raise click.ClickException(f"failed to load config: {e}") from e

    file_level = getattr(logging, config.log_level, logging.INFO)
    setup_logger(log_dir=config.log_dir, level=options.console_level, file_level=file_level)
    return config


def _validate(config: Config, **kwargs) -> None:
    try:
        config.validate(**kwargs)
    except ValidationError as e:
        raise click.ClickException(f"invalid config: {e}") from e


def _open_store(database_path: Path) -> tuple[EntryRepository, SettingsRepository]:
    try:
        return create_repositories(database_path)
    except FeedToMastodonError as e:
        raise click.ClickException(f"failed to open database: {e}") from e


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return "never"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


@click.group()
@click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False),
              default=None, help="Config file (default is ./feed-to-mastodon.yaml)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], verbose: bool, debug: bool):
    """Fetch RSS/Atom feeds and post entries to Mastodon.

    Entries are stored in a SQLite database and rendered through a
    customizable template before posting.
    """
    options = RunOptions(config_file=config_file, verbose=verbose, debug=debug)
    ctx.obj = options
    setup_logger(level=options.console_level)
    logger.debug("Debug logging enabled")


# === Project Setup ===


@cli.command()
@click.option("--directory", "-d", default=".", type=click.Path(file_okay=False),
              help="Directory to initialize the project in")
def init(directory: str):
    """Initialize a new feed-to-mastodon project.

    Creates a default configuration file, a default post template and the
    SQLite database. Existing files are left untouched.
    """
    target = Path(directory)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise click.ClickException(f"failed to create directory: {e}") from e
    target = target.resolve()

    logger.info("Initializing feed-to-mastodon project in %s", target)

    config_path = target / "feed-to-mastodon.yaml"
    template_path = target / "post-template.txt"
    for path, content, label in (
        (config_path, DEFAULT_CONFIG_TEXT, "configuration file"),
        (template_path, DEFAULT_TEMPLATE + "\n", "template file"),
    ):
        if path.exists():
            click.echo(f"{label.capitalize()} already exists: {path}")
            continue
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise click.ClickException(f"failed to create {label}: {e}") from e
        click.echo(f"Created {label}: {path}")

    db_path = target / "feed-to-mastodon.db"
    entry_repo, _ = _open_store(db_path)
    entry_repo.close()
    click.echo(f"Created database: {db_path}")

    click.echo("\nNext steps:")
    click.echo(f"1. Edit {config_path} with your feed URL and Mastodon credentials")
    click.echo(f"2. Optionally customize the post template in {template_path}")
    click.echo("3. Run 'feed-to-mastodon fetch' to fetch feed entries")
    click.echo("4. Run 'feed-to-mastodon status' to see what will be posted")
    click.echo("5. Run 'feed-to-mastodon post --dry-run' to test posting")
    click.echo("6. Run 'feed-to-mastodon post' to post to Mastodon")


# === Pipeline Commands ===


@cli.command()
@click.option("--no-purge", is_flag=True, help="Keep stored entries that are no longer in the feed")
@click.pass_obj
def fetch(options: RunOptions, no_purge: bool):
    """Fetch feed entries and save them to the database.

    Entries that already exist (based on their ID) are skipped. Entries no
    longer present in the feed are removed unless --no-purge is given.
    """
    config = _load_config(options)
    _validate(config, require_server=False)

    entry_repo, settings_repo = _open_store(config.database_path)
    try:
        total_before = entry_repo.get_stats().total

        feed = FeedFetcher(timeout=config.request_timeout).fetch(config.feed_url)
        click.echo(f"Feed: {feed.title} ({len(feed.items)} entries)")

        ingestion = IngestionService(entry_repo, settings_repo)
        ingestion.store_feed_metadata(feed)
        saved = ingestion.save_all(feed)
        new_entries = entry_repo.get_stats().total - total_before

        purged = 0 if no_purge else ingestion.purge_stale(feed)
        stats = entry_repo.get_stats()
    except FeedToMastodonError as e:
        raise click.ClickException(str(e)) from e
    finally:
        entry_repo.close()

    logger.info("Saved %d entries (%d new, %d already known)", saved, new_entries, saved - new_entries)

    if new_entries > 0:
        click.echo(f"\nFetched {new_entries} new entries")
    else:
        click.echo("\nNo new entries found")
    if purged:
        click.echo(f"Purged {purged} stale entries")
    failed = len(feed.items) - saved
    if failed:
        click.echo(f"Failed to save {failed} entries (see logs for details)")
    click.echo(f"Database totals: {stats.total} total, {stats.posted} posted, {stats.unposted} unposted")
    if new_entries > 0:
        click.echo("Run 'feed-to-mastodon status' to see what will be posted")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Preview posts without actually posting to Mastodon")
@click.option("--posts", "max_posts", type=int, default=None,
              help="Maximum number of entries to post (0 = all, overrides config posts_per_run)")
@click.pass_obj
def post(options: RunOptions, dry_run: bool, max_posts: Optional[int]):
    """Post unposted entries to Mastodon.

    Entries are rendered with the configured template and marked as posted
    after a successful post. Use --dry-run to preview without posting.
    """
    config = _load_config(options)
    _validate(config, require_feed=False)

    # Template problems are fatal, so surface them before touching the store.
    try:
        renderer = TemplateRenderer.from_file(config.template_path, config.character_limit)
    except ValidationError as e:
        raise click.ClickException(f"failed to create template renderer: {e}") from e

    entry_repo, settings_repo = _open_store(config.database_path)
    try:
        try:
            access_token = AuthService(config, settings_repo).get_access_token()
        except ValidationError as e:
            if not dry_run:
                raise click.ClickException(f"authentication required: {e}") from e
            access_token = ""

        renderer.set_feed(IngestionService(entry_repo, settings_repo).load_feed_metadata())

        poster = MastodonPoster(
            config.mastodon_server,
            access_token,
            visibility=config.post_visibility,
            content_warning=config.content_warning,
            timeout=config.request_timeout,
        )

        limit = config.posts_per_run if max_posts is None else max_posts
        entries = entry_repo.get_unposted_entries(limit)

        if not entries:
            click.echo("No unposted entries to post")
            click.echo("\nRun 'feed-to-mastodon fetch' to fetch new entries")
            return

        logger.info("Found %d unposted entries", len(entries))
        if dry_run:
            click.echo("DRY RUN: Previewing posts without actually posting\n")

        posted = PostingService(poster).post_entries(entries, renderer, dry_run=dry_run)

        marked = 0
        if not dry_run:
            marked = mark_entries_posted(entry_repo, posted)
    except FeedToMastodonError as e:
        raise click.ClickException(str(e)) from e
    finally:
        entry_repo.close()

    click.echo()
    if dry_run:
        click.echo(f"DRY RUN: Would have posted {len(posted)} entries")
        click.echo("Remove --dry-run to actually post to Mastodon")
    else:
        click.echo(f"Successfully posted {len(posted)} entries to Mastodon")
        if len(posted) < len(entries):
            click.echo(f"Failed to post {len(entries) - len(posted)} entries (see logs for details)")
        if marked < len(posted):
            click.echo(f"Failed to mark {len(posted) - marked} entries as posted (see logs for details)")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Preview entries without actually marking them as posted")
@click.pass_obj
def catchup(options: RunOptions, dry_run: bool):
    """Mark all unposted entries as posted without posting them.

    Useful to skip old entries after adding a new feed or after a long
    period of inactivity, so that only new entries get posted.
    """
    config = _load_config(options)

    entry_repo, _ = _open_store(config.database_path)
    try:
        result = catch_up(entry_repo, dry_run=dry_run)
    except FeedToMastodonError as e:
        raise click.ClickException(str(e)) from e
    finally:
        entry_repo.close()

    if result.found == 0:
        click.echo("No unposted entries to mark")
        return

    if dry_run:
        click.echo(f"\nDRY RUN: Would mark {result.found} entries as posted")
        click.echo("Remove --dry-run to actually mark entries as posted")
        return

    click.echo(f"\nMarked {result.marked} entries as posted")
    if result.failed:
        click.echo(f"Failed to mark {result.failed} entries (see logs for details)")


@cli.command()
@click.pass_obj
def status(options: RunOptions):
    """Show status of the feed-to-mastodon database.

    Displays entry counts, last fetch and post times, and a preview of the
    next entries that will be posted.
    """
    config = _load_config(options)

    entry_repo, _ = _open_store(config.database_path)
    try:
        stats = entry_repo.get_stats()
        last_fetch = entry_repo.get_last_fetch_time()
        last_post = entry_repo.get_last_post_time()
        preview = entry_repo.get_unposted_entries(PREVIEW_COUNT) if stats.unposted else []
    except FeedToMastodonError as e:
        raise click.ClickException(str(e)) from e
    finally:
        entry_repo.close()

    click.echo("Feed to Mastodon Status")
    click.echo("=======================")
    click.echo(f"Feed URL: {config.feed_url or '(not configured)'}")
    click.echo(f"Database: {config.database_path}\n")

    click.echo(f"Total entries: {stats.total}")
    click.echo(f"Posted entries: {stats.posted}")
    click.echo(f"Unposted entries: {stats.unposted}\n")

    click.echo(f"Last fetch: {_format_time(last_fetch)}")
    click.echo(f"Last post: {_format_time(last_post)}\n")

    if not preview:
        click.echo("No unposted entries")
        if stats.total == 0:
            click.echo("\nRun 'feed-to-mastodon fetch' to fetch entries from the feed")
        return

    click.echo("Next entries to be posted:")
    click.echo("--------------------------")
    for i, entry in enumerate(preview, 1):
        try:
            item = json.loads(entry.entry_data)
        except ValueError as e:
            logger.warning("Failed to decode entry %s: %s", entry.id, e)
            continue
        if not isinstance(item, dict):
            logger.warning("Failed to decode entry %s: not a JSON object", entry.id)
            continue

        click.echo(f"{i}. {item.get('title') or '(untitled)'}")
        if item.get("link"):
            click.echo(f"   {item['link']}")

    if stats.unposted > PREVIEW_COUNT:
        click.echo(f"\n... and {stats.unposted - PREVIEW_COUNT} more")


# === Authentication Commands ===


@cli.command()
@click.pass_obj
def link(options: RunOptions):
    """Generate an OAuth authorization link.

    Requires mastodon_server and mastodon_client_id. After authorizing,
    pass the displayed code to the 'code' command.
    """
    config = _load_config(options)

    try:
        # Building the URL needs no store access.
        url = AuthService(config, settings_repo=None).build_authorization_url()
    except ValidationError as e:
        raise click.ClickException(str(e)) from e

    click.echo("Authorization Link:\n")
    click.echo(url)
    click.echo("\nVisit this URL in your browser to authorize the application.")
    click.echo("After authorizing, you will receive an authorization code.")
    click.echo("Use the 'code' command to exchange it for an access token:\n")
    click.echo("  feed-to-mastodon code <authorization-code>\n")


@cli.command()
@click.argument("authorization_code")
@click.pass_obj
def code(options: RunOptions, authorization_code: str):
    """Exchange an authorization code for an access token.

    The token is stored in the database and used by 'post' when no
    mastodon_token is configured.
    """
    config = _load_config(options)

    entry_repo, settings_repo = _open_store(config.database_path)
    try:
        click.echo("Exchanging authorization code for access token...")
        AuthService(config, settings_repo).exchange_code(authorization_code)
    except FeedToMastodonError as e:
        raise click.ClickException(str(e)) from e
    finally:
        entry_repo.close()

    click.echo("\nSuccessfully obtained and stored access token!\n")
    click.echo("You can now use the 'post' command to post entries to Mastodon.")


def main() -> None:
    """Console script entry point."""
    cli(prog_name="feed-to-mastodon")


if __name__ == "__main__":
    main()
