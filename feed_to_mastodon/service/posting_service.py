"""Render-then-post loop over backlog entries, and backlog state transitions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from logging import Logger
from typing import Iterable, Optional

from ..domain.models import Entry
from ..errors import DispatchError, NotFoundError, RenderError
from ..storage import EntryRepository
from .mastodon_poster import MastodonPoster
from .renderer import TemplateRenderer


class PostingService:
    """Drives rendering and dispatch for a batch of entries.

    The service never writes to the entry store. It returns the entries that
    were dispatched, and the caller marks exactly those as posted.
    """

    def __init__(self, poster: MastodonPoster, logger: Optional[Logger] = None):
        """
        Initialize posting service.

        Args:
            poster: Mastodon poster used for dispatch
            logger: Logger instance
        """
        self.poster = poster
        self.logger = logger or logging.getLogger(__name__)

    def post_entries(
        self,
        entries: list[Entry],
        renderer: TemplateRenderer,
        dry_run: bool = False,
    ) -> list[Entry]:
        """
        Render and post each entry in order.

        A render or dispatch failure is logged and the entry is skipped; it
        stays in the backlog for the next run.

        Args:
            entries: Entries to post, oldest first
            renderer: Template renderer
            dry_run: Render only, do not contact Mastodon

        Returns:
            Entries that were posted (or would have been, for a dry run)
        """
        posted: list[Entry] = []

        for entry in entries:
            try:
                content = renderer.render(entry.entry_data)
            except RenderError as e:
                self.logger.error("Failed to render entry %s: %s", entry.id, e)
                continue

            try:
                self.poster.post(content, dry_run=dry_run)
            except DispatchError as e:
                self.logger.error("Failed to post entry %s: %s", entry.id, e)
                continue

            posted.append(entry)

        if dry_run:
            self.logger.info("DRY RUN: Would post %d entries", len(posted))
        elif entries and not posted:
            self.logger.error("All %d entries failed to post", len(entries))
        else:
            self.logger.info("Successfully posted %d/%d entries", len(posted), len(entries))

        return posted


def mark_entries_posted(
    entry_repo: EntryRepository,
    entries: Iterable[Entry],
    logger: Optional[Logger] = None,
) -> int:
    """
    Mark the given entries as posted.

    Unknown ids (e.g. purged by a concurrent fetch) are logged and skipped.
    Entries that were already posted keep their timestamp and are not counted.

    Returns:
        Number of entries that transitioned to posted
    """
    logger = logger or logging.getLogger(__name__)

    marked = 0
    for entry in entries:
        try:
            transitioned = entry_repo.mark_as_posted(entry.id)
        except NotFoundError as e:
            logger.error("Failed to mark entry %s as posted: %s", entry.id, e)
            continue

        if not transitioned:
            logger.warning("Entry %s was already marked as posted", entry.id)
            continue
        marked += 1
    return marked


@dataclass(frozen=True)
class CatchupResult:
    """Outcome of a catch-up run."""
    found: int
    marked: int

    @property
    def failed(self) -> int:
        return self.found - self.marked


def catch_up(
    entry_repo: EntryRepository,
    dry_run: bool = False,
    logger: Optional[Logger] = None,
) -> CatchupResult:
    """
    Mark the whole backlog as posted without dispatching anything.

    Args:
        entry_repo: Entry repository
        dry_run: Only count the backlog

    Returns:
        CatchupResult with backlog size and number of entries marked
    """
    logger = logger or logging.getLogger(__name__)

    entries = entry_repo.get_unposted_entries(0)
    if entries:
        logger.info("Found %d unposted entries", len(entries))

    if dry_run or not entries:
        return CatchupResult(found=len(entries), marked=0)

    marked = mark_entries_posted(entry_repo, entries, logger=logger)
    return CatchupResult(found=len(entries), marked=marked)
