"""Tests for the posting loop and backlog transitions.

Only entries that were actually dispatched may be marked as posted, even
when failures are interleaved with successes.
"""

from __future__ import annotations

import json
from logging import Logger
from unittest.mock import Mock

from feed_to_mastodon.errors import DispatchError, NotFoundError
from feed_to_mastodon.service.mastodon_poster import MastodonPoster
from feed_to_mastodon.service.posting_service import (
    CatchupResult,
    PostingService,
    catch_up,
    mark_entries_posted,
)
from feed_to_mastodon.service.renderer import DEFAULT_TEMPLATE, TemplateRenderer


def _item(title: str) -> bytes:
    return json.dumps({"title": title, "link": f"https://example.com/{title}"}).encode("utf-8")


def _service(poster: Mock) -> PostingService:
    return PostingService(poster, logger=Mock(spec=Logger))


class TestPostEntries:
    """Test PostingService.post_entries."""

    def test_all_entries_posted(self, entry_repo):
        for name in ("a", "b", "c"):
            entry_repo.save_entry(name, _item(name))
        poster = Mock(spec=MastodonPoster)

        posted = _service(poster).post_entries(
            entry_repo.get_unposted_entries(), TemplateRenderer(DEFAULT_TEMPLATE)
        )

        assert [e.id for e in posted] == ["a", "b", "c"]
        assert poster.post.call_count == 3
        poster.post.assert_any_call("a\nhttps://example.com/a", dry_run=False)

    def test_render_failures_are_skipped(self, entry_repo):
        """Corrupt entries do not stop the batch and are not reported as posted."""
        entry_repo.save_entry("bad-1", b"{not json")
        entry_repo.save_entry("good", _item("good"))
        entry_repo.save_entry("bad-2", b"[]")
        poster = Mock(spec=MastodonPoster)

        posted = _service(poster).post_entries(
            entry_repo.get_unposted_entries(), TemplateRenderer(DEFAULT_TEMPLATE), dry_run=True
        )

        assert [e.id for e in posted] == ["good"]
        assert poster.post.call_count == 1

    def test_template_runtime_error_skips_only_that_entry(self, entry_repo):
        """A data-dependent template error in the middle of a batch does not abort it."""
        for name, categories in (("a", ["x"]), ("b", []), ("c", ["y"])):
            entry_repo.save_entry(name, json.dumps({"title": name, "categories": categories}).encode("utf-8"))
        renderer = TemplateRenderer("{{ item.title }} {{ 10 // (item.categories | length) }}")
        poster = Mock(spec=MastodonPoster)

        posted = _service(poster).post_entries(entry_repo.get_unposted_entries(), renderer)
        marked = mark_entries_posted(entry_repo, posted)

        assert [e.id for e in posted] == ["a", "c"]
        assert marked == 2
        assert [call.args[0] for call in poster.post.call_args_list] == ["a 10", "c 10"]
        assert [e.id for e in entry_repo.get_unposted_entries()] == ["b"]

    def test_early_failure_then_success_marks_right_entry(self, entry_repo):
        """A failed first dispatch must not cause the first entry to be marked."""
        for name in ("a", "b"):
            entry_repo.save_entry(name, _item(name))
        poster = Mock(spec=MastodonPoster)
        poster.post.side_effect = [DispatchError("rate limited"), None]

        posted = _service(poster).post_entries(
            entry_repo.get_unposted_entries(), TemplateRenderer(DEFAULT_TEMPLATE)
        )
        marked = mark_entries_posted(entry_repo, posted)

        assert marked == 1
        assert entry_repo.get_entry("a").is_posted is False
        assert entry_repo.get_entry("b").is_posted is True
        assert [e.id for e in entry_repo.get_unposted_entries()] == ["a"]

    def test_all_failures_logged(self, entry_repo):
        entry_repo.save_entry("a", _item("a"))
        poster = Mock(spec=MastodonPoster)
        poster.post.side_effect = DispatchError("down")
        service = _service(poster)

        posted = service.post_entries(entry_repo.get_unposted_entries(), TemplateRenderer(DEFAULT_TEMPLATE))

        assert posted == []
        service.logger.error.assert_any_call("All %d entries failed to post", 1)

    def test_dry_run_passes_flag_and_leaves_store_untouched(self, entry_repo):
        for name in ("a", "b", "c"):
            entry_repo.save_entry(name, _item(name))
        poster = Mock(spec=MastodonPoster)

        posted = _service(poster).post_entries(
            entry_repo.get_unposted_entries(), TemplateRenderer(DEFAULT_TEMPLATE), dry_run=True
        )

        assert len(posted) == 3
        for call in poster.post.call_args_list:
            assert call.kwargs["dry_run"] is True
        assert entry_repo.get_stats().unposted == 3

    def test_empty_batch(self):
        poster = Mock(spec=MastodonPoster)

        assert _service(poster).post_entries([], TemplateRenderer(DEFAULT_TEMPLATE)) == []
        poster.post.assert_not_called()


class TestMarkEntriesPosted:
    """Test mark_entries_posted."""

    def test_unknown_entries_are_skipped(self, entry_repo):
        entry_repo.save_entry("a", _item("a"))
        entries = entry_repo.get_unposted_entries()
        entry_repo.delete_entries(["a"])
        entry_repo.save_entry("b", _item("b"))
        entries += entry_repo.get_unposted_entries()

        assert mark_entries_posted(entry_repo, entries) == 1
        assert entry_repo.get_entry("b").is_posted is True

    def test_already_posted_entries_are_not_counted(self, entry_repo):
        for name in ("a", "b"):
            entry_repo.save_entry(name, _item(name))
        entries = entry_repo.get_unposted_entries()
        entry_repo.mark_as_posted("a")
        logger = Mock(spec=Logger)

        assert mark_entries_posted(entry_repo, entries, logger=logger) == 1
        logger.warning.assert_called_once()

    def test_not_found_is_logged(self):
        repo = Mock()
        repo.mark_as_posted.side_effect = NotFoundError("gone")
        logger = Mock(spec=Logger)
        entry = Mock(id="gone")

        assert mark_entries_posted(repo, [entry], logger=logger) == 0
        logger.error.assert_called_once()


class TestCatchUp:
    """Test catch_up."""

    def test_marks_whole_backlog(self, entry_repo):
        for name in ("a", "b", "c"):
            entry_repo.save_entry(name, _item(name))

        result = catch_up(entry_repo)

        assert result == CatchupResult(found=3, marked=3)
        assert result.failed == 0
        assert entry_repo.get_stats().posted == 3

    def test_dry_run_only_counts(self, entry_repo):
        for name in ("a", "b"):
            entry_repo.save_entry(name, _item(name))

        result = catch_up(entry_repo, dry_run=True)

        assert result == CatchupResult(found=2, marked=0)
        assert entry_repo.get_stats().posted == 0

    def test_empty_backlog(self, entry_repo):
        assert catch_up(entry_repo) == CatchupResult(found=0, marked=0)

    def test_after_catch_up_only_new_entries_are_unposted(self, entry_repo):
        entry_repo.save_entry("old", _item("old"))
        catch_up(entry_repo)

        entry_repo.save_entry("new", _item("new"))

        assert [e.id for e in entry_repo.get_unposted_entries()] == ["new"]
