from vrc_world_opener.core.config_models import FeedSettings
from vrc_world_opener.core.metrics import get_metrics
from vrc_world_opener.feed.controls import CONTAINER_CLASS, SEARCH_BUTTON_CLASS
from vrc_world_opener.feed.scanner import FeedScanner

from conftest import HASHTAG, post_html, timeline

OPEN_SELECTOR = ".vrchat-world-link-btn:not(.search-only-btn)"


def _doc():
    return timeline(
        post_html(f"World: Alpha {HASHTAG}"),
        post_html("unrelated post"),
        post_html(f"🌐 Beta\n{HASHTAG}"),
    )


def test_scan_processes_posts_in_order_and_is_repeatable(controller):
    doc = _doc()
    scanner = FeedScanner(controller)
    report = scanner.scan(doc)
    assert (report.seen, report.processed, report.attached, report.failed) == (3, 3, 2, 0)

    names = [c.world_name for c in controller.controls if c.kind == "search"]
    assert names == ["Alpha", "Beta"]

    again = scanner.scan(doc)
    assert (again.seen, again.processed, again.attached) == (3, 0, 0)
    assert len(doc.select(f".{CONTAINER_CLASS}")) == 2


def test_failure_in_one_post_does_not_stop_the_scan(controller):
    doc = _doc()
    scanner = FeedScanner(controller)
    original = scanner.processor.process
    calls = []

    def flaky(post, settings):
        calls.append(post)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return original(post, settings)

    scanner.processor.process = flaky
    before = get_metrics().total("exception")
    report = scanner.scan(doc)

    assert report.failed == 1
    assert report.attached == 1
    assert len(calls) == 3
    assert get_metrics().total("exception") == before + 1


def test_settings_change_rebuilds_groups_without_duplicates(controller):
    doc = _doc()
    scanner = FeedScanner(controller)
    scanner.scan(doc)
    assert len(doc.select(f".{SEARCH_BUTTON_CLASS}")) == 2

    scanner.apply_settings(doc, FeedSettings(show_search_control=False))
    assert doc.select(f".{SEARCH_BUTTON_CLASS}") == []
    assert len(doc.select(OPEN_SELECTOR)) == 2
    assert scanner.epoch == 1

    scanner.apply_settings(doc, FeedSettings(show_search_control=True))
    assert len(doc.select(f".{SEARCH_BUTTON_CLASS}")) == 2
    assert len(doc.select(OPEN_SELECTOR)) == 2
    assert len(doc.select(f".{CONTAINER_CLASS}")) == 2
    assert len(controller.controls) == 4


def test_disabling_removes_everything_and_skips_rescan(controller):
    doc = _doc()
    scanner = FeedScanner(controller)
    scanner.scan(doc)

    assert scanner.apply_settings(doc, FeedSettings(enabled=False)) is None
    assert doc.select(f".{CONTAINER_CLASS}") == []
    assert len(scanner.registry) == 0
    assert controller.controls == []


def test_forget_drops_removed_posts_and_their_controls(controller):
    doc = _doc()
    scanner = FeedScanner(controller)
    scanner.scan(doc)
    first = doc.select('[data-testid="tweet"]')[0]
    first.extract()

    assert scanner.forget([first]) == 1
    assert len(scanner.registry) == 2
    assert [c.world_name for c in controller.controls] == ["Beta", "Beta"]


def test_forget_matches_posts_inside_removed_containers(controller):
    doc = _doc()
    scanner = FeedScanner(controller)
    scanner.scan(doc)
    main = doc.main.extract()
    assert scanner.forget([main]) == 3
    assert controller.controls == []
