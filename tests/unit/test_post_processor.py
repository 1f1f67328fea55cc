from vrc_world_opener.core.config_models import FeedSettings
from vrc_world_opener.core.models import KIND_ID, KIND_NAME
from vrc_world_opener.core.storage.post_registry import PostRegistry
from vrc_world_opener.feed.controls import CONTAINER_CLASS, OpenControl, SearchControl
from vrc_world_opener.feed.post_processor import PostProcessor

from conftest import HASHTAG, WORLD_ID, post_html, timeline


def _processor(controller):
    return PostProcessor(PostRegistry(), controller)


def _post(doc):
    return doc.select_one('[data-testid="tweet"]')


def test_second_call_on_same_post_is_a_noop(controller):
    doc = timeline(post_html(f"World: Alpha {HASHTAG}"))
    processor = _processor(controller)
    first = processor.process(_post(doc), FeedSettings())
    second = processor.process(_post(doc), FeedSettings())
    assert first is not None
    assert second is None
    assert len(doc.select(f".{CONTAINER_CLASS}")) == 1


def test_group_is_inserted_right_before_action_bar(controller):
    doc = timeline(post_html(f"World: Alpha {HASHTAG}"))
    _processor(controller).process(_post(doc), FeedSettings())
    container = doc.select_one(f".{CONTAINER_CLASS}")
    assert container.find_next_sibling()["role"] == "group"
    labels = [b.get_text() for b in container.find_all("button")]
    assert labels == ["🔗 ワールドを開く", "🔍 ワールド名で検索"]


def test_url_id_drives_open_and_name_still_drives_search(controller):
    link = f'<a href="https://vrchat.com/home/world/{WORLD_ID}">vrchat.com/home/world/…</a>'
    doc = timeline(post_html(f"World「Alpha」 {HASHTAG}", links=link))
    processor = _processor(controller)
    group = processor.process(_post(doc), FeedSettings())

    assert isinstance(group.open_control, OpenControl)
    assert group.open_control.world_id == WORLD_ID
    assert group.open_control.button["data-world-id"] == WORLD_ID
    assert isinstance(group.search_control, SearchControl)
    assert group.search_control.world_name == "Alpha"
    entry = processor.registry.get(_post(doc))
    assert [r.kind for r in entry.references] == [KIND_ID, KIND_NAME]


def test_id_only_post_gets_open_but_no_search(controller):
    link = f'<a href="https://vrchat.com/home/world/{WORLD_ID}">world</a>'
    doc = timeline(post_html(f"nice place {HASHTAG}", links=link))
    group = _processor(controller).process(_post(doc), FeedSettings())
    assert [c.kind for c in group.controls] == ["open"]


def test_posts_without_trigger_hashtag_are_ignored(controller):
    doc = timeline(post_html("World: Alpha #vrchat"))
    processor = _processor(controller)
    assert processor.process(_post(doc), FeedSettings()) is None
    assert doc.select(f".{CONTAINER_CLASS}") == []
    # evaluated anyway; a later call does not retry
    assert processor.registry.is_processed(_post(doc))


def test_hashtag_gate_is_case_insensitive(controller):
    doc = timeline(post_html("World: Alpha #VRCHAT_WORLD紹介"))
    assert _processor(controller).process(_post(doc), FeedSettings()) is not None


def test_hashtag_rendered_as_link_and_emoji_image_still_match(controller):
    text = 'World: <img alt="🌍"/>Park <a href="/hashtag/VRChat_World紹介">#VRChat_World紹介</a>'
    doc = timeline(post_html(text))
    group = _processor(controller).process(_post(doc), FeedSettings())
    assert group.search_control.world_name == "Park"


def test_no_reference_means_no_group(controller):
    doc = timeline(post_html(f"good morning {HASHTAG}"))
    assert _processor(controller).process(_post(doc), FeedSettings()) is None


def test_missing_text_container_stops_processing(controller):
    doc = timeline('<article data-testid="tweet"><div role="group"></div></article>')
    assert _processor(controller).process(_post(doc), FeedSettings()) is None


def test_group_without_action_bar_is_discarded(controller):
    doc = timeline(post_html(f"World: Alpha {HASHTAG}", action_bar=False))
    processor = _processor(controller)
    assert processor.process(_post(doc), FeedSettings()) is None
    assert doc.select(f".{CONTAINER_CLASS}") == []
    assert controller.controls == []


def test_existing_button_blocks_second_insertion(controller):
    html = post_html(f"World: Alpha {HASHTAG}").replace(
        '<div role="group">', '<button class="vrchat-world-link-btn">old</button><div role="group">'
    )
    doc = timeline(html)
    assert _processor(controller).process(_post(doc), FeedSettings()) is None
    assert doc.select(f".{CONTAINER_CLASS}") == []


def test_toggles_select_controls(controller):
    doc = timeline(post_html(f"World: Alpha {HASHTAG}"), post_html(f"World: Beta {HASHTAG}"))
    posts = doc.select('[data-testid="tweet"]')
    processor = _processor(controller)

    only_search = processor.process(posts[0], FeedSettings(show_open_control=False))
    assert [c.kind for c in only_search.controls] == ["search"]

    nothing = processor.process(posts[1], FeedSettings(show_open_control=False, show_search_control=False))
    assert nothing is None
    assert len(doc.select(f".{CONTAINER_CLASS}")) == 1
