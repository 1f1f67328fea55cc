import pytest
from bs4 import BeautifulSoup

from vrc_world_opener.detection.links import (
    extract_world_id,
    is_world_id,
    resolve_world_id,
    safe_quote,
    search_url,
    world_url,
)

from conftest import WORLD_ID

OTHER_ID = "wrld_abcdef01-2345-6789-abcd-ef0123456789"


def _anchors(html: str):
    return BeautifulSoup(html, "html.parser").find_all("a")


@pytest.mark.parametrize(
    "value",
    [
        f"https://vrchat.com/home/world/{WORLD_ID}",
        f"https://vrchat.com/home/world/{WORLD_ID}/info",
        f"HTTPS://VRChat.com/home/world/{WORLD_ID}",
        f"vrchat.com/home/world/{WORLD_ID}",
        f"https://vrchat.com/home/launch?worldId={WORLD_ID}&instanceId=1",
        f"https://example.com/?a=1&worldId={WORLD_ID}",
    ],
)
def test_both_url_shapes_match(value):
    assert extract_world_id(value) == WORLD_ID


@pytest.mark.parametrize(
    "value",
    [
        f"https://vrchat.com/home/world/{WORLD_ID}0",
        f"https://vrchat.com/home/world/{WORLD_ID[:-1]}",
        f"https://vrchat.com/home/world/{WORLD_ID.replace('wrld_', 'wrlx_')}",
        f"https://vrchat.com/home/world/{WORLD_ID.upper()}",
        f"https://vrchat.com/home/launch?worldId={WORLD_ID}-",
        f"https://vrchat.com/home/avatar/{WORLD_ID}",
        f"https://vrchat.com/home/launch?world={WORLD_ID}",
        "",
        None,
    ],
)
def test_wrong_length_prefix_or_shape_does_not_match(value):
    assert extract_world_id(value) is None


def test_identifier_grammar_is_exact():
    assert is_world_id(WORLD_ID)
    assert not is_world_id(WORLD_ID + "a")
    assert not is_world_id(WORLD_ID[:-1])
    assert not is_world_id("avtr_" + WORLD_ID[5:])
    assert not is_world_id("wrld_" + "0" * 36)
    assert not is_world_id("")


def test_resolver_checks_href_then_text_then_title_per_anchor():
    anchors = _anchors(
        f'<a href="https://t.co/x" title="https://vrchat.com/home/world/{WORLD_ID}">link</a>'
        f'<a href="https://vrchat.com/home/world/{OTHER_ID}">second</a>'
    )
    assert resolve_world_id(anchors) == WORLD_ID


def test_resolver_reads_visible_text_of_shortened_links():
    anchors = _anchors(f'<a href="https://t.co/abc">vrchat.com/home/world/{OTHER_ID}</a>')
    assert resolve_world_id(anchors) == OTHER_ID


def test_resolver_without_world_links():
    assert resolve_world_id(_anchors('<a href="https://example.com">hi</a><a>no href</a>')) is None
    assert resolve_world_id([]) is None


def test_target_urls():
    assert world_url(WORLD_ID) == f"https://vrchat.com/home/world/{WORLD_ID}"
    assert search_url("夜 の") == "https://vrchat.com/home/search/worlds/%E5%A4%9C%20%E3%81%AE"
    assert search_url("a/b", web_base="https://example.test/home/") == "https://example.test/home/search/worlds/a%2Fb"


def test_safe_quote_matches_uri_component_rules_and_drops_broken_surrogates():
    assert safe_quote("Tom's (cafe)!") == "Tom's%20(cafe)!"
    assert safe_quote("Broken\ud83c") == "Broken"
    assert safe_quote("") == ""
