from typing import List, Optional

import pytest
from bs4 import BeautifulSoup

from vrc_world_opener.core.models import SearchResult
from vrc_world_opener.feed.controls import ActionController

WORLD_ID = "wrld_12345678-1234-1234-1234-123456789abc"
HASHTAG = "#VRChat_World紹介"


def post_html(text: str, links: str = "", action_bar: bool = True) -> str:
    bar = '<div role="group"><button>reply</button></div>' if action_bar else ""
    return (
        '<article data-testid="tweet">'
        f'<div data-testid="tweetText">{text}</div>'
        f"{links}{bar}"
        "</article>"
    )


def timeline(*posts: str) -> BeautifulSoup:
    return BeautifulSoup(f"<html><body><main>{''.join(posts)}</main></body></html>", "html.parser")


class FakeSearcher:
    def __init__(self, result: Optional[SearchResult] = None, error: Optional[Exception] = None):
        self.result = result or SearchResult(success=False, not_found=True)
        self.error = error
        self.calls: List[str] = []

    def search_world(self, name: str) -> SearchResult:
        self.calls.append(name)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def opened():
    return []


@pytest.fixture
def searcher():
    return FakeSearcher()


@pytest.fixture
def controller(searcher, opened):
    return ActionController(searcher, opener=opened.append, reset_delay=0.05)
