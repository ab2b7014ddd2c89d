from pathlib import Path

import httpx

from conftest import PNG_2K, png_response
from startmarks.batch import collect_items, resolve_all
from startmarks.engines import parse_engines
from startmarks.favicons import PLACEHOLDER_ICON, FaviconResolver
from startmarks.model import Bookmark, SearchEngine
from startmarks.parse_netscape import parse_bookmarks_text


def test_end_to_end_two_hostnames(tmp_path: Path, mock_client):
    def handler(request):
        if request.url.host == "b.example" and request.url.path == "/favicon.ico":
            return png_response(PNG_2K)
        if request.url.host == "b.example":
            raise AssertionError("later providers must not be tried for b.example")
        return httpx.Response(503)

    client = mock_client(handler)
    items = [
        Bookmark(name="A1", url="https://a.example/one"),
        Bookmark(name="B1", url="https://b.example/one"),
        Bookmark(name="A2", url="https://www.a.example/two"),
        Bookmark(name="B2", url="https://www.b.example/two"),
        SearchEngine(key="a", name="A search", url="https://a.example/?q={query}"),
    ]

    with FaviconResolver(tmp_path / "icons", client=client) as resolver:
        mapping = resolve_all(items, resolver, jobs=4)

    assert [i.icon for i in items] == [
        PLACEHOLDER_ICON,
        "icons/b.example.png",
        PLACEHOLDER_ICON,
        "icons/b.example.png",
        PLACEHOLDER_ICON,
    ]
    assert mapping == {"a.example": PLACEHOLDER_ICON, "b.example": "icons/b.example.png"}
    assert [p.name for p in (tmp_path / "icons").iterdir()] == ["b.example.png"]
    # a.example tried every provider exactly once, b.example only the first.
    assert len([u for u in client.seen if "a.example" in u]) == 6
    assert len(client.seen) == 7


def test_explicit_icon_and_local_values(tmp_path: Path, mock_client):
    client = mock_client(lambda request: png_response())
    items = [
        SearchEngine(key="x", name="X", url="https://search.example/?q={query}", icon="https://cdn.example/logo.png"),
        SearchEngine(key="local", name="Local", url="/find?q={query}", icon="assets/local.svg"),
        SearchEngine(key="blank", name="Blank", url="/find?q={query}"),
        Bookmark(name="Bad", url="https://[oops/"),
        Bookmark(name="Mail", url="mailto:me@example.com"),
    ]

    with FaviconResolver(tmp_path / "icons", client=client) as resolver:
        resolve_all(items, resolver, jobs=2)

    assert items[0].icon == "icons/cdn.example.png"
    assert items[1].icon == "assets/local.svg"
    assert items[2].icon == "/find?q={query}"
    assert items[3].icon == PLACEHOLDER_ICON
    assert items[4].icon == "mailto:me@example.com"
    assert client.seen == ["https://cdn.example/favicon.ico"]


def test_one_failing_resolution_does_not_abort_batch(tmp_path: Path, mock_client, monkeypatch):
    client = mock_client(lambda request: png_response())
    resolver = FaviconResolver(tmp_path / "icons", client=client)
    real_resolve = resolver.resolve

    def flaky(url):
        if "boom.example" in url:
            raise RuntimeError("boom")
        return real_resolve(url)

    monkeypatch.setattr(resolver, "resolve", flaky)
    items = [Bookmark(name="boom", url="https://boom.example/"), Bookmark(name="ok", url="https://ok.example/")]
    resolve_all(items, resolver, jobs=2)

    assert items[0].icon == PLACEHOLDER_ICON
    assert items[1].icon == "icons/ok.example.png"


def test_collect_items_covers_tree_and_nested_engines():
    root = parse_bookmarks_text(
        "<DT><H3>F</H3>\n<DL><p>\n<DT><A HREF=\"https://f.example/\">f</A>\n</DL><p>\n"
        "<DT><A HREF=\"https://r.example/\">r</A>\n"
    )
    engines = parse_engines(
        {
            "g": {"name": "G", "url": "https://g.example/?q={query}", "engines": {"s": {"name": "S", "url": "https://s.example/?q={query}"}}},
        }
    )
    items = collect_items(root, engines)
    assert [i.name for i in items] == ["r", "f", "G", "S"]
    assert collect_items(root) == items[:2]
