from __future__ import annotations

import html
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Tuple, Union

from .log import get_logger
from .model import Bookmark, BookmarkNode

log = get_logger(__name__)

ROOT_NAME = "root"
PATH_SEP = " / "

_WS_RE = re.compile(r"\s+")
_FOLDER_RE = re.compile(r"<H3[^>]*>(.*?)</H3>", re.IGNORECASE)
_LINK_RE = re.compile(r'<A\s+HREF="([^"]*)"[^>]*>(.*?)</A>', re.IGNORECASE)
_CLOSE_RE = re.compile(r"</DL>", re.IGNORECASE)


@dataclass(frozen=True)
class FolderOpen:
    name: str


@dataclass(frozen=True)
class Link:
    url: str
    name: str


@dataclass(frozen=True)
class FolderClose:
    pass


Token = Union[FolderOpen, Link, FolderClose]


def tokenize(text: str) -> Iterator[Token]:
    """Split a Netscape bookmarks export into folder/link/close tokens, one line at a time.

    This is not an HTML parser: it relies on exports putting each <DT> entry and each
    </DL> on its own line, which every mainstream browser does.
    """
    for line in text.splitlines():
        s = line.strip()
        if not s:
            continue

        m = _FOLDER_RE.search(s)
        if m:
            yield FolderOpen(name=_clean(m.group(1)))
            continue

        m = _LINK_RE.search(s)
        if m:
            yield Link(url=html.unescape(m.group(1)).strip(), name=_clean(m.group(2)))
            continue

        if _CLOSE_RE.search(s):
            yield FolderClose()


def build_tree(tokens: Iterable[Token]) -> BookmarkNode:
    root = BookmarkNode(name=ROOT_NAME)
    stack: List[Tuple[BookmarkNode, str]] = [(root, "")]
    stray_closes = 0

    for tok in tokens:
        node, path = stack[-1]
        if isinstance(tok, FolderOpen):
            child = node.add_child(tok.name)
            stack.append((child, f"{path}{PATH_SEP}{tok.name}" if path else tok.name))
        elif isinstance(tok, Link):
            node.bookmarks.append(Bookmark(name=tok.name, url=tok.url, icon="", path=path))
        elif isinstance(tok, FolderClose):
            # The export's outermost </DL> closes the root list itself.
            if len(stack) > 1:
                stack.pop()
            else:
                stray_closes += 1

    if stray_closes > 1:
        log.debug("Ignored %d unmatched </DL> markers at root level.", stray_closes - 1)
    if len(stack) > 1:
        log.warning("Bookmarks export ended with %d unclosed folder(s).", len(stack) - 1)
    return root


def parse_bookmarks_text(text: str) -> BookmarkNode:
    return build_tree(tokenize(text))


def parse_bookmarks_html(path: Path) -> BookmarkNode:
    text = path.read_text(encoding="utf-8", errors="replace")
    return parse_bookmarks_text(text)


def iter_bookmarks(node: BookmarkNode) -> Iterator[Bookmark]:
    yield from node.bookmarks
    for child in node.children:
        yield from iter_bookmarks(child)


def _clean(raw: str) -> str:
    return _WS_RE.sub(" ", html.unescape(raw)).strip()
