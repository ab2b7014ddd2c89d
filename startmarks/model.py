from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass
class Bookmark:
    name: str
    url: str
    icon: str = ""
    path: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "url": self.url, "icon": self.icon, "path": self.path}


@dataclass
class BookmarkNode:
    name: str
    bookmarks: List[Bookmark] = field(default_factory=list)
    children: List["BookmarkNode"] = field(default_factory=list)

    def add_child(self, name: str) -> "BookmarkNode":
        child = BookmarkNode(name=name)
        self.children.append(child)
        return child

    def depth(self) -> int:
        """Number of folder levels below this node."""
        if not self.children:
            return 0
        return 1 + max(c.depth() for c in self.children)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "bookmarks": [b.to_dict() for b in self.bookmarks],
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class SearchEngine:
    key: str
    name: str
    url: str
    icon: str = ""
    engines: Dict[str, "SearchEngine"] = field(default_factory=dict)
    # The config entry as read; written back with only icon and engines replaced.
    source: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_group(self) -> bool:
        return bool(self.engines)

    def to_dict(self) -> Dict[str, Any]:
        if self.source:
            out: Dict[str, Any] = dict(self.source)
        else:
            out = {"name": self.name, "url": self.url}
        out["icon"] = self.icon
        if self.engines:
            out["engines"] = {k: e.to_dict() for k, e in self.engines.items()}
        return out


IconItem = Union[Bookmark, SearchEngine]
