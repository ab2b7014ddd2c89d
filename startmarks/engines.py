from __future__ import annotations

from typing import Any, Dict, Iterator, Mapping

from .log import get_logger
from .model import SearchEngine

log = get_logger(__name__)


def parse_engines(mapping: Mapping[str, Any] | None) -> Dict[str, SearchEngine]:
    """Build the typed engine tree from the ``searchEngines`` config mapping.

    Entries that are not objects are skipped with a warning. A container that is not
    an object (``searchEngines`` itself or a nested ``engines``) raises ValueError.
    """
    if mapping is None:
        return {}
    if not isinstance(mapping, Mapping):
        raise ValueError(f"search engines: expected an object, got {type(mapping).__name__}")

    out: Dict[str, SearchEngine] = {}
    for key, raw in mapping.items():
        if not isinstance(raw, Mapping):
            log.warning("Ignoring search engine %r: expected an object, got %s", key, type(raw).__name__)
            continue
        try:
            children = parse_engines(raw.get("engines"))
        except ValueError as e:
            raise ValueError(f"{key}.engines: {e}") from None
        out[key] = SearchEngine(
            key=str(key),
            name=str(raw.get("name") or key),
            url=str(raw.get("url") or ""),
            icon=str(raw.get("icon") or ""),
            engines=children,
            source=dict(raw),
        )
    return out


def flatten_engines(engines: Mapping[str, SearchEngine]) -> Iterator[SearchEngine]:
    for engine in engines.values():
        yield engine
        if engine.is_group:
            yield from flatten_engines(engine.engines)


def engines_to_config(engines: Mapping[str, SearchEngine]) -> Dict[str, Any]:
    return {k: e.to_dict() for k, e in engines.items()}
