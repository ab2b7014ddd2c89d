from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .engines import flatten_engines
from .favicons import FaviconResolver, hostname_of, is_remote, root_hostname
from .log import get_logger
from .model import BookmarkNode, IconItem, SearchEngine
from .parse_netscape import iter_bookmarks

log = get_logger(__name__)


def collect_items(root: BookmarkNode, engines: Optional[Mapping[str, SearchEngine]] = None) -> List[IconItem]:
    items: List[IconItem] = list(iter_bookmarks(root))
    if engines:
        items.extend(flatten_engines(engines))
    return items


def resolve_all(items: Sequence[IconItem], resolver: FaviconResolver, *, jobs: int = 20) -> Dict[str, str]:
    """Set ``icon`` on every item, fetching each root hostname at most once.

    1. Collect one source URL per distinct root hostname and resolve them on a thread pool.
    2. Wait for all of them; a failure for one hostname never stops the others.
    3. Bind the cached result back onto every item, duplicates included.

    Returns the hostname -> icon path mapping.
    """
    targets = _unique_targets(items)
    log.info("Resolving icons for %d items across %d hostnames (jobs=%d)...", len(items), len(targets), jobs)

    if targets:
        with ThreadPoolExecutor(max_workers=max(1, min(jobs, len(targets)))) as ex:
            futs = {ex.submit(resolver.resolve, url): host for host, url in targets.items()}
            for fut in as_completed(futs):
                host = futs[fut]
                try:
                    fut.result()
                except Exception as e:
                    log.error("Icon resolution for %s failed: %s", host, e)

    missing = 0
    for item in items:
        source = _source_of(item)
        if not is_remote(source):
            item.icon = source or resolver.placeholder
            continue
        host = hostname_of(source)
        icon = resolver.lookup(host) if host else None
        if icon is None:
            missing += 1
            icon = resolver.placeholder
        item.icon = icon

    if missing:
        log.warning("%d items fell back to the placeholder icon without a resolved hostname.", missing)
    return resolver.resolved


def _source_of(item: IconItem) -> str:
    return item.icon or item.url


def _unique_targets(items: Iterable[IconItem]) -> Dict[str, str]:
    targets: Dict[str, str] = {}
    for item in items:
        source = _source_of(item)
        if not is_remote(source):
            continue
        host = hostname_of(source)
        if not host:
            log.warning("Invalid URL, using placeholder icon: %s", source)
            continue
        targets.setdefault(root_hostname(host), source)
    return targets
