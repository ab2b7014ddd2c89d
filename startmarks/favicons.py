from __future__ import annotations

import hashlib
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from .config import DEFAULT_ALLOWED_ICON_TYPES, DEFAULT_USER_AGENT
from .log import get_logger
from .placeholder import is_placeholder

log = get_logger(__name__)

PLACEHOLDER_ICON = "assets/placeholder_icon.svg"

# Tried strictly in this order; the first accepted icon wins.
PROVIDER_TEMPLATES = (
    "https://{hostname}/favicon.ico",
    "https://www.google.com/s2/favicons?sz=64&domain_url={hostname}",
    "https://icons.duckduckgo.com/ip3/{hostname}.ico",
    "https://favicon.im/{hostname}",
    "https://favicon.yandex.net/favicon/{hostname}",
    "https://logo.clearbit.com/{hostname}",
)

_EXTENSIONS = {
    "image/x-icon": "ico",
    "image/vnd.microsoft.icon": "ico",
    "image/ico": "ico",
    "image/icon": "ico",
    "image/png": "png",
    "image/svg+xml": "svg",
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/gif": "gif",
    "image/webp": "webp",
}
_URL_SUFFIXES = set(_EXTENSIONS.values()) | {"jpg"}


class Rejected(Exception):
    """A provider answered, but the answer is not usable as an icon."""


@dataclass
class Candidate:
    source_url: str
    content_type: str
    body: bytes


def is_remote(url: Optional[str]) -> bool:
    # A malformed http URL still counts as remote; resolve() maps it to the placeholder.
    return bool(url) and url.lower().startswith(("http://", "https://"))


def hostname_of(url: str) -> Optional[str]:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host or None


def root_hostname(hostname: str) -> str:
    host = hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def provider_urls(hostname: str) -> List[str]:
    return [t.format(hostname=hostname) for t in PROVIDER_TEMPLATES]


def extension_for(content_type: Optional[str], source_url: str) -> str:
    ct = (content_type or "").split(";", 1)[0].strip().lower()
    ext = _EXTENSIONS.get(ct)
    if ext:
        return ext
    # Provider paths end in the hostname (favicon.im/example.com), so only trust image suffixes.
    suffix = PurePosixPath(urlparse(source_url).path).suffix.lstrip(".").lower()
    if suffix in _URL_SUFFIXES:
        return suffix
    return "png"


class FaviconResolver:
    """Resolve site icons once per root hostname and write them under ``icons_dir``.

    Thread-safe: the completed cache and the in-flight registry are guarded by one lock,
    and concurrent callers for the same hostname share a single Future.
    """

    def __init__(
        self,
        icons_dir: Path,
        *,
        icons_url_prefix: str = "icons",
        placeholder: str = PLACEHOLDER_ICON,
        max_bytes: int = 1024 * 1024,
        allowed_types: Sequence[str] = tuple(DEFAULT_ALLOWED_ICON_TYPES),
        timeout_s: float = 8.0,
        user_agent: str = DEFAULT_USER_AGENT,
        content_hash: bool = False,
        fetch: bool = True,
        client: Optional[httpx.Client] = None,
    ):
        self.icons_dir = Path(icons_dir)
        self.icons_url_prefix = icons_url_prefix.rstrip("/")
        self.placeholder = placeholder
        self.max_bytes = int(max_bytes)
        self.timeout_s = float(timeout_s)
        self.user_agent = user_agent
        self.allowed_types = [t.lower() for t in allowed_types]
        self.content_hash = content_hash
        self.fetch = fetch
        self.write_failures = 0

        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            timeout=httpx.Timeout(timeout_s, connect=timeout_s),
        )
        self._lock = threading.Lock()
        self._done: Dict[str, str] = {}
        self._inflight: Dict[str, Future] = {}
        self._written: List[str] = []

    @classmethod
    def from_settings(cls, settings, icons_dir: Path, **kwargs) -> "FaviconResolver":
        return cls(
            icons_dir,
            icons_url_prefix=settings.icons_dir_name,
            placeholder=settings.placeholder_icon,
            max_bytes=settings.max_icon_bytes,
            allowed_types=settings.allowed_icon_content_types,
            timeout_s=settings.fetch_timeout_s,
            user_agent=settings.fetch_user_agent,
            content_hash=settings.icon_content_hash,
            fetch=settings.fetch_enabled,
            **kwargs,
        )

    def __enter__(self) -> "FaviconResolver":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @property
    def resolved(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._done)

    @property
    def written_icons(self) -> List[str]:
        with self._lock:
            return list(self._written)

    def lookup(self, hostname: str) -> Optional[str]:
        with self._lock:
            return self._done.get(root_hostname(hostname))

    def resolve(self, url: Optional[str]) -> str:
        if not url:
            return self.placeholder
        if not is_remote(url):
            return url

        hostname = hostname_of(url)
        if not hostname:
            log.warning("Invalid URL, using placeholder icon: %s", url)
            return self.placeholder
        root = root_hostname(hostname)

        with self._lock:
            done = self._done.get(root)
            if done is not None:
                return done
            pending = self._inflight.get(root)
            owner = pending is None
            if owner:
                pending = Future()
                self._inflight[root] = pending

        if not owner:
            log.debug("Waiting for in-flight icon resolution of %s", root)
            return pending.result()

        result = self.placeholder
        try:
            result = self._resolve_host(hostname, root)
        finally:
            with self._lock:
                self._done[root] = result
                del self._inflight[root]
            pending.set_result(result)
        return result

    def _resolve_host(self, hostname: str, root: str) -> str:
        if not self.fetch:
            return self.placeholder

        for source in provider_urls(hostname):
            try:
                cand = self._fetch(source)
                self._validate(cand, hostname)
            except Rejected as e:
                log.debug("Skipping %s for %s: %s", source, hostname, e)
                continue
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                log.debug("Failed to fetch %s for %s: %s", source, hostname, e)
                continue

            try:
                rel = self._store(root, cand)
            except OSError as e:
                with self._lock:
                    self.write_failures += 1
                log.error("Could not write icon for %s: %s", root, e)
                return self.placeholder
            log.info("Fetched icon for %s from %s -> %s", root, source, rel)
            return rel

        log.warning("All icon providers failed for %s, using placeholder.", hostname)
        return self.placeholder

    def _fetch(self, source: str) -> Candidate:
        # httpx timeouts bound each connect/read; the deadline bounds the whole attempt.
        deadline = time.monotonic() + self.timeout_s
        with self._client.stream("GET", source, headers={"User-Agent": self.user_agent}) as r:
            if r.status_code != 200:
                raise Rejected(f"HTTP {r.status_code}")
            declared = r.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > self.max_bytes:
                raise Rejected(f"declared size {declared} bytes exceeds limit")

            body = bytearray()
            for chunk in r.iter_bytes():
                body.extend(chunk)
                if len(body) > self.max_bytes:
                    raise Rejected(f"body exceeds {self.max_bytes} bytes")
                if time.monotonic() > deadline:
                    raise Rejected(f"timed out after {self.timeout_s:g}s")
            return Candidate(
                source_url=source,
                content_type=r.headers.get("content-type", ""),
                body=bytes(body),
            )

    def _validate(self, cand: Candidate, hostname: str) -> None:
        if not cand.body:
            raise Rejected("empty body")
        ct = cand.content_type.lower()
        if not ct or not any(t in ct for t in self.allowed_types):
            raise Rejected(f"content type not allowed: {cand.content_type or '<none>'}")
        if is_placeholder(cand.body, cand.source_url, hostname, cand.content_type):
            raise Rejected("provider placeholder image")

    def _store(self, root: str, cand: Candidate) -> str:
        ext = extension_for(cand.content_type, cand.source_url)
        if self.content_hash:
            digest = hashlib.sha1(cand.body).hexdigest()[:8]
            filename = f"{root}.{digest}.{ext}"
        else:
            filename = f"{root}.{ext}"

        self.icons_dir.mkdir(parents=True, exist_ok=True)
        (self.icons_dir / filename).write_bytes(cand.body)
        rel = f"{self.icons_url_prefix}/{filename}"
        with self._lock:
            self._written.append(rel)
        return rel
