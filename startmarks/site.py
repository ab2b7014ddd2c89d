from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .log import get_logger

log = get_logger(__name__)

STATIC_FILES = ("index.html", "style.css", "script.js")
SERVICE_WORKER = "sw.js"


def prepare_output(dist: Path, *, icons_dir_name: str = "icons") -> None:
    shutil.rmtree(dist, ignore_errors=True)
    (dist / icons_dir_name).mkdir(parents=True, exist_ok=True)
    (dist / "assets").mkdir(parents=True, exist_ok=True)
    log.info("Prepared clean output directory: %s", dist)


def _copy(src: Path, dst: Path) -> bool:
    try:
        shutil.copyfile(src, dst)
    except OSError as e:
        log.error("Failed to copy %s: %s", src, e)
        return False
    return True


def copy_static(src_dir: Path, dist: Path, *, favicon: Optional[Path] = None) -> List[str]:
    """Copy the front end into ``dist``; missing or uncopyable files are skipped and logged."""
    copied: List[str] = []

    assets = src_dir / "assets"
    if assets.is_dir():
        for p in sorted(assets.iterdir()):
            if p.is_file() and _copy(p, dist / "assets" / p.name):
                copied.append(f"assets/{p.name}")
    else:
        log.warning("No assets directory in %s", src_dir)

    for name in STATIC_FILES:
        p = src_dir / name
        if not p.is_file():
            log.warning("Static file missing, skipped: %s", p)
            continue
        if _copy(p, dist / name):
            copied.append(name)

    if favicon is not None:
        if not favicon.is_file():
            log.warning("Site favicon missing, skipped: %s", favicon)
        elif _copy(favicon, dist / "favicon.ico"):
            copied.append("favicon.ico")

    log.info("Copied %d static files.", len(copied))
    return copied


def write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    log.info("Wrote %s", path)


def core_assets(dist: Path, *, icons_dir_name: str = "icons") -> List[str]:
    """Everything the page needs offline except the icons, as service-worker cache keys."""
    out = ["./"]
    for p in sorted(dist.rglob("*")):
        if not p.is_file():
            continue
        rel = p.relative_to(dist).as_posix()
        if rel == SERVICE_WORKER or rel.startswith(f"{icons_dir_name}/"):
            continue
        out.append(rel)
    return out


def write_service_worker(
    src_dir: Path,
    dist: Path,
    *,
    core: Sequence[str],
    icons: Sequence[str],
) -> bool:
    template = src_dir / SERVICE_WORKER
    if not template.is_file():
        log.warning("No service worker template at %s; offline caching disabled.", template)
        return False

    header = (
        f"self.__CORE_ASSETS__ = {json.dumps(list(core), ensure_ascii=False)};\n"
        f"self.__ICON_ASSETS__ = {json.dumps(sorted(set(icons)), ensure_ascii=False)};\n"
    )
    (dist / SERVICE_WORKER).write_text(header + template.read_text(encoding="utf-8"), encoding="utf-8")
    log.info("Wrote service worker with %d core and %d icon assets.", len(core), len(set(icons)))
    return True
