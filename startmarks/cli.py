from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import List

from . import __version__
from .batch import collect_items, resolve_all
from .config import load_settings, load_site_config
from .engines import engines_to_config, parse_engines
from .favicons import FaviconResolver
from .log import LogConfig, get_logger, setup_logging
from .parse_netscape import iter_bookmarks, parse_bookmarks_html
from .site import copy_static, core_assets, prepare_output, write_json, write_service_worker

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="startmarks",
        description="Build a static, offline-capable start page from a browser bookmarks export.",
    )
    p.add_argument("-V", "--version", action="version", version=f"startmarks {__version__}")
    p.add_argument("--config", default=None, help="YAML settings file (optional). Env vars override defaults.")
    sub = p.add_subparsers(dest="cmd", required=True)

    b = sub.add_parser("build", help="Build the start page into an output directory.")
    b.add_argument("--bookmarks", default="bookmarks.html", help="Netscape bookmarks HTML export.")
    b.add_argument("--src", default="src", help="Front-end source dir (index.html, style.css, script.js, sw.js, assets/, config.json).")
    b.add_argument("--out", default="dist", help="Output directory (wiped on every build).")
    b.add_argument("--favicon", default="favicon.ico", help="Site favicon copied to the output root.")
    b.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    b.add_argument("--log-file", default=None, help="Write a full debug log to this file.")
    b.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    b.add_argument("--no-fetch", action="store_true", help="Skip icon fetching; every remote item gets the placeholder.")

    args = p.parse_args(argv)
    cfg = load_settings(args.config)
    if args.log_level:
        cfg.log_level = args.log_level
    if args.log_file:
        cfg.log_file = args.log_file
    if args.no_color:
        cfg.no_color = True
    if args.no_fetch:
        cfg.fetch_enabled = False
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color, log_file=cfg.log_file or None))

    if args.cmd == "build":
        return _cmd_build(args, cfg)
    return 2


def _cmd_build(args, cfg) -> int:
    t0 = time.time()
    src_dir = Path(args.src)
    out_dir = Path(args.out)
    bookmarks_path = Path(args.bookmarks)

    config_path = src_dir / "config.json"
    try:
        site_config = load_site_config(config_path)
    except (OSError, ValueError) as e:
        log.error("Failed to read site config %s: %s", config_path, e)
        return 2
    try:
        cfg.apply_build_settings(site_config.get("buildSettings"))
        engines = parse_engines(site_config.get("searchEngines"))
    except ValueError as e:
        log.error("Invalid site config %s: %s", config_path, e)
        return 2
    log.info(
        "Build settings: jobs=%d, max icon size=%d bytes, timeout=%.1fs",
        cfg.fetch_jobs,
        cfg.max_icon_bytes,
        cfg.fetch_timeout_s,
    )

    if not bookmarks_path.exists():
        log.error("Input file not found: %s", bookmarks_path)
        return 2
    try:
        tree = parse_bookmarks_html(bookmarks_path)
    except OSError as e:
        log.error("Failed to read bookmarks HTML: %s", e)
        return 2
    n_bookmarks = sum(1 for _ in iter_bookmarks(tree))
    log.info("Parsed %d bookmarks in %d top-level folders from %s", n_bookmarks, len(tree.children), bookmarks_path)

    prepare_output(out_dir, icons_dir_name=cfg.icons_dir_name)
    copy_static(src_dir, out_dir, favicon=Path(args.favicon))

    with FaviconResolver.from_settings(cfg, out_dir / cfg.icons_dir_name) as resolver:
        resolved = resolve_all(collect_items(tree, engines), resolver, jobs=cfg.fetch_jobs)
        icons = resolver.written_icons
        if resolver.write_failures:
            log.error("%d icon(s) could not be written; those items use the placeholder.", resolver.write_failures)
    log.info("Resolved %d hostnames, %d icons written.", len(resolved), len(icons))

    if engines:
        site_config["searchEngines"] = engines_to_config(engines)
    write_json(out_dir / "bookmarks.json", [tree.to_dict()])
    write_json(out_dir / "config.json", site_config)

    write_service_worker(
        src_dir,
        out_dir,
        core=core_assets(out_dir, icons_dir_name=cfg.icons_dir_name),
        icons=icons,
    )

    log.info("Build complete in %d ms: %s", int((time.time() - t0) * 1000), out_dir)
    return 0
