from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

from .builder import build_site
from .config import load_config
from .models import COLLECTION_SPECS
from .scaffold import create_content
from .utils import parse_bool, parse_int


def run_build(args: argparse.Namespace, config: dict) -> None:
    theme = load_config(Path(args.theme))
    start = time.perf_counter()
    try:
        report = build_site(
            config,
            theme,
            content_dir=Path(args.content),
            output_dir=Path(args.output),
            public_dir=Path(args.public),
            workers=args.workers,
            include_drafts=args.drafts,
        )
    except OSError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        sys.exit(1)
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s ({report.page_count} documents).")
    print(f"Site generated in: {args.output}")


def main(argv: Optional[list[str]] = None) -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="config.json",
        help="Path to site config file (JSON/TOML/YAML).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))

    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = config.get(key)
        return default if value is None else parse_bool(value)

    def cfg_int(key: str, default: int) -> int:
        return parse_int(config.get(key), default)

    parser = argparse.ArgumentParser(description="Static site generator for blog posts, events and podcasts.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (JSON/TOML/YAML).")
    parser.add_argument("--theme", default=cfg_str("theme_file", "theme.json"), help="Path to theme file.")
    parser.add_argument("--content", default=cfg_str("content_dir", "content"), help="Directory containing content.")
    parser.add_argument("--public", default=cfg_str("public_dir", "public"), help="Directory of static assets.")
    parser.add_argument("--output", default=cfg_str("output_dir", "dist"), help="Output directory for the site.")
    parser.add_argument(
        "--workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for rendering (0 = auto).",
    )
    parser.add_argument(
        "--drafts",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("drafts", False),
        help="Include documents marked published: false.",
    )
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("build", help="Build the site (default).")
    new_parser = subparsers.add_parser("new", help="Create a new content file from a template.")
    new_parser.add_argument("kind", choices=sorted(COLLECTION_SPECS), help="Content type.")
    new_parser.add_argument("title", nargs="+", help="Title of the new document.")

    args = parser.parse_args(argv)
    if args.command == "new":
        create_content(Path(args.content), args.kind, " ".join(args.title))
        return
    run_build(args, config)


if __name__ == "__main__":
    main()
