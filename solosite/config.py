from __future__ import annotations

import copy
import json
import sys
import tomllib
from pathlib import Path

import yaml

from .models import COLLECTION_SPECS

DEFAULT_DOMAIN = "https://example.com"
FEATURE_MODES = {"internal", "external", "disabled"}


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be an object: {path}", file=sys.stderr)
        sys.exit(1)
    return data


def validate_config(config: dict) -> None:
    """Abort the build when structural fields the layout depends on are missing."""
    nav_links = config.get("nav_links")
    if not isinstance(nav_links, list):
        print("Config is missing required field 'nav_links' (a list of {label, url}).", file=sys.stderr)
        sys.exit(1)
    for link in nav_links:
        if not isinstance(link, dict) or "url" not in link:
            print(f"Invalid nav link in config: {link!r}", file=sys.stderr)
            sys.exit(1)
    features = config.get("features")
    if features is not None and not isinstance(features, dict):
        print("Config field 'features' must be a mapping.", file=sys.stderr)
        sys.exit(1)


def feature(config: dict, kind: str) -> dict:
    features = config.get("features")
    if features is None:
        return {"mode": "internal"}
    value = features.get(kind)
    if not isinstance(value, dict):
        return {"mode": "disabled"}
    return value


def feature_mode(config: dict, kind: str) -> str:
    mode = str(feature(config, kind).get("mode") or "disabled").strip().lower()
    return mode if mode in FEATURE_MODES else "disabled"


def feature_label(config: dict, kind: str) -> str:
    label = feature(config, kind).get("label")
    return str(label) if label else COLLECTION_SPECS[kind].label


def resolve_features(config: dict, content_dir: Path) -> dict:
    """Return a copy of the config whose internal features all have content to build.

    A kind configured as internal but without a content directory is switched
    to disabled so that no page links to a collection that is never written.
    """
    resolved = copy.deepcopy(config)
    features = {}
    for kind in COLLECTION_SPECS:
        entry = dict(feature(config, kind))
        mode = feature_mode(config, kind)
        if mode == "internal" and not (content_dir / kind).is_dir():
            mode = "disabled"
        entry["mode"] = mode
        entry.setdefault("label", feature_label(config, kind))
        features[kind] = entry
    resolved["features"] = features
    return resolved


def active_kinds(config: dict) -> list[str]:
    return [kind for kind in COLLECTION_SPECS if feature_mode(config, kind) == "internal"]


def site_domain(config: dict) -> str:
    return str(config.get("domain") or DEFAULT_DOMAIN).rstrip("/")
