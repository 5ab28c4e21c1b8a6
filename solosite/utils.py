from __future__ import annotations

import datetime as dt
import shutil
import sys
from pathlib import Path


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def rfc822_date(value: dt.datetime) -> str:
    value = value.replace(tzinfo=dt.timezone.utc)
    return value.strftime("%a, %d %b %Y %H:%M:%S %z")


def iso_date(value: dt.datetime) -> str:
    value = value.replace(tzinfo=dt.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None, microsecond=0)


def list_files(root: Path, suffix: str = "") -> list[Path]:
    if not root.exists():
        return []
    files = [path for path in root.rglob("*") if path.is_file()]
    if suffix:
        files = [path for path in files if path.suffix.lower() == suffix]
    return sorted(files, key=lambda p: p.as_posix())


def reset_output_dir(output_dir: Path, protected: list[Path]) -> None:
    """Empty the output directory, refusing to touch anything that holds sources."""
    output_resolved = output_dir.resolve()
    if output_resolved == Path.cwd().resolve():
        print("Refusing to clean the working directory.", file=sys.stderr)
        sys.exit(1)
    for path in protected:
        resolved = path.resolve()
        if resolved == output_resolved or resolved.is_relative_to(output_resolved):
            print(f"Refusing to clean output directory containing {path}.", file=sys.stderr)
            sys.exit(1)
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
