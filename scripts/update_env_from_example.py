#!/usr/bin/env python3
"""Append variables declared in example.env that are missing from .env."""
from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
EXAMPLE_ENV_PATH = Path(os.environ.get("EXAMPLE_ENV_PATH", ROOT / "example.env"))
TARGET_ENV_PATH = Path(os.environ.get("ENV_TARGET_PATH", ROOT / ".env"))


def load_lines(path: Path) -> list[str]:
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


def parse_key(line: str) -> str | None:
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key = stripped.split("=", 1)[0].strip()
    if key.startswith("export "):
        key = key[len("export "):].strip()
    return key or None


def missing_entries(example_lines: list[str], existing_keys: set[str]) -> list[str]:
    entries: list[str] = []
    seen = set(existing_keys)
    for line in example_lines:
        key = parse_key(line)
        if key and key not in seen:
            entries.append(line)
            seen.add(key)
    return entries


def sync_env(example_path: Path, target_path: Path) -> list[str]:
    """Add the missing entries to ``target_path`` and return the added keys."""
    existing_lines = load_lines(target_path)
    existing_keys = {key for key in map(parse_key, existing_lines) if key}
    new_entries = missing_entries(load_lines(example_path), existing_keys)
    if not new_entries:
        return []

    if existing_lines and existing_lines[-1].strip():
        existing_lines.append("")
    existing_lines.append(f"# Added from {example_path.name}")
    existing_lines.extend(new_entries)

    target_path.parent.mkdir(parents=True, exist_ok=True)
    target_path.write_text("\n".join(existing_lines) + "\n", encoding="utf-8")
    return [parse_key(entry) for entry in new_entries]


def main() -> int:
    if not EXAMPLE_ENV_PATH.exists():
        print(f"example.env not found at {EXAMPLE_ENV_PATH}", file=sys.stderr)
        return 1

    added = sync_env(EXAMPLE_ENV_PATH, TARGET_ENV_PATH)
    if not added:
        print("No new variables to add.")
        return 0
    print(f"Added {len(added)} variable(s) to {TARGET_ENV_PATH}: {', '.join(added)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
