from __future__ import annotations

import re
from typing import Iterable, Optional

VERSION_PATTERN = re.compile(r"_(\d+)\.json$")


def parse_version(name: str) -> Optional[int]:
    """Return the trailing version of ``<prefix>_<digits>.json`` or None."""

    match = VERSION_PATTERN.search(name or "")
    if match is None:
        return None
    return int(match.group(1))


def is_versioned_artifact(name: str) -> bool:
    return parse_version(name) is not None


def latest_version(names: Iterable[str]) -> int:
    """Highest version among ``names``; 0 when none of them carries one."""

    versions = [version for version in map(parse_version, names) if version is not None]
    return max(versions, default=0)


def versioned_file_name(locale: str, version: int) -> str:
    return f"{locale}_{version}.json"
