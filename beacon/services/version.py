"""
Beacon - Version Management
===========================

Run-count version stamped into version.json and shown in the presence.

Version Format: MAJOR.MINOR.PATCH, each part a single digit that carries
into the next one:
    1.0.8 -> 1.0.9 -> 1.1.0 ... 1.9.9 -> 2.0.0

The file is bumped once per startup. A missing or unreadable file counts
as 1.0.0, so the first run after that shows 1.0.1.
"""

import json
import re
from pathlib import Path
from typing import Tuple, Union

from beacon.core.logger import logger

BASE_VERSION = "1.0.0"

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


def parse_version(version: str) -> Tuple[int, int, int]:
    """
    Split "X.Y.Z" into integers.

    Raises:
        ValueError: If the string is not three dot-separated numbers.
    """
    match = _VERSION_RE.match(version.strip())
    if not match:
        raise ValueError(f"Invalid version: {version!r}")
    major, minor, patch = (int(g) for g in match.groups())
    return major, minor, patch


def bump_version(version: str) -> str:
    """
    Increment the patch digit, carrying into minor and major.

    Examples:
        >>> bump_version("1.0.3")
        "1.0.4"
        >>> bump_version("1.0.9")
        "1.1.0"
        >>> bump_version("1.9.9")
        "2.0.0"
    """
    major, minor, patch = parse_version(version)
    if patch < 9:
        patch += 1
    else:
        patch = 0
        if minor < 9:
            minor += 1
        else:
            minor = 0
            major += 1
    return f"{major}.{minor}.{patch}"


def read_version(path: Union[str, Path]) -> str:
    """Current version in the file, BASE_VERSION when absent or corrupt."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        version = str(data["version"])
        parse_version(version)
        return version
    except FileNotFoundError:
        return BASE_VERSION
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning("Version File Unreadable", [
            ("Path", str(path)),
            ("Error", str(e)[:100]),
            ("Fallback", BASE_VERSION),
        ])
        return BASE_VERSION


def bump_version_file(path: Union[str, Path]) -> str:
    """
    Bump the stored version and write it back.

    A write failure is logged; the bumped version is still returned so the
    bot can display it.

    Returns:
        The new version string.
    """
    path = Path(path)
    previous = read_version(path)
    version = bump_version(previous)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"version": version}, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        logger.error("Version File Write Failed", [
            ("Path", str(path)),
            ("Error", str(e)[:100]),
        ])

    logger.tree("Version Bumped", [
        ("Previous", previous),
        ("Current", version),
    ], emoji="🏷️")
    return version


__all__ = [
    "BASE_VERSION",
    "bump_version",
    "bump_version_file",
    "parse_version",
    "read_version",
]
