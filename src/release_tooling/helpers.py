"""Shared helpers for release_tooling (platform naming, tag grammar, digests, GitHub outputs).

Used by ci, build, docker, and publish modules.
"""

from __future__ import annotations

import hashlib
import re
import uuid
from collections.abc import Iterable, Mapping
from pathlib import Path

# --- Platform ---

HOST_ARCH_PLATFORMS = {
    "x86_64": "linux/amd64",
    "amd64": "linux/amd64",
    "aarch64": "linux/arm64",
    "arm64": "linux/arm64",
    "armv7l": "linux/arm/v7",
}


def platform_slug(platform: str) -> str:
    """linux/amd64 -> amd64, linux/arm/v7 -> arm-v7. Safe for paths and image tags."""
    parts = platform.split("/")
    return "-".join(parts[1:]) if len(parts) > 1 else parts[0]


def split_platform(platform: str) -> tuple[str, str, str | None]:
    """Split os/arch[/variant]. Raises ValueError on anything else."""
    parts = platform.split("/")
    if len(parts) not in (2, 3) or not all(parts):
        msg = f"Invalid platform: {platform!r} (expected os/arch or os/arch/variant)"
        raise ValueError(msg)
    return parts[0], parts[1], parts[2] if len(parts) == 3 else None


# --- Tags and references ---

_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_DIGEST_RE = re.compile(r"sha256:[0-9a-f]{64}")


def is_valid_tag(tag: str) -> bool:
    """Docker tag grammar: [A-Za-z0-9_][A-Za-z0-9_.-]{0,127}."""
    return bool(_TAG_RE.match(tag))


def find_digest(output: str) -> str | None:
    """Last sha256 digest in buildx push progress output, or None."""
    found = _DIGEST_RE.findall(output or "")
    return found[-1] if found else None


def unique(items: Iterable[str]) -> list[str]:
    """Drop repeated strings, keep first-seen order."""
    return list(dict.fromkeys(items))


# --- Files ---


def sha256_file(path: Path) -> str:
    """Hex sha256 of a file's contents."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def new_run_id() -> str:
    """Short random id naming one run's buildx builder and work directory."""
    return uuid.uuid4().hex[:12]


# --- GitHub Actions ---


def write_github_output(path: str | Path | None, values: Mapping[str, str]) -> bool:
    """Append key=value pairs to $GITHUB_OUTPUT. Multi-line values use the key<<DELIM form.

    Returns False when path is empty (not running under Actions).
    """
    if not path:
        return False
    with Path(path).open("a") as f:
        for key, value in values.items():
            if "\n" in value:
                delim = f"ghadelimiter_{uuid.uuid4().hex}"
                f.write(f"{key}<<{delim}\n{value}\n{delim}\n")
            else:
                f.write(f"{key}={value}\n")
    return True
