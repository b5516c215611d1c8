"""Derive image tags and OCI labels from the triggering ref.

Tags come from independent rules, each a predicate plus a transform, evaluated in
order against one SourceRef. Every matching rule contributes its tag; the resolver
never deduplicates, and an unmatched ref yields no tags at all.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import TYPE_CHECKING

from release_tooling.ci.source_ref import SourceRef

if TYPE_CHECKING:
    from release_tooling.config import PipelineConfig

SEMVER_TAG = re.compile(r"v(\d+)\.(\d+)\.(\d+)", re.ASCII)

OCI_PREFIX = "org.opencontainers.image."


@dataclass(frozen=True)
class TagRule:
    name: str
    matches: Callable[[SourceRef], bool]
    render: Callable[[SourceRef], str]

    def apply(self, ref: SourceRef) -> str | None:
        return self.render(ref) if self.matches(ref) else None


def _semver(ref: SourceRef) -> re.Match[str] | None:
    return SEMVER_TAG.fullmatch(ref.value) if ref.is_tag else None


def _major_minor_patch(ref: SourceRef) -> str:
    m = _semver(ref)
    return f"{m.group(1)}.{m.group(2)}.{m.group(3)}"


def _major_minor(ref: SourceRef) -> str:
    m = _semver(ref)
    return f"{m.group(1)}.{m.group(2)}"


DEFAULT_TAG_RULES: tuple[TagRule, ...] = (
    TagRule("branch", lambda ref: ref.is_branch, lambda ref: ref.value),
    TagRule("semver-version", lambda ref: _semver(ref) is not None, _major_minor_patch),
    TagRule("semver-major-minor", lambda ref: _semver(ref) is not None, _major_minor),
)


@dataclass(frozen=True)
class ImageMetadata:
    tags: tuple[str, ...]
    labels: Mapping[str, str]

    @property
    def version(self) -> str | None:
        return self.tags[0] if self.tags else None


def resolve_tags(ref: SourceRef, rules: Sequence[TagRule] = DEFAULT_TAG_RULES) -> tuple[str, ...]:
    """Apply every rule to ref; collect the tag of each rule that matches, in rule order."""
    out: list[str] = []
    for rule in rules:
        tag = rule.apply(ref)
        if tag is not None:
            out.append(tag)
    return tuple(out)


def resolve_labels(
    ref: SourceRef,
    config: PipelineConfig,
    tags: Sequence[str],
    now: datetime | None = None,
) -> Mapping[str, str]:
    """Standard OCI labels. source/url/revision are omitted when the ref does not carry them."""
    created = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    labels: dict[str, str] = {
        OCI_PREFIX + "title": ref.repository.split("/")[-1] if ref.repository else config.image_name,
        OCI_PREFIX + "version": tags[0] if tags else ref.value,
        OCI_PREFIX + "created": created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
    }
    url = ref.repository_url
    if url:
        labels[OCI_PREFIX + "source"] = url
        labels[OCI_PREFIX + "url"] = url
    if ref.sha:
        labels[OCI_PREFIX + "revision"] = ref.sha
    labels.update(config.labels)
    return MappingProxyType(labels)


def resolve_metadata(
    ref: SourceRef,
    config: PipelineConfig,
    now: datetime | None = None,
    rules: Sequence[TagRule] = DEFAULT_TAG_RULES,
) -> ImageMetadata:
    tags = resolve_tags(ref, rules)
    return ImageMetadata(tags=tags, labels=resolve_labels(ref, config, tags, now=now))


def is_release_ref(ref: SourceRef, protected_branches: Sequence[str]) -> bool:
    """True for a push to a protected branch or a vX.Y.Z tag; the pipeline's trigger filter."""
    if ref.is_branch:
        return ref.value in protected_branches
    return _semver(ref) is not None
