"""CI automation: parse the triggering ref; derive image tags and OCI labels; trigger filter."""

from .metadata import (
    DEFAULT_TAG_RULES,
    ImageMetadata,
    TagRule,
    is_release_ref,
    resolve_labels,
    resolve_metadata,
    resolve_tags,
)
from .source_ref import RefKind, SourceRef, parse_ref, source_ref_from_env

__all__ = [
    "DEFAULT_TAG_RULES",
    "ImageMetadata",
    "RefKind",
    "SourceRef",
    "TagRule",
    "is_release_ref",
    "parse_ref",
    "resolve_labels",
    "resolve_metadata",
    "resolve_tags",
    "source_ref_from_env",
]
