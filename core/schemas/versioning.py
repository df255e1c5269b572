"""
Module 01 - Schemas & Canonicalization
File: versioning.py

Purpose: Centralize leaf-schema and layout version constants.
This file must remain tiny and have no imports from other schema files
to avoid circular dependencies.
"""

from typing import Literal

# Leaf schema versions: V1 keys leaves by wallet, V2 by salted user key
LEAF_VERSION_V1: int = 1
LEAF_VERSION_V2: int = 2

# Default version for newly built epochs
DEFAULT_LEAF_VERSION: int = LEAF_VERSION_V2

# Type alias for leaf version
LeafVersion = Literal[1, 2]

# Byte layouts a leaf can be encoded with
LAYOUT_CANONICAL: str = "canonical"
LAYOUT_ANCHOR: str = "anchor"

LayoutName = Literal["canonical", "anchor"]

SUPPORTED_LEAF_VERSIONS: frozenset[int] = frozenset({LEAF_VERSION_V1, LEAF_VERSION_V2})
SUPPORTED_LAYOUTS: frozenset[str] = frozenset({LAYOUT_CANONICAL, LAYOUT_ANCHOR})


class UnsupportedLeafVersionError(ValueError):
    """Raised when an unsupported leaf schema version is encountered."""

    def __init__(self, version: object, supported: frozenset[int] | None = None) -> None:
        self.version = version
        self.supported = supported or SUPPORTED_LEAF_VERSIONS
        super().__init__(
            f"Unsupported leaf version: {version!r}. "
            f"Supported versions: {sorted(self.supported)}"
        )


class UnsupportedLayoutError(ValueError):
    """Raised when an unknown leaf byte layout is requested."""

    def __init__(self, layout: object) -> None:
        self.layout = layout
        super().__init__(
            f"Unsupported leaf layout: {layout!r}. "
            f"Supported layouts: {sorted(SUPPORTED_LAYOUTS)}"
        )


def assert_supported_leaf_version(version: int) -> None:
    """
    Validate that the given leaf version is supported.

    Raises:
        UnsupportedLeafVersionError: If the version is not supported.
    """
    if version not in SUPPORTED_LEAF_VERSIONS:
        raise UnsupportedLeafVersionError(version)

