"""Version tokens for content-addressed cache entries."""

from __future__ import annotations

import hashlib

__all__ = [
    "ANALYZER_VERSION",
    "DEFAULT_HASH_ALGORITHM",
    "hash_text",
    "source_version",
]

# Bump when analysis output changes for identical input.
ANALYZER_VERSION = "1"
DEFAULT_HASH_ALGORITHM = "sha256"
_DELIMITER = b"\x00"


def hash_text(
    text: str,
    *,
    analyzer_version: str,
    algorithm: str = DEFAULT_HASH_ALGORITHM,
) -> str:
    """Hash ``text`` salted with ``analyzer_version``."""

    digest = hashlib.new(algorithm)
    digest.update(analyzer_version.encode("utf-8"))
    digest.update(_DELIMITER)
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


def source_version(code: str) -> str:
    """Return the cache version token for the route module ``code``.

    Example:
        >>> source_version("export default 1") == source_version("export default 1")
        True
    """

    return hash_text(code, analyzer_version=ANALYZER_VERSION)
