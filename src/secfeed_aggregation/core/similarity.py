"""
URL canonicalization and title similarity used for deduplication.
"""

from typing import Optional
from urllib.parse import urlsplit

DEFAULT_PORTS = {"http": ":80", "https": ":443"}


def normalize_link(url: Optional[str]) -> str:
    """Reduce a URL to ``scheme://host/path``, lower-cased.

    Query string, fragment and a default port are dropped. Strings that do
    not parse as an absolute URL fall back to the lower-cased raw value.

    Args:
        url: Raw link

    Returns:
        Canonical link ("" for empty input)
    """
    if not url:
        return ""

    raw = url.strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw.lower()

    if not parts.scheme or not parts.netloc:
        return raw.lower()

    # host[:port] without credentials or a default port
    scheme = parts.scheme.lower()
    host = parts.netloc.rsplit("@", 1)[-1].lower()
    default_port = DEFAULT_PORTS.get(scheme)
    if default_port and host.endswith(default_port):
        host = host[: -len(default_port)]
    path = parts.path or "/"
    return f"{scheme}://{host}{path}".lower()


def normalize_title(title: Optional[str]) -> str:
    """Lower-case and trim a title."""
    return (title or "").lower().strip()


def title_similarity(first: Optional[str], second: Optional[str]) -> float:
    """Similarity of two titles in [0, 1].

    - identical (after normalization): 1.0
    - either empty: 0.0
    - one contained in the other: shorter length / longer length
    - otherwise: Jaccard index of whitespace-separated word sets

    Args:
        first: First title
        second: Second title

    Returns:
        Similarity score
    """
    a = normalize_title(first)
    b = normalize_title(second)

    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    if a in b or b in a:
        return min(len(a), len(b)) / max(len(a), len(b))

    words_a = set(a.split())
    words_b = set(b.split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)
