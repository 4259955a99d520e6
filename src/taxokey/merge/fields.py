"""Field-level combination rules: prefer real data over placeholder data."""

from collections.abc import Iterable

__all__ = [
    "is_placeholder_url",
    "pick_description",
    "pick_image_url",
    "pick_text",
]


def is_placeholder_url(url: str | None, placeholder_domains: Iterable[str]) -> bool:
    """Check whether a URL is empty or points at a stock placeholder service.

    Examples:
        >>> is_placeholder_url("https://picsum.photos/seed/x/400/300", ["picsum.photos"])
        True
        >>> is_placeholder_url("https://example.org/inga.jpg", ["picsum.photos"])
        False

    """
    if not url or not url.strip():
        return True
    lowered = url.lower()
    return any(domain in lowered for domain in placeholder_domains)


def pick_image_url(
    candidate: str | None,
    existing: str | None,
    placeholder_domains: Iterable[str],
) -> str | None:
    """Choose between two image URLs.

    A real existing image beats a placeholder or missing candidate image.
    Otherwise the candidate's URL wins when present.
    """
    domains = tuple(placeholder_domains)
    if not is_placeholder_url(existing, domains) and is_placeholder_url(candidate, domains):
        return existing
    return candidate or existing


def pick_description(candidate: str | None, existing: str | None, min_length: int) -> str | None:
    """Candidate wins only with a non-trivial text (longer than ``min_length``)."""
    if candidate and len(candidate) > min_length:
        return candidate
    if existing:
        return existing
    return candidate


def pick_text(candidate: str | None, existing: str | None) -> str | None:
    """Candidate's value if non-empty, else existing's."""
    if candidate and candidate.strip():
        return candidate
    return existing
