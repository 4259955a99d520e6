"""Name canonicalization for fuzzy comparison."""

import unicodedata

__all__ = ["normalize"]


def normalize(name: str | None) -> str:
    """Canonicalize a free-text name for comparison.

    Decomposes to NFD and strips combining marks, lowercases, trims and
    collapses internal whitespace runs to a single space. Total and
    idempotent.

    Args:
        name: Any name; None is treated as empty.

    Returns:
        Normalized form.

    Examples:
        >>> normalize("  Leão   Africano ")
        'leao africano'
        >>> normalize("FOLHA  Ovóide")
        'folha ovoide'

    """
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFD", str(name))
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.lower().split())
