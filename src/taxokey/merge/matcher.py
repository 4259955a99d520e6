"""Name matching between independently generated schemas.

Decides whether two entity or feature names denote the same real-world
item. The heuristic is permissive: two similarly named features can be
merged into one. Swapping in a stricter strategy changes merge results for
every caller.

Matching order on normalized names:
1. Exact equality
2. Substring containment either way ("Eugenia uniflora" / "Eugenia uniflora L.")
3. Token overlap: tokens shorter than MIN_TOKEN_LENGTH are ignored; the first
   tokens must agree, then either MIN_COMMON_TOKENS tokens are shared, or one
   token is shared and the shorter name has a single token
"""

from taxokey.merge.normalizer import normalize

__all__ = [
    "MIN_COMMON_TOKENS",
    "MIN_TOKEN_LENGTH",
    "names_match",
    "tokenize",
]

# Tokens of length <= 2 ("l.", "de", "da") carry no identity
MIN_TOKEN_LENGTH = 3
MIN_COMMON_TOKENS = 2


def tokenize(normalized: str) -> list[str]:
    """Split a normalized name into significant tokens."""
    return [t for t in normalized.split() if len(t) >= MIN_TOKEN_LENGTH]


def names_match(a: str | None, b: str | None) -> bool:
    """Check whether two names refer to the same item.

    Symmetric. Empty names never match anything.

    Args:
        a: First name.
        b: Second name.

    Returns:
        True if the names are considered the same item.

    Examples:
        >>> names_match("Inga edulis", "Inga edulis Mart.")
        True
        >>> names_match("Psidium guajava", "Psidium cattleianum")
        False
        >>> names_match("Leaf shape", "leaf  SHAPE")
        True

    """
    na = normalize(a)
    nb = normalize(b)
    if not na or not nb:
        return False

    if na == nb:
        return True

    if na in nb or nb in na:
        return True

    tokens_a = tokenize(na)
    tokens_b = tokenize(nb)
    if not tokens_a or not tokens_b or tokens_a[0] != tokens_b[0]:
        return False

    common = len(set(tokens_a) & set(tokens_b))
    if common >= MIN_COMMON_TOKENS:
        return True
    return common == 1 and min(len(tokens_a), len(tokens_b)) == 1
