"""Fallback chains for locale lookups.

Structural fallback follows the "lookup" scheme of RFC 4647 section 3.4:
``zh-Hant-CN-x-private1-private2`` -> ``zh-Hant-CN-x-private1`` -> ``zh-Hant-CN``
-> ``zh-Hant`` -> ``zh``. A private-use ``-x`` marker left dangling at the end is
dropped together with the subtag that followed it.
"""
from typing import Iterable, List, Optional


def lookup_fallback(locale: str) -> Optional[str]:
    """Return the next shorter locale, or None when no ``-`` subtag is left."""
    cut = locale.rfind('-')
    if cut == -1:
        return None
    parent = locale[:cut]
    while parent.endswith('-x'):
        parent = parent[:-2]
    return parent


def fallback_chain(locale: str, fallback: Optional[Iterable[str]] = None) -> List[str]:
    """
    Build the ordered list of locales to probe for ``locale``.

    The chain starts with the requested locale, continues with its structural
    parents and ends with the declared ``fallback`` locales. Duplicates are
    dropped, keeping the first occurrence.

    Args:
        locale: The requested locale. An empty string yields an empty chain.
        fallback: Locales declared by the project, in priority order.

    Returns:
        List[str]: Locales to probe, in order.
    """
    if not locale:
        return []

    chain: List[str] = []
    current: Optional[str] = locale
    while current:
        if current not in chain:
            chain.append(current)
        current = lookup_fallback(current)

    for candidate in fallback or []:
        if candidate and candidate not in chain:
            chain.append(candidate)
    return chain
