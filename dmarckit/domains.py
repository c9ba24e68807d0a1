"""Domain syntax checks, extraction from addresses and alignment tests."""

from __future__ import annotations

import re
import string
from collections.abc import Callable

from dmarckit.codes import AlignmentMode

_DOMAIN_CHARS = frozenset(string.ascii_letters + string.digits + ".-_")
_COMMENT = re.compile(r"\([^()]*\)")
_ANGLE = re.compile(r"<([^<>]*)>")


def check_domain(domain: str) -> bool:
    """Return True if ``domain`` holds only letters, digits, '.', '-' and '_'."""
    return all(char in _DOMAIN_CHARS for char in domain)


def find_domain(text: str | None) -> str | None:
    """Extract the domain from an address, header value or bare domain.

    Returns None when no domain can be found, as for "<>".
    """
    if not text:
        return None
    value = text
    while True:
        stripped = _COMMENT.sub(" ", value)
        if stripped == value:
            break
        value = stripped
    match = _ANGLE.search(value)
    if match is not None:
        value = match.group(1)
    else:
        value = next((part for part in value.split(",") if part.strip()), "")
    value = value.strip()
    if "@" in value:
        value = value.rsplit("@", 1)[1]
    value = value.strip().strip("\"'<>;").strip()
    return value or None


def reverse_domain(domain: str) -> str:
    """Return the labels of ``domain`` in reverse order, e.g. "com.example"."""
    return ".".join(reversed([label for label in domain.split(".") if label]))


def _reversed_with_dot(domain: str) -> str:
    reversed_name = reverse_domain(domain)
    return reversed_name if reversed_name.endswith(".") else reversed_name + "."


def _aligned(rev_sub: str, rev_dom: str, mode: AlignmentMode) -> bool:
    if rev_sub == rev_dom:
        return True
    if mode is AlignmentMode.RELAXED:
        return rev_sub.startswith(rev_dom) or rev_dom.startswith(rev_sub)
    return False


def check_alignment(
    subdomain: str,
    domain: str,
    mode: AlignmentMode | int = AlignmentMode.RELAXED,
    org_domain_of: Callable[[str], str | None] | None = None,
) -> bool:
    """Return True if ``subdomain`` aligns with ``domain`` under ``mode``.

    An exact match always aligns; relaxed mode also accepts a parent or
    child domain. If that fails, ``domain`` is replaced by its
    organizational domain, as given by ``org_domain_of``, and tried again.
    """
    if subdomain is None or domain is None:
        raise ValueError("both domains are required")
    mode = AlignmentMode(mode)
    if mode is AlignmentMode.UNSPECIFIED:
        mode = AlignmentMode.RELAXED

    rev_sub = _reversed_with_dot(subdomain).lower()
    if _aligned(rev_sub, _reversed_with_dot(domain).lower(), mode):
        return True

    if org_domain_of is None:
        return False
    try:
        org_domain = org_domain_of(domain)
    except (LookupError, ValueError):
        return False
    if org_domain is None:
        return False
    return _aligned(rev_sub, _reversed_with_dot(org_domain).lower(), mode)