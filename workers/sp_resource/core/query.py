"""
Query — interface filtering for GET requests.

Pairs are separated by '&' or ';'.  A query that carries one or more
``if=`` pairs is only valid when one of them names the resource's
interface; a query without ``if`` is always valid.
"""
import re
from typing import Iterator, Optional, Tuple

from sp_resource.policy.profile import ResourcePolicy

INTERFACE_ATTR = "if"

_SEPARATORS = re.compile(r"[&;]")


def iter_query(query: str) -> Iterator[Tuple[str, str]]:
    """Yield (name, value) pairs; pairs without '=' get an empty value."""
    for part in _SEPARATORS.split(query):
        if not part:
            continue
        name, _, value = part.partition("=")
        yield name, value


def validate_query(query: Optional[str], policy: ResourcePolicy) -> bool:
    if not query:
        return True

    interface_query = False
    interface_match = False
    for name, value in iter_query(query):
        if name.lower() == INTERFACE_ATTR:
            interface_query = True
            if value.lower() == policy.interface.lower():
                interface_match = True

    return interface_match if interface_query else True
