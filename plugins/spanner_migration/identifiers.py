"""
Identifier Normalization

Source table, column, index and constraint names may contain spaces and
punctuation that Spanner rejects. This module turns them into valid Spanner
identifiers and disambiguates collisions within a naming scope.
"""

import re
import threading
from typing import Dict, Optional, Set

# Spanner identifiers: letter first, then letters, digits or underscores
MAX_IDENTIFIER_LENGTH = 128

_VALID_IDENTIFIER = re.compile(r'^[A-Za-z][A-Za-z0-9_]*$')


def sanitize_identifier(name: str) -> str:
    """
    Convert an arbitrary source name into a valid Spanner identifier.

    Rules:
        - Characters outside [A-Za-z0-9_] become underscores
        - Runs of underscores collapse to one
        - Leading and trailing underscores are removed
        - Names that are empty or start with a digit get a 'col_' prefix
        - Case is preserved
        - Result is truncated to 128 characters

    Examples:
        >>> sanitize_identifier("a a")
        'a_a'
        >>> sanitize_identifier(" c ")
        'c'
        >>> sanitize_identifier("2023 Data")
        'col_2023_Data'
    """
    cleaned = re.sub(r'[^A-Za-z0-9_]', '_', name or '')
    cleaned = re.sub(r'_+', '_', cleaned).strip('_')

    if not cleaned or cleaned[0].isdigit():
        cleaned = f"col_{cleaned}"

    return cleaned[:MAX_IDENTIFIER_LENGTH]


def is_valid_identifier(name: str) -> bool:
    return bool(name) and len(name) <= MAX_IDENTIFIER_LENGTH and bool(_VALID_IDENTIFIER.match(name))


class IdentifierScope:
    """
    Assigns unique identifiers within one naming scope.

    Spanner compares identifiers case-insensitively, so 'Name' and 'name'
    collide. The first claimant of a name keeps it; later ones get '_2',
    '_3', ... in claim order. Repeated claims for the same source name
    return the identifier already assigned, even after the scope is frozen.
    """

    def __init__(self):
        self._assigned: Dict[str, str] = {}
        self._used: Set[str] = set()
        self._frozen = False
        self._lock = threading.Lock()

    def freeze(self) -> None:
        """Reject any further new names."""
        with self._lock:
            self._frozen = True

    def claim(self, source_name: str, candidate: Optional[str] = None) -> str:
        with self._lock:
            if source_name in self._assigned:
                return self._assigned[source_name]

            self._check_open(source_name)
            base = candidate if candidate is not None else sanitize_identifier(source_name)
            name = self._allocate(base)
            self._assigned[source_name] = name
            return name

    def reserve(self, name: str) -> str:
        """Claim a name that has no source counterpart (e.g. a synthetic key)."""
        with self._lock:
            self._check_open(name)
            return self._allocate(sanitize_identifier(name))

    def _check_open(self, name: str) -> None:
        if self._frozen:
            raise RuntimeError(f"Identifier scope is frozen; cannot assign a name for '{name}'")

    def _allocate(self, base: str) -> str:
        name = base
        suffix = 2
        while name.lower() in self._used:
            tail = f"_{suffix}"
            name = f"{base[:MAX_IDENTIFIER_LENGTH - len(tail)]}{tail}"
            suffix += 1
        self._used.add(name.lower())
        return name

    def lookup(self, source_name: str) -> Optional[str]:
        with self._lock:
            return self._assigned.get(source_name)

    def mapping(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._assigned)
