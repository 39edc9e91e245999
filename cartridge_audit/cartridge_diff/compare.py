"""Cartridge path normalization and pairwise comparison."""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

CARTRIDGE_SEPARATOR = ':'


@dataclass
class DiffResult:
    """Cartridges found on only one side of a host pair."""
    only_in_a: List[str] = field(default_factory=list)
    only_in_b: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.only_in_a and not self.only_in_b

    def to_dict(self) -> Dict[str, List[str]]:
        return {"onlyInA": list(self.only_in_a), "onlyInB": list(self.only_in_b)}


def normalize_cartridges(cartridge_str: str) -> List[str]:
    """
    Split a colon-separated cartridge path into a list.

    Each entry is trimmed and empty entries are dropped; order is kept.

    >>> normalize_cartridges("a : b:: c ")
    ['a', 'b', 'c']
    """
    return [c.strip() for c in cartridge_str.split(CARTRIDGE_SEPARATOR) if c.strip()]


def compare_cartridges(list_a: Sequence[str], list_b: Sequence[str]) -> DiffResult:
    """
    Compare two cartridge lists.

    ``only_in_a`` holds the entries of ``list_a`` missing from ``list_b`` in
    ``list_a`` order (duplicates included), and ``only_in_b`` the reverse.
    """
    set_a = set(list_a)
    set_b = set(list_b)

    return DiffResult(
        only_in_a=[item for item in list_a if item not in set_b],
        only_in_b=[item for item in list_b if item not in set_a],
    )
