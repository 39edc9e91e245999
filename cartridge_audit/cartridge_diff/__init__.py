"""
Cartridge Diff Module
Normalizes remote cartridge paths and computes per-host-pair differences.
"""

from .compare import (
    CARTRIDGE_SEPARATOR,
    DiffResult,
    compare_cartridges,
    normalize_cartridges,
)

__all__ = [
    'CARTRIDGE_SEPARATOR',
    'DiffResult',
    'compare_cartridges',
    'normalize_cartridges',
]
