"""
Atomic data structures and X-ray data sources.

This module provides:
- Elements, atomic sub-shells and characteristic X-ray lines
- An xraylib-backed source of edge energies, yields, line weights and
  mass absorption coefficients
"""

from epmaquant.atomic.database import XRayDatabase, get_database
from epmaquant.atomic.structures import (
    Element,
    AtomicSubShell,
    CharXRay,
    characteristic,
    brightest,
    parse_line,
)

__all__ = [
    "XRayDatabase",
    "get_database",
    "Element",
    "AtomicSubShell",
    "CharXRay",
    "characteristic",
    "brightest",
    "parse_line",
]
