"""
X-ray atomic data source backed by the xraylib library.

All energies returned by this module are in eV (xraylib works in keV) and all
mass absorption coefficients in cm^2/g.
"""

import threading
from typing import Dict, Optional

import xraylib

from epmaquant.core.abc import XRayDataSource
from epmaquant.core.cache import cached_atomic_data, cached_mac
from epmaquant.core.constants import KEV_TO_EV, EV_TO_KEV
from epmaquant.core.exceptions import UnknownAtomicDataError
from epmaquant.core.logging_config import get_logger

logger = get_logger("atomic.database")

# Sub-shell names in xraylib order
SHELL_NAMES = (
    "K",
    "L1", "L2", "L3",
    "M1", "M2", "M3", "M4", "M5",
    "N1", "N2", "N3", "N4", "N5", "N6", "N7",
)


def _shell_macro(shell: str) -> int:
    try:
        return getattr(xraylib, f"{shell}_SHELL")
    except AttributeError as e:
        raise UnknownAtomicDataError(f"Unknown atomic sub-shell: {shell}") from e


def _line_macro(inner: str, outer: str) -> int:
    try:
        return getattr(xraylib, f"{inner}{outer}_LINE")
    except AttributeError as e:
        raise UnknownAtomicDataError(f"Unknown transition: {inner}-{outer}") from e


class XRayDatabase(XRayDataSource):
    """
    Atomic and X-ray data from xraylib.

    Lookups are memoized in the shared LRU caches so the iteration loop can
    call them freely.
    """

    @cached_atomic_data
    def atomic_number(self, symbol: str) -> int:
        try:
            z = int(xraylib.SymbolToAtomicNumber(symbol))
        except ValueError as e:
            raise UnknownAtomicDataError(f"Unknown element symbol: {symbol}") from e
        if z <= 0:
            raise UnknownAtomicDataError(f"Unknown element symbol: {symbol}")
        return z

    @cached_atomic_data
    def symbol(self, z: int) -> str:
        try:
            return xraylib.AtomicNumberToSymbol(z)
        except ValueError as e:
            raise UnknownAtomicDataError(f"Unknown atomic number: {z}") from e

    @cached_atomic_data
    def atomic_weight(self, z: int) -> float:
        try:
            return float(xraylib.AtomicWeight(z))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No atomic weight for Z={z}") from e

    @cached_atomic_data
    def density(self, z: int) -> float:
        try:
            return float(xraylib.ElementDensity(z))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No density for Z={z}") from e

    @cached_atomic_data
    def edge_energy(self, z: int, shell: str) -> float:
        try:
            return KEV_TO_EV * float(xraylib.EdgeEnergy(z, _shell_macro(shell)))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No {shell} edge for Z={z}") from e

    @cached_atomic_data
    def fluorescence_yield(self, z: int, shell: str) -> float:
        try:
            return float(xraylib.FluorYield(z, _shell_macro(shell)))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No {shell} fluorescence yield for Z={z}") from e

    @cached_atomic_data
    def jump_ratio(self, z: int, shell: str) -> float:
        try:
            return float(xraylib.JumpFactor(z, _shell_macro(shell)))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No {shell} jump ratio for Z={z}") from e

    @cached_atomic_data
    def line_energy(self, z: int, inner: str, outer: str) -> float:
        try:
            energy = float(xraylib.LineEnergy(z, _line_macro(inner, outer)))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No {inner}-{outer} line for Z={z}") from e
        if energy <= 0.0:
            raise UnknownAtomicDataError(f"No {inner}-{outer} line for Z={z}")
        return KEV_TO_EV * energy

    @cached_atomic_data
    def radiative_rate(self, z: int, inner: str, outer: str) -> float:
        try:
            return float(xraylib.RadRate(z, _line_macro(inner, outer)))
        except ValueError as e:
            raise UnknownAtomicDataError(f"No {inner}-{outer} radiative rate for Z={z}") from e

    @cached_mac
    def mac(self, z: int, energy_ev: float) -> float:
        try:
            return float(xraylib.CS_Total(z, EV_TO_KEV * energy_ev))
        except ValueError as e:
            raise UnknownAtomicDataError(
                f"No mass absorption coefficient for Z={z} at {energy_ev:.1f} eV"
            ) from e

    @cached_atomic_data
    def parse_formula(self, formula: str) -> Dict[int, float]:
        """
        Parse a chemical formula into mass fractions.

        Parameters
        ----------
        formula : str
            Chemical formula (e.g. 'NaAlSi3O8')

        Returns
        -------
        Dict[int, float]
            Atomic number -> mass fraction (sums to 1)
        """
        try:
            parsed = xraylib.CompoundParser(formula)
        except ValueError as e:
            raise UnknownAtomicDataError(f"Unable to parse formula: {formula}") from e
        return {
            int(z): float(w) for z, w in zip(parsed["Elements"], parsed["massFractions"])
        }


_database: Optional[XRayDatabase] = None
_database_lock = threading.Lock()


def get_database() -> XRayDatabase:
    """
    Get the shared X-ray database instance.

    Returns
    -------
    XRayDatabase
        Database instance
    """
    global _database
    with _database_lock:
        if _database is None:
            _database = XRayDatabase()
            logger.debug("Created shared xraylib database")
        return _database
