"""
Unit conversion utilities for epmaquant.

Provides functions to convert between the units commonly used to describe
electron-probe measurement conditions.
"""

import numpy as np
from typing import Union

# ============================================================================
# Energy Conversions
# ============================================================================


def convert_energy(
    value: Union[float, np.ndarray], from_unit: str, to_unit: str
) -> Union[float, np.ndarray]:
    """
    Convert energy between units.

    Parameters
    ----------
    value : float or array
        Energy value(s) to convert
    from_unit : str
        Source unit: 'eV', 'keV'
    to_unit : str
        Target unit: 'eV', 'keV'

    Returns
    -------
    float or array
        Converted energy value(s)

    Examples
    --------
    >>> convert_energy(20.0, 'keV', 'eV')
    20000.0
    """
    from epmaquant.core.constants import KEV_TO_EV

    # Normalize to eV
    if from_unit.lower() == "ev":
        ev = value
    elif from_unit.lower() == "kev":
        ev = value * KEV_TO_EV
    else:
        raise ValueError(f"Unknown source unit: {from_unit}")

    # Convert from eV
    if to_unit.lower() == "ev":
        return ev
    elif to_unit.lower() == "kev":
        return ev / KEV_TO_EV
    else:
        raise ValueError(f"Unknown target unit: {to_unit}")


# ============================================================================
# Angle Conversions
# ============================================================================


def convert_angle(
    value: Union[float, np.ndarray], from_unit: str, to_unit: str
) -> Union[float, np.ndarray]:
    """
    Convert angles between degrees and radians.

    Parameters
    ----------
    value : float or array
        Angle value(s) to convert
    from_unit : str
        Source unit: 'deg', 'rad'
    to_unit : str
        Target unit: 'deg', 'rad'

    Returns
    -------
    float or array
        Converted angle value(s)

    Examples
    --------
    >>> convert_angle(40.0, 'deg', 'rad')
    0.6981317007977318
    """
    if from_unit.lower() in ["deg", "degree", "degrees"]:
        radians = np.deg2rad(value)
    elif from_unit.lower() in ["rad", "radian", "radians"]:
        radians = value
    else:
        raise ValueError(f"Unknown source unit: {from_unit}")

    if to_unit.lower() in ["deg", "degree", "degrees"]:
        return np.rad2deg(radians)
    elif to_unit.lower() in ["rad", "radian", "radians"]:
        return radians
    else:
        raise ValueError(f"Unknown target unit: {to_unit}")


# ============================================================================
# Length Conversions
# ============================================================================


def convert_length(
    value: Union[float, np.ndarray], from_unit: str, to_unit: str
) -> Union[float, np.ndarray]:
    """
    Convert lengths between units.

    Film thicknesses are stored in cm internally so that the product with a
    density in g/cm^3 is a mass thickness in g/cm^2.

    Parameters
    ----------
    value : float or array
        Length value(s) to convert
    from_unit : str
        Source unit: 'm', 'cm', 'um', 'nm', 'A' (Angstrom)
    to_unit : str
        Target unit: 'm', 'cm', 'um', 'nm', 'A' (Angstrom)

    Returns
    -------
    float or array
        Converted length value(s)

    Examples
    --------
    >>> convert_length(10.0, 'nm', 'cm')
    1e-06
    """
    scale = {
        "m": 1.0,
        "cm": 1.0e-2,
        "um": 1.0e-6,
        "μm": 1.0e-6,
        "nm": 1.0e-9,
        "a": 1.0e-10,
        "angstrom": 1.0e-10,
    }
    if from_unit.lower() not in scale:
        raise ValueError(f"Unknown source unit: {from_unit}")
    if to_unit.lower() not in scale:
        raise ValueError(f"Unknown target unit: {to_unit}")

    meters = value * scale[from_unit.lower()]
    return meters / scale[to_unit.lower()]
