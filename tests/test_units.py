"""
Tests for unit conversion utilities.
"""

import pytest
import numpy as np
from epmaquant.core import units


def test_energy_conversion():
    """Test energy conversions."""
    assert units.convert_energy(15.0, "keV", "eV") == 15000.0
    assert units.convert_energy(1740.0, "eV", "keV") == pytest.approx(1.74)
    assert units.convert_energy(20.0, "keV", "keV") == 20.0

    with pytest.raises(ValueError):
        units.convert_energy(1.0, "J", "eV")
    with pytest.raises(ValueError):
        units.convert_energy(1.0, "eV", "J")


def test_angle_conversion():
    """Test angle conversions."""
    assert units.convert_angle(40.0, "deg", "rad") == pytest.approx(0.6981317007977318)
    assert units.convert_angle(np.pi / 2, "rad", "degrees") == pytest.approx(90.0)

    with pytest.raises(ValueError):
        units.convert_angle(1.0, "grad", "rad")


def test_length_conversion():
    """Test length conversions."""
    assert units.convert_length(10.0, "nm", "cm") == pytest.approx(1.0e-6)
    assert units.convert_length(1.0, "um", "nm") == pytest.approx(1000.0)
    assert units.convert_length(1.0, "A", "nm") == pytest.approx(0.1)

    with pytest.raises(ValueError):
        units.convert_length(1.0, "ft", "m")


def test_array_conversion():
    """Test conversions on arrays."""
    energies = np.array([10.0, 15.0, 20.0])
    np.testing.assert_allclose(units.convert_energy(energies, "keV", "eV"), energies * 1000.0)
    angles = np.array([0.0, 90.0])
    np.testing.assert_allclose(units.convert_angle(angles, "deg", "rad"), [0.0, np.pi / 2])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
