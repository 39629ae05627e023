"""
epmaquant: Electron-probe microanalysis matrix correction and quantification

A Python library for computing ZAF matrix corrections and iteratively solving
measured k-ratios for the composition of an unknown specimen.
"""

__version__ = "0.1.0"
__author__ = "TheFermiSea"

# Core imports for convenience
from epmaquant.core import constants
from epmaquant.core import units

__all__ = [
    "constants",
    "units",
]
