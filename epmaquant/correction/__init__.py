"""
Correction algorithms: phi(rho z) matrix corrections, secondary fluorescence,
coating transmission and their combination.
"""

from epmaquant.correction.xpp import XPP
from epmaquant.correction.citzaf import CitZAF
from epmaquant.correction.reed import ReedFluorescence, NullFluorescence
from epmaquant.correction.coating import Coating, NullCoating, coating_as_film, estimate_coating
from epmaquant.correction.zaf import ZAFCorrection, MultiZAF, build_correction, combined_factor

__all__ = [
    "XPP",
    "CitZAF",
    "ReedFluorescence",
    "NullFluorescence",
    "Coating",
    "NullCoating",
    "coating_as_film",
    "estimate_coating",
    "ZAFCorrection",
    "MultiZAF",
    "build_correction",
    "combined_factor",
]
