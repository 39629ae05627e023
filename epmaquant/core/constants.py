"""
Physical constants and numerical thresholds for epmaquant.

Energies are in eV, angles in radians, lengths in cm and densities in g/cm^3
unless otherwise specified.
"""


# ============================================================================
# Measurement Condition Keys
# ============================================================================

BEAM_ENERGY = "BeamEnergy"  # eV
TAKE_OFF_ANGLE = "TakeOffAngle"  # radians
COATING = "Coating"  # Film or None
PROBE_CURRENT = "ProbeCurrent"  # nA (bookkeeping only)
LIVE_TIME = "LiveTime"  # s (bookkeeping only)

REQUIRED_CONDITIONS = (BEAM_ENERGY, TAKE_OFF_ANGLE)

# ============================================================================
# Conversion Factors
# ============================================================================

KEV_TO_EV = 1000.0
EV_TO_KEV = 1.0 / KEV_TO_EV

# ============================================================================
# Material Properties
# ============================================================================

# Density of an evaporated carbon film
CARBON_DENSITY = 1.9  # g/cm^3

# ============================================================================
# K-ratio Validation
# ============================================================================

# A standard must contain more than this mass fraction of the measured element
MIN_STANDARD_FRACTION = 1.0e-4

# ============================================================================
# Iteration Defaults
# ============================================================================

DEFAULT_MAX_ITER = 100
DEFAULT_TOLERANCE = 1.0e-5

# Wegstein acceleration is rejected outside these limits
WEGSTEIN_MAX_SLOPE = 10.0
WEGSTEIN_MIN_DENOMINATOR = 0.2

# Target overvoltage of the simple k-ratio optimizer
DEFAULT_OVERVOLTAGE = 1.5

# Batch quantification stops after this many failed points
DEFAULT_MAX_ERRORS = 5

# ============================================================================
# Fluorescence Exciter Selection
# ============================================================================

# Primary lines must lie within this window above the secondary edge
REED_ENERGY_WINDOW = 2.5e3  # eV
# Primary lines must satisfy weight > REED_MIN_WEIGHT / C(element)
REED_MIN_WEIGHT = 0.05

# ============================================================================
# Numerical Constants
# ============================================================================

# Starting value for the best-score tracker
LARGE = 1.0e300
