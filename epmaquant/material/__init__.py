"""
Specimen compositions and thin films.
"""

from epmaquant.material.material import Material, Film, carbon_coating

__all__ = [
    "Material",
    "Film",
    "carbon_coating",
]
