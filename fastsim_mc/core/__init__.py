"""Core module: particles, species, material crossings, random sources."""

from fastsim_mc.core.particle import Particle, ParticleArray, PARTICLE_DTYPE
from fastsim_mc.core.species import PDG, SPECIES_PROPERTIES, mass_and_charge
from fastsim_mc.core.material import MaterialSlab, MATERIAL_PROPERTIES
from fastsim_mc.core.rng import make_uniform_source, unit_normal

__all__ = [
    "Particle",
    "ParticleArray",
    "PARTICLE_DTYPE",
    "PDG",
    "SPECIES_PROPERTIES",
    "mass_and_charge",
    "MaterialSlab",
    "MATERIAL_PROPERTIES",
    "make_uniform_source",
    "unit_normal",
]
