"""
fastsim_mc: stochastic physics core for fast detector simulation

Samples what happens to a particle crossing a slab of material: parametric
hadronic interactions with secondary production, and multiple Coulomb
scattering angles from the general mixture model.

Modules:
    core: Particle state, species table, material crossings, random sources
    physics: Parametrization table, hadronic and scattering samplers
    config: YAML defaults
    analysis: Statistical summaries of sampled output
    cli: Command-line sampling driver
"""

__version__ = "0.1.0"

from fastsim_mc.errors import FastSimError, SamplingDivergence, UnsupportedSpecies
from fastsim_mc.core.particle import Particle, ParticleArray
from fastsim_mc.core.material import MaterialSlab
from fastsim_mc.core.rng import make_uniform_source
from fastsim_mc.physics.hadronic import HadronicInteraction, interact
from fastsim_mc.physics.scattering import GeneralMixtureScattering, scatter_angle

__all__ = [
    "FastSimError",
    "SamplingDivergence",
    "UnsupportedSpecies",
    "Particle",
    "ParticleArray",
    "MaterialSlab",
    "make_uniform_source",
    "HadronicInteraction",
    "interact",
    "GeneralMixtureScattering",
    "scatter_angle",
]
