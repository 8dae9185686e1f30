"""
Parametric hadronic (nuclear) interaction sampler.

For a hadron crossing a slab of t nuclear interaction lengths:

    1. decide whether an interaction occurs (fitted probability curve)
    2. compute the secondary multiplicity (fitted mean, rounded)
    3. draw each secondary's species from the fitted categorical CDF
    4. draw energy fractions, resampling until they sum to at most 1
    5. draw each secondary's direction around the parent direction

On an interaction the parent is consumed and only the secondaries are
returned. Species outside the fit pass through unchanged.

Draw order for one interaction with multiplicity n:
    1 (occurrence) + n (species) + n per rejection attempt (fractions)
    + 3 per secondary (azimuth, polar component, polar magnitude)
"""

import logging
import math
from typing import Callable, List, Optional, Sequence

import numpy as np
import numba

from fastsim_mc.config.loader import get_default
from fastsim_mc.core.particle import Particle
from fastsim_mc.core.rng import TINY, UniformSource
from fastsim_mc.core.species import mass_and_charge
from fastsim_mc.errors import SamplingDivergence
from fastsim_mc.physics.parametrization import (
    N_ENERGY_RANKS,
    SpeciesParameters,
    get_parameters,
    is_supported,
)
from fastsim_mc.physics.scattering import rotate_direction

logger = logging.getLogger(__name__)


@numba.njit(cache=True)
def interaction_probability_kernel(p: float, path_in_l0: float,
                                   coeffs: np.ndarray, scale: float) -> float:
    """
    Interaction probability for momentum p [GeV/c] and t = path_in_l0.

        A(p) = c0 + c1 ln p + c2 ln² p          saturation level
        g(t) = 1 - exp(-c3 t)                    path-length growth
        s(p) = 1 / (1 + exp(-(p - c4) / c5))     momentum threshold

    Returns scale * A * g * s clipped to [0, 1].
    """
    if p <= 0.0:
        return 0.0
    log_p = np.log(p)
    amplitude = coeffs[0] + coeffs[1] * log_p + coeffs[2] * log_p * log_p
    growth = 1.0 - np.exp(-coeffs[3] * path_in_l0)
    if coeffs[5] > 0.0:
        threshold = 1.0 / (1.0 + np.exp(-(p - coeffs[4]) / coeffs[5]))
    else:
        threshold = 1.0 if p >= coeffs[4] else 0.0
    probability = scale * amplitude * growth * threshold
    if probability < 0.0:
        return 0.0
    if probability > 1.0:
        return 1.0
    return probability


@numba.njit(cache=True)
def mean_multiplicity_kernel(p: float, path_in_l0: float, coeffs: np.ndarray) -> float:
    """m0 + m1 ln p + m2 ln² p + (m3 + m4 ln p) ln(1 + m5 t)"""
    log_p = np.log(p)
    return (coeffs[0] + coeffs[1] * log_p + coeffs[2] * log_p * log_p
            + (coeffs[3] + coeffs[4] * log_p) * np.log(1.0 + coeffs[5] * path_in_l0))


def interaction_probability(p: float, path_in_l0: float, params: SpeciesParameters,
                            scale: float = 1.0) -> float:
    return interaction_probability_kernel(p, path_in_l0, params.interaction_probability, scale)


def mean_multiplicity(p: float, path_in_l0: float, params: SpeciesParameters) -> float:
    return mean_multiplicity_kernel(p, path_in_l0, params.multiplicity)


def sample_multiplicity(p: float, path_in_l0: float, params: SpeciesParameters) -> int:
    """
    Number of secondaries: the fitted mean rounded half-up, at least 1 and
    at most the fitted cap (m6) when the cap is positive.
    """
    n = max(int(math.floor(mean_multiplicity(p, path_in_l0, params) + 0.5)), 1)
    cap = int(params.multiplicity[6])
    if cap > 0:
        n = min(n, cap)
    return n


def sample_species(rng: UniformSource, params: SpeciesParameters, n: int) -> List[int]:
    """
    Draw n secondary species codes from the fitted CDF.

    The first entry whose cumulative value exceeds the draw wins. A draw in
    the rounding gap above the last cumulative value takes the last entry.
    """
    cdf = params.secondary_cdf
    species = []
    for _ in range(n):
        u = rng()
        chosen = cdf[-1][1]
        for cumulative, pdg in cdf:
            if cumulative > u:
                chosen = pdg
                break
        species.append(chosen)
    return species


def energy_scale(params: SpeciesParameters, rank: int) -> float:
    """Mean energy fraction of the secondary with 1-based rank."""
    if rank <= N_ENERGY_RANKS:
        return float(params.energy_scaling[rank - 1])
    a, b = params.energy_extrapolation
    return max(a + rank * b, 0.0)


def sample_energy_fractions(rng: UniformSource, params: SpeciesParameters, n: int,
                            max_attempts: int) -> np.ndarray:
    """
    Draw n energy fractions with sum at most 1.

    Each fraction is exponential with the mean of its rank. Whole sets are
    redrawn until the sum constraint holds.

    Raises:
        SamplingDivergence: if max_attempts sets all violate the constraint
    """
    scales = np.array([energy_scale(params, i) for i in range(1, n + 1)])
    fractions = np.empty(n)
    for attempt in range(1, max_attempts + 1):
        for i in range(n):
            fractions[i] = -scales[i] * math.log(1.0 - rng())
        if fractions.sum() <= 1.0:
            if attempt > 1:
                logger.debug("energy fractions for pdg %d (n=%d) accepted after %d attempts",
                             params.pdg, n, attempt)
            return fractions
    logger.warning("energy fraction sampling diverged for pdg %d (n=%d) after %d attempts",
                   params.pdg, n, max_attempts)
    raise SamplingDivergence(params.pdg, n, max_attempts)


def sample_polar_angle(rng: UniformSource, params: SpeciesParameters, fraction: float) -> float:
    """
    Polar angle of a secondary relative to the parent direction.

    Two-component mixture: a Gaussian-magnitude core whose width shrinks
    with the energy fraction, and a bounded semi-Gaussian tail. The result
    is capped at theta_max.
    """
    sigma0, k, tail_weight, a, b, theta_max = params.polar_angle
    sigma = sigma0 * math.exp(-k * fraction)
    core = rng() > tail_weight
    u = max(rng(), TINY)
    if core:
        theta = sigma * math.sqrt(-2.0 * math.log(u))
    else:
        theta = a * b * math.sqrt((1.0 - u) / (u * b * b + a * a))
    return min(theta, theta_max)


def _check_settings(probability_scale: float, max_attempts: int) -> None:
    if probability_scale < 0:
        raise ValueError(f"Probability scale must be non-negative, got {probability_scale}")
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")


def interact(rng: UniformSource, path_in_l0: float, particle,
             probability_scale: Optional[float] = None,
             max_attempts: Optional[int] = None,
             particle_factory: Callable = Particle) -> list:
    """
    Sample a hadronic interaction of a particle in a slab.

    Parameters:
        rng: Uniform random source
        path_in_l0: Path length in nuclear interaction lengths
        particle: Object exposing pdg, p, energy, direction, position, time
        probability_scale: Scales the interaction probability
            (default: hadronic.probability_scale)
        max_attempts: Cap on the energy-fraction rejection loop
            (default: hadronic.max_rejection_attempts)
        particle_factory: Builds secondaries from position, momentum, mass,
            charge, pdg, time and energy keywords

    Returns:
        [particle] if no interaction happened, otherwise the secondaries

    Raises:
        ValueError: on a negative path or probability_scale, or max_attempts < 1
        UnsupportedSpecies: if a sampled secondary has no mass/charge entry
        SamplingDivergence: if the energy fractions cannot be drawn
    """
    if path_in_l0 < 0:
        raise ValueError(f"Negative path length {path_in_l0} L0")
    if not is_supported(particle.pdg):
        logger.debug("pdg %d has no hadronic fit, passing through", particle.pdg)
        return [particle]

    if probability_scale is None:
        probability_scale = float(get_default('hadronic.probability_scale', 1.0))
    if max_attempts is None:
        max_attempts = int(get_default('hadronic.max_rejection_attempts', 10000))
    _check_settings(probability_scale, max_attempts)

    params = get_parameters(particle.pdg)
    p = particle.p
    probability = interaction_probability(p, path_in_l0, params, probability_scale)
    if rng() >= probability:
        return [particle]

    n = sample_multiplicity(p, path_in_l0, params)
    species = sample_species(rng, params, n)
    fractions = sample_energy_fractions(rng, params, n, max_attempts)
    logger.debug("pdg %d (p=%.4g GeV, P=%.4g) interacted: %d secondaries %s",
                 particle.pdg, p, probability, n, species)
    return assemble_secondaries(rng, particle, params, species, fractions, particle_factory)


def assemble_secondaries(rng: UniformSource, particle, params: SpeciesParameters,
                         species: Sequence[int], fractions: np.ndarray,
                         particle_factory: Callable = Particle) -> list:
    """
    Build the secondaries from their species and energy fractions.

    Each secondary gets a direction rotated away from the parent's, a
    momentum magnitude and energy of fraction * parent energy, and the
    parent's position and time.
    """
    parent_direction = np.ascontiguousarray(particle.direction, dtype=np.float64)
    parent_energy = particle.energy
    secondaries = []
    for pdg, fraction in zip(species, fractions):
        mass, charge = mass_and_charge(pdg)
        phi = 2.0 * math.pi * rng() - math.pi
        theta = sample_polar_angle(rng, params, fraction)
        direction = rotate_direction(parent_direction, theta, phi)
        energy = fraction * parent_energy
        secondaries.append(particle_factory(
            position=particle.position,
            momentum=energy * direction,
            mass=mass,
            charge=charge,
            pdg=pdg,
            time=particle.time,
            energy=energy,
        ))
    return secondaries


class HadronicInteraction:
    """
    Driver-facing parametric nuclear interaction sampler.

    Usage:
        nuclear = HadronicInteraction()
        slab = MaterialSlab.from_material('beryllium', 5.0)
        outgoing = nuclear(rng, slab, particle)
    """

    def __init__(self, probability_scale: Optional[float] = None,
                 max_attempts: Optional[int] = None,
                 particle_factory: Callable = Particle):
        """
        Parameters:
            probability_scale: Scales the interaction probability
            max_attempts: Cap on the energy-fraction rejection loop
            particle_factory: Constructor for secondaries
        """
        if probability_scale is None:
            probability_scale = float(get_default('hadronic.probability_scale', 1.0))
        if max_attempts is None:
            max_attempts = int(get_default('hadronic.max_rejection_attempts', 10000))
        _check_settings(probability_scale, max_attempts)
        self.probability_scale = probability_scale
        self.max_attempts = max_attempts
        self.particle_factory = particle_factory

    def __call__(self, rng: UniformSource, slab, particle) -> list:
        return interact(rng, slab.path_in_l0, particle,
                        probability_scale=self.probability_scale,
                        max_attempts=self.max_attempts,
                        particle_factory=self.particle_factory)

    def probability(self, slab, particle) -> float:
        """Interaction probability without drawing (0 for unfitted species)."""
        if not is_supported(particle.pdg):
            return 0.0
        params = get_parameters(particle.pdg)
        return interaction_probability(particle.p, slab.path_in_l0, params,
                                       self.probability_scale)


# ============================================================================
# Example Usage
# ============================================================================

if __name__ == "__main__":
    from fastsim_mc.core.material import MaterialSlab
    from fastsim_mc.core.rng import make_uniform_source

    print("\n" + "="*70)
    print("Parametric Hadronic Interaction Test")
    print("="*70)

    rng = make_uniform_source(42)
    nuclear = HadronicInteraction()
    slab = MaterialSlab.from_material('beryllium', 5.0)

    for pdg in [211, 111, 2212]:
        particle = Particle.from_species(pdg, (0.0, 0.0, 10.0))
        n_interactions = 0
        n_secondaries = 0
        for _ in range(10000):
            outgoing = nuclear(rng, slab, particle)
            if outgoing[0] is not particle:
                n_interactions += 1
                n_secondaries += len(outgoing)
        print(f"\n{particle} through {slab.path_in_l0:.3f} L0 of beryllium:")
        print(f"  P(interaction): {nuclear.probability(slab, particle):.4f}")
        print(f"  Interacted: {n_interactions} / 10000")
        if n_interactions:
            print(f"  Mean multiplicity: {n_secondaries / n_interactions:.2f}")

    print("\n" + "="*70)
    print("Test complete!")
    print("="*70 + "\n")
