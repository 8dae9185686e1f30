"""
Particle state: an immutable single-particle snapshot plus a NumPy
structured-array container for batches of sampled secondaries.

Units: GeV for energy and momentum, GeV/c² for mass, cm for position.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from fastsim_mc.core.species import mass_and_charge


# Flat record layout, used when secondaries are stored or written out
PARTICLE_DTYPE = np.dtype([
    ('position', np.float64, 3),      # x, y, z [cm]
    ('momentum', np.float64, 3),      # px, py, pz [GeV/c]
    ('energy', np.float64),           # total energy [GeV]
    ('mass', np.float64),             # rest mass [GeV/c²]
    ('charge', np.float32),           # [e]
    ('pdg', np.int32),                # species code
    ('time', np.float64),             # [ns]
])


def _frozen_vector(values) -> np.ndarray:
    vec = np.array(values, dtype=np.float64).reshape(3)
    vec.setflags(write=False)
    return vec


@dataclass(frozen=True, eq=False)
class Particle:
    """
    Single particle at the point of a material crossing.

    Parameters:
        position: (x, y, z) position [cm]
        momentum: (px, py, pz) momentum [GeV/c]
        mass: Rest mass [GeV/c²]
        charge: Charge [e]
        pdg: Species code
        time: Time [ns]
        energy: Total energy [GeV]; computed from momentum and mass if None

    The samplers only read from a Particle and build new ones for
    secondaries, so instances are frozen and their arrays read-only.
    """

    position: np.ndarray
    momentum: np.ndarray
    mass: float
    charge: float
    pdg: int
    time: float = 0.0
    energy: Optional[float] = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, 'position', _frozen_vector(self.position))
        object.__setattr__(self, 'momentum', _frozen_vector(self.momentum))
        object.__setattr__(self, 'pdg', int(self.pdg))
        if self.mass < 0:
            raise ValueError(f"Negative mass {self.mass} for species {self.pdg}")
        if self.energy is None:
            p2 = float(np.dot(self.momentum, self.momentum))
            object.__setattr__(self, 'energy', float(np.sqrt(p2 + self.mass**2)))
        else:
            object.__setattr__(self, 'energy', float(self.energy))

    @classmethod
    def from_species(cls, pdg: int, momentum: Sequence[float],
                     position: Sequence[float] = (0.0, 0.0, 0.0),
                     time: float = 0.0) -> "Particle":
        """Build a particle with mass and charge taken from the species table."""
        mass, charge = mass_and_charge(pdg)
        return cls(position=position, momentum=momentum, mass=mass,
                   charge=charge, pdg=pdg, time=time)

    @property
    def p(self) -> float:
        """Momentum magnitude [GeV/c]."""
        return float(np.linalg.norm(self.momentum))

    @property
    def beta(self) -> float:
        """Velocity relative to the speed of light."""
        if self.energy <= 0.0:
            return 0.0
        return self.p / self.energy

    @property
    def direction(self) -> np.ndarray:
        """Unit vector along the momentum (+z for a particle at rest)."""
        p = self.p
        if p == 0.0:
            return np.array([0.0, 0.0, 1.0])
        return self.momentum / p

    def to_structured_array(self) -> np.ndarray:
        """Convert to a one-element PARTICLE_DTYPE array."""
        record = np.zeros(1, dtype=PARTICLE_DTYPE)
        record['position'][0] = self.position
        record['momentum'][0] = self.momentum
        record['energy'][0] = self.energy
        record['mass'][0] = self.mass
        record['charge'][0] = self.charge
        record['pdg'][0] = self.pdg
        record['time'][0] = self.time
        return record

    def __repr__(self) -> str:
        return (f"Particle(pdg={self.pdg}, p={self.p:.4g} GeV, "
                f"E={self.energy:.4g} GeV)")


class ParticleArray:
    """Batch storage for sampled particles (e.g. all secondaries of a run)."""

    def __init__(self, n_particles: int):
        """
        Parameters:
            n_particles: Number of records to allocate
        """
        self.particles = np.zeros(n_particles, dtype=PARTICLE_DTYPE)
        self.n_particles = n_particles

    @classmethod
    def from_particles(cls, particles: Iterable[Particle]) -> "ParticleArray":
        particles = list(particles)
        batch = cls(len(particles))
        for i, particle in enumerate(particles):
            batch.particles[i] = particle.to_structured_array()[0]
        return batch

    @property
    def total_energy(self) -> float:
        return float(np.sum(self.particles['energy']))

    def species_counts(self) -> dict:
        """Number of records per species code."""
        codes, counts = np.unique(self.particles['pdg'], return_counts=True)
        return {int(c): int(n) for c, n in zip(codes, counts)}

    def get_statistics(self) -> dict:
        energies = self.particles['energy']
        return {
            'n_total': self.n_particles,
            'total_energy': self.total_energy,
            'mean_energy': float(np.mean(energies)) if len(energies) > 0 else 0.0,
            'max_energy': float(np.max(energies)) if len(energies) > 0 else 0.0,
            'n_species': len(self.species_counts()),
        }

    def __len__(self) -> int:
        return self.n_particles

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (f"ParticleArray(n={stats['n_total']}, "
                f"<E>={stats['mean_energy']:.3g} GeV)")
