"""
Material crossing: slab thickness expressed in radiation lengths and in
nuclear interaction lengths, plus the effective atomic number.

The preset table only carries what the samplers need (X0, L0, Z). Values
from the PDG atomic and nuclear properties tables.
"""

from dataclasses import dataclass

# X0 and L0 in cm
MATERIAL_PROPERTIES = {
    'water': {
        'Z': 7.42,           # Effective Z
        'X0': 36.08,         # Radiation length [cm]
        'L0': 83.3,          # Nuclear interaction length [cm]
    },
    'aluminum': {
        'Z': 13.0,
        'X0': 8.897,
        'L0': 39.7,
    },
    'polyethylene': {
        'Z': 5.45,
        'X0': 47.46,
        'L0': 83.5,
    },
    'air': {
        'Z': 7.37,
        'X0': 30423,
        'L0': 74770,
    },
    'graphite': {
        'Z': 6.0,
        'X0': 19.32,
        'L0': 38.8,
    },
    'beryllium': {
        'Z': 4.0,
        'X0': 35.28,
        'L0': 42.1,
    },
    'silicon': {
        'Z': 14.0,
        'X0': 9.37,
        'L0': 46.5,
    },
    'iron': {
        'Z': 26.0,
        'X0': 1.757,
        'L0': 16.77,
    },
    'lead': {
        'Z': 82.0,
        'X0': 0.5612,
        'L0': 17.59,
    },
}


@dataclass(frozen=True)
class MaterialSlab:
    """
    A slab of material crossed by a particle.

    Parameters:
        thickness: Path length through the slab [cm]
        X0: Radiation length [cm]
        L0: Nuclear interaction length [cm]
        Z: Effective atomic number
    """

    thickness: float
    X0: float
    L0: float
    Z: float

    def __post_init__(self):
        if self.thickness < 0:
            raise ValueError(f"Negative slab thickness {self.thickness}")
        for name in ('X0', 'L0', 'Z'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def from_material(cls, material: str, thickness_cm: float) -> "MaterialSlab":
        """
        Build a slab from a preset material.

        Parameters:
            material: Material name (see MATERIAL_PROPERTIES)
            thickness_cm: Slab thickness [cm]
        """
        key = material.lower()
        if key not in MATERIAL_PROPERTIES:
            raise ValueError(f"Unknown material '{material}'. "
                             f"Available: {list(MATERIAL_PROPERTIES.keys())}")
        props = MATERIAL_PROPERTIES[key]
        return cls(thickness=thickness_cm, X0=props['X0'], L0=props['L0'], Z=props['Z'])

    @property
    def path_in_x0(self) -> float:
        """Thickness in radiation lengths."""
        return self.thickness / self.X0

    @property
    def path_in_l0(self) -> float:
        """Thickness in nuclear interaction lengths."""
        return self.thickness / self.L0
