"""
Exceptions raised by the samplers.

Both error kinds abort only the current sampling call. They carry the
species code and the failing operation so a driver can log the problem and
skip the particle instead of stopping the whole run.
"""


class FastSimError(Exception):
    """Base class for sampling errors."""


class UnsupportedSpecies(FastSimError, LookupError):
    """
    Raised when fit or mass/charge data is requested for an unknown species.

    Parameters:
        pdg: Species (PDG) code that was looked up
        operation: What was being looked up, e.g. 'parametrization lookup'
    """

    def __init__(self, pdg: int, operation: str):
        self.pdg = int(pdg)
        self.operation = operation
        super().__init__(f"Unsupported species {self.pdg} in {operation}")


class SamplingDivergence(FastSimError, RuntimeError):
    """
    Raised when the energy-fraction rejection loop hits its attempt cap.

    Parameters:
        pdg: Species code of the interacting parent
        multiplicity: Number of secondaries being sampled
        attempts: Attempts made before giving up
    """

    def __init__(self, pdg: int, multiplicity: int, attempts: int):
        self.pdg = int(pdg)
        self.multiplicity = int(multiplicity)
        self.attempts = int(attempts)
        super().__init__(
            f"Energy fractions for species {self.pdg} (n={self.multiplicity}) "
            f"did not satisfy sum <= 1 after {self.attempts} attempts"
        )
