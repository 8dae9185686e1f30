"""
Multiple Coulomb scattering angle sampling.

Hadrons and muons use the general mixture model: depending on the
thickness/β² ratio the projected angle is drawn from a single Gaussian, a
two-Gaussian mixture, or a Gaussian core with a semi-Gaussian (single
scattering) tail. Electrons fall back to the Highland formula.

All angles are returned as 3D angles, i.e. the projected width times √2.

References:
    - R. Frühwirth, M. Liendl, Comp. Phys. Comm. 141 (2001) 230-246
    - Highland, NIM 129, 497 (1975)
    - PDG Review of Particle Physics (Passage of particles through matter)
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np
import numba

from fastsim_mc.config.loader import SCATTERING_MODELS, get_default
from fastsim_mc.core.rng import TINY, UniformSource, unit_normal

logger = logging.getLogger(__name__)

# Widths in GeV (momenta are in GeV/c)
MIXTURE_WIDTH = 0.015          # total width of the mixture, 15 MeV
HIGHLAND_WIDTH = 0.0136        # Highland, 13.6 MeV
ELECTRON_WIDTH = 0.0175        # Highland extension for electrons, 17.5 MeV
PROJECTION_FACTOR = 1.0 / math.sqrt(2.0)

# Regime boundaries in τ = t/β²
GAUSSIAN_THRESHOLD = 10.0
MIXTURE_THRESHOLD = 0.6        # divided by Z^0.6

ELECTRON = "electron"
GAUSSIAN = "gaussian"
GAUSSIAN_MIXTURE = "gaussian_mixture"
SEMI_GAUSSIAN = "semi_gaussian"


@numba.njit(cache=True)
def highland_width(p: float, beta: float, path_in_x0: float, electron: bool) -> float:
    """
    Projected (plane) RMS scattering angle from the Highland formula.

        θ0 = 13.6 MeV / (βp) * sqrt(t) * [1 + 0.038 ln t]

    For electrons the Highland extension of the Rossi-Greisen formula is
    used instead:

        θ0 = 17.5 MeV / (βp) * sqrt(t) * [1 + 0.125 log10(10 t)] / √2

    Parameters:
        p: Momentum [GeV/c]
        beta: Velocity v/c
        path_in_x0: Path length in radiation lengths
        electron: Use the electron variant

    Returns:
        Projected RMS angle [radians]
    """
    if path_in_x0 <= 1e-10:  # Avoid log(0)
        return 0.0
    if electron:
        sigma = ELECTRON_WIDTH / (beta * p) * np.sqrt(path_in_x0) * \
            (1.0 + 0.125 * np.log10(10.0 * path_in_x0))
        return sigma * PROJECTION_FACTOR
    return HIGHLAND_WIDTH / (beta * p) * np.sqrt(path_in_x0) * \
        (1.0 + 0.038 * np.log(path_in_x0))


@numba.njit(cache=True)
def gaussian_params(beta: float, p: float, path_in_x0: float,
                    scale: float) -> Tuple[float, float, float, float]:
    """
    Pure Gaussian regime, τ > 10.

    Returns:
        (sigma_tot, core variance, tail variance, tail weight)
    """
    sigma_tot = MIXTURE_WIDTH / beta / p * np.sqrt(path_in_x0) * scale
    return sigma_tot, 1.0, 1.0, 0.5


@numba.njit(cache=True)
def gaussian_mixture_params(beta: float, p: float, path_in_x0: float, Z: float,
                            scale: float) -> Tuple[float, float, float, float]:
    """
    Two-Gaussian mixture regime.

    Core variance and tail weight are polynomial fits in ln(τ) and
    ln(Z^(2/3) τ); the tail variance follows from requiring unit total
    variance (in units of sigma_tot²).

    Returns:
        (sigma_tot, core variance, tail variance, tail weight)
    """
    sigma_tot = MIXTURE_WIDTH / beta / p * np.sqrt(path_in_x0) * scale
    d1 = np.log(path_in_x0 / (beta * beta))
    d2 = np.log(Z ** (2.0 / 3.0) * path_in_x0 / (beta * beta))
    var1 = (-1.843e-3 * d1 + 3.347e-2) * d1 + 8.471e-1
    if d2 < 0.5:
        epsi = (6.096e-4 * d2 + 6.348e-3) * d2 + 4.841e-2
    else:
        epsi = (-5.729e-3 * d2 + 1.106e-1) * d2 - 1.908e-2
    var2 = (1.0 - (1.0 - epsi) * var1) / epsi
    return sigma_tot, var1, var2, epsi


@numba.njit(cache=True)
def semi_gaussian_params(beta: float, p: float, path_in_x0: float, Z: float,
                         scale: float) -> Tuple[float, float, float, float, float, float]:
    """
    Gaussian core plus semi-Gaussian tail, for thin layers.

    N is the average number of scattering processes; a and b shape the
    single-scattering tail. A negative or undefined tail weight from the fit
    is floored to zero, leaving only the core.

    Returns:
        (a, b, core variance, tail weight, sigma_tot, N)
    """
    beta2 = beta * beta
    N = path_in_x0 * 1.587e7 * Z ** (1.0 / 3.0) / beta2 / (Z + 1.0) / \
        np.log(287.0 / np.sqrt(Z))
    sigma_tot = MIXTURE_WIDTH / beta / p * np.sqrt(path_in_x0) * scale
    rho = 41000.0 / Z ** (2.0 / 3.0)
    b = rho / np.sqrt(N * (np.log(rho) - 0.5))
    n = Z ** 0.1 * np.log(N)
    var1 = (5.783e-4 * n + 3.803e-2) * n + 1.827e-1
    a = (((-4.590e-5 * n + 1.330e-3) * n - 1.355e-2) * n + 9.828e-2) * n + 2.822e-1
    epsi = (1.0 - var1) / (a * a * (np.log(b / a) - 0.5) - var1)
    # Also catches NaN: on very thin layers a < 0 and log(b / a) is undefined
    if not epsi > 0.0:
        epsi = 0.0
    return a, b, var1, epsi, sigma_tot, N


def scattering_regime(path_in_x0: float, beta: float, pdg: int, Z: float) -> str:
    """Name of the regime scatter_angle() uses for these inputs."""
    if abs(pdg) == 11:
        return ELECTRON
    tau = path_in_x0 / (beta * beta)
    if tau > MIXTURE_THRESHOLD / Z ** 0.6:
        return GAUSSIAN if tau > GAUSSIAN_THRESHOLD else GAUSSIAN_MIXTURE
    return SEMI_GAUSSIAN


def sample_gaussian_mixture(rng: UniformSource, params: Tuple[float, float, float, float]) -> float:
    """
    Draw a projected angle from the (pure or two-component) Gaussian mixture.

    Consumes two uniforms: component choice, then magnitude.
    """
    sigma_tot, var1, var2, epsi = params
    core = rng() > epsi
    u = max(rng(), TINY)
    if core:
        return math.sqrt(var1) * math.sqrt(-2.0 * math.log(u)) * sigma_tot
    return math.sqrt(var2) * math.sqrt(-2.0 * math.log(u)) * sigma_tot


def sample_semi_gaussian(rng: UniformSource, params) -> float:
    """
    Draw a projected angle from the Gaussian core / semi-Gaussian tail mixture.

    Consumes two uniforms: component choice, then magnitude.
    """
    a, b, var1, epsi, sigma_tot, _ = params
    core = rng() > epsi
    u = max(rng(), TINY)
    if core:
        return math.sqrt(var1) * math.sqrt(-2.0 * math.log(u)) * sigma_tot
    return a * b * math.sqrt((1.0 - u) / (u * b * b + a * a)) * sigma_tot


def _check_inputs(path_in_x0: float, p: float, Z: float) -> None:
    if path_in_x0 < 0:
        raise ValueError(f"Negative path length {path_in_x0} X0")
    if Z <= 0:
        raise ValueError(f"Effective Z must be positive, got {Z}")
    if p <= 0:
        raise ValueError("Cannot scatter a particle with zero momentum")


def scatter_angle(rng: UniformSource, path_in_x0: float, particle, Z: float,
                  scale: float = 1.0) -> float:
    """
    Sample a 3D multiple scattering angle with the general mixture model.

    Parameters:
        rng: Uniform random source
        path_in_x0: Path length in radiation lengths
        particle: Object exposing p, beta and pdg
        Z: Effective atomic number of the material
        scale: Multiplies the total width of the mixture

    Returns:
        Scattering angle [radians], already scaled by √2. Zero for a zero
        path length (no draws are consumed then).
    """
    p = particle.p
    _check_inputs(path_in_x0, p, Z)
    if path_in_x0 == 0.0:
        return 0.0

    beta = particle.beta
    regime = scattering_regime(path_in_x0, beta, particle.pdg, Z)
    logger.debug("pdg %d, t=%.4g X0, beta=%.4g: %s regime",
                 particle.pdg, path_in_x0, beta, regime)

    if regime == ELECTRON:
        theta = highland_width(p, beta, path_in_x0, True) * unit_normal(rng)
    elif regime == GAUSSIAN:
        theta = sample_gaussian_mixture(rng, gaussian_params(beta, p, path_in_x0, scale))
    elif regime == GAUSSIAN_MIXTURE:
        theta = sample_gaussian_mixture(
            rng, gaussian_mixture_params(beta, p, path_in_x0, Z, scale))
    else:
        theta = sample_semi_gaussian(
            rng, semi_gaussian_params(beta, p, path_in_x0, Z, scale))

    return math.sqrt(2.0) * theta


@numba.njit(fastmath=True, cache=True)
def rotate_direction(direction: np.ndarray, theta: float, phi: float) -> np.ndarray:
    """
    Rotate a unit direction by polar angle theta and azimuth phi.

    Uses Rodrigues' rotation formula:
        v_rot = v*cos(θ) + (k × v)*sin(θ) + k*(k·v)*(1-cos(θ))

    where k is a unit axis perpendicular to v, turned by phi around v.

    Parameters:
        direction: Initial direction unit vector [x, y, z]
        theta: Polar angle [radians]
        phi: Azimuthal angle [radians]

    Returns:
        Rotated direction unit vector [x, y, z]
    """
    ux, uy, uz = direction[0], direction[1], direction[2]

    if theta < 1e-12:
        return direction.copy()

    # Axis perpendicular to the direction
    if abs(uz) > 0.99:
        # x-axis with its component along the direction removed
        perp_x = 1.0 - ux * ux
        perp_y = -ux * uy
        perp_z = -ux * uz
        norm = np.sqrt(perp_x**2 + perp_y**2 + perp_z**2)
        perp_x /= norm
        perp_y /= norm
        perp_z /= norm
    else:
        norm = np.sqrt(ux**2 + uy**2)
        perp_x = -uy / norm
        perp_y = ux / norm
        perp_z = 0.0

    # Orient the axis by phi around the direction
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)
    kx = perp_x * cos_phi + (uy * perp_z - uz * perp_y) * sin_phi
    ky = perp_y * cos_phi + (uz * perp_x - ux * perp_z) * sin_phi
    kz = perp_z * cos_phi + (ux * perp_y - uy * perp_x) * sin_phi
    k_norm = np.sqrt(kx * kx + ky * ky + kz * kz)
    kx /= k_norm
    ky /= k_norm
    kz /= k_norm

    cos_theta = np.cos(theta)
    sin_theta = np.sin(theta)
    dot = kx * ux + ky * uy + kz * uz
    one_minus_cos = 1.0 - cos_theta

    new_x = ux * cos_theta + (ky * uz - kz * uy) * sin_theta + kx * dot * one_minus_cos
    new_y = uy * cos_theta + (kz * ux - kx * uz) * sin_theta + ky * dot * one_minus_cos
    new_z = uz * cos_theta + (kx * uy - ky * ux) * sin_theta + kz * dot * one_minus_cos

    norm = np.sqrt(new_x**2 + new_y**2 + new_z**2)

    result = np.empty(3, dtype=np.float64)
    result[0] = new_x / norm
    result[1] = new_y / norm
    result[2] = new_z / norm

    return result


def deflect(direction, theta: float, phi: float) -> np.ndarray:
    """Rotate a direction by (theta, phi); accepts any 3-sequence."""
    return rotate_direction(np.ascontiguousarray(direction, dtype=np.float64), theta, phi)


class GeneralMixtureScattering:
    """
    Driver-facing general mixture scattering sampler.

    Usage:
        scattering = GeneralMixtureScattering()
        slab = MaterialSlab.from_material('silicon', 0.03)
        theta = scattering(rng, slab, particle)
    """

    def __init__(self, scale: Optional[float] = None):
        """
        Parameters:
            scale: Mixture width scale (default: scattering.mixture_scale)
        """
        if scale is None:
            scale = float(get_default('scattering.mixture_scale', 1.0))
        if scale <= 0:
            raise ValueError(f"Mixture scale must be positive, got {scale}")
        self.scale = scale

    def __call__(self, rng: UniformSource, slab, particle) -> float:
        return scatter_angle(rng, slab.path_in_x0, particle, slab.Z, self.scale)

    def regime(self, slab, particle) -> str:
        return scattering_regime(slab.path_in_x0, particle.beta, particle.pdg, slab.Z)


class HighlandScattering:
    """Gaussian scattering with the Highland width, for all species."""

    def __call__(self, rng: UniformSource, slab, particle) -> float:
        p = particle.p
        _check_inputs(slab.path_in_x0, p, slab.Z)
        if slab.path_in_x0 == 0.0:
            return 0.0
        electron = abs(particle.pdg) == 11
        width = highland_width(p, particle.beta, slab.path_in_x0, electron)
        return math.sqrt(2.0) * width * unit_normal(rng)

    def regime(self, slab, particle) -> str:
        return ELECTRON if abs(particle.pdg) == 11 else GAUSSIAN


def make_scattering(model: Optional[str] = None, scale: Optional[float] = None):
    """
    Build the configured scattering sampler.

    Parameters:
        model: 'general_mixture' or 'highland' (default: scattering.model)
        scale: Mixture width scale, general mixture only
    """
    if model is None:
        model = get_default('scattering.model', 'general_mixture')
    if model == 'general_mixture':
        return GeneralMixtureScattering(scale)
    if model == 'highland':
        return HighlandScattering()
    raise ValueError(f"Unknown scattering model '{model}'. "
                     f"Available: {list(SCATTERING_MODELS)}")


# ============================================================================
# Example Usage
# ============================================================================

if __name__ == "__main__":
    from fastsim_mc.core.material import MaterialSlab
    from fastsim_mc.core.particle import Particle
    from fastsim_mc.core.rng import make_uniform_source

    print("\n" + "="*70)
    print("General Mixture Scattering Test")
    print("="*70)

    rng = make_uniform_source(42)
    scattering = GeneralMixtureScattering()
    pion = Particle.from_species(211, (0.0, 0.0, 1.0))

    print(f"\n{pion} in silicon:")
    for thickness in [0.001, 0.03, 1.0, 100.0]:
        slab = MaterialSlab.from_material('silicon', thickness)
        angles = np.array([scattering(rng, slab, pion) for _ in range(20000)])
        rms = np.sqrt(np.mean(angles**2))
        print(f"  {thickness:8.3f} cm ({slab.path_in_x0:.2e} X0) "
              f"{scattering.regime(slab, pion):17s} RMS: {rms*1000:8.3f} mrad")

    print("\n" + "="*70)
    print("Test complete!")
    print("="*70 + "\n")
