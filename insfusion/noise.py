"""Stochastic processes used to model inertial sensor errors.

All generators return arrays with shape ``(n_samples, n_axes)``, where the number
of axes is determined by the broadcast shape of the process coefficients. Each
axis is generated independently.

Randomness is controlled by `rng` argument which can be None, int seed or
`numpy.random.RandomState`. A fixed seed reproduces the same sequence, None gives
nondeterministic seeding.

Functions
---------
.. autosummary::
    :toctree: generated/

    white_noise
    random_walk
    gauss_markov
    fixed_bias
    psd_from_sigma
    sigma_from_psd
"""
import numpy as np
from scipy._lib._util import check_random_state
from scipy.signal import lfilter


def _as_axes(param):
    return np.atleast_1d(np.asarray(param, dtype=float))


def white_noise(coefficient, dt, n_samples, rng=None):
    """Generate discrete samples of continuous white noise.

    The samples are zero-mean Gaussian with standard deviation
    ``coefficient / sqrt(dt)``, which corresponds to averaging of a continuous
    white noise with the given root PSD over the sampling period. Known as
    angle random walk for gyros and velocity random walk for accelerometers.

    Parameters
    ----------
    coefficient : array_like, shape (n_axes,) or float
        Root PSD of the noise (like rad/s/root-Hz).
    dt : float
        Sampling period.
    n_samples : int
        Number of samples to generate.
    rng : None, int or `numpy.random.RandomState`, optional
        Random state.

    Returns
    -------
    ndarray, shape (n_samples, n_axes)
    """
    rng = check_random_state(rng)
    coefficient = _as_axes(coefficient)
    return coefficient * dt ** -0.5 * rng.randn(n_samples, len(coefficient))


def random_walk(coefficient, dt, n_samples, rng=None):
    """Generate a random walk process starting from zero.

    The process is integrated white noise with the given root PSD. Known as rate
    random walk for gyros.

    Parameters
    ----------
    coefficient : array_like, shape (n_axes,) or float
        Root PSD of the white noise being integrated (like rad/s/root-s).
    dt : float
        Sampling period.
    n_samples : int
        Number of samples to generate.
    rng : None, int or `numpy.random.RandomState`, optional
        Random state.

    Returns
    -------
    ndarray, shape (n_samples, n_axes)
    """
    rng = check_random_state(rng)
    coefficient = _as_axes(coefficient)
    increments = coefficient * dt ** 0.5 * rng.randn(n_samples, len(coefficient))
    increments[0] = 0
    return np.cumsum(increments, axis=0)


def gauss_markov(sigma, tau, dt, n_samples, rng=None):
    """Generate a first-order Gauss-Markov process.

    The discrete process is::

        b[k] = b[k - 1] * exp(-dt / tau) + sigma * sqrt(1 - exp(-2 * dt / tau)) * w[k]

    with ``w[k]`` being standard normal and ``b[0]`` drawn from the stationary
    distribution ``N(0, sigma**2)``. The process variance stays equal to
    ``sigma**2`` at all times.

    Degenerate cases are handled per axis: a non-positive `tau` gives white noise
    with standard deviation `sigma`, an infinite `tau` gives a single random value
    held constant.

    Parameters
    ----------
    sigma : array_like, shape (n_axes,) or float
        Steady-state standard deviation of the process.
    tau : array_like, shape (n_axes,) or float
        Correlation time.
    dt : float
        Sampling period.
    n_samples : int
        Number of samples to generate.
    rng : None, int or `numpy.random.RandomState`, optional
        Random state.

    Returns
    -------
    ndarray, shape (n_samples, n_axes)
    """
    rng = check_random_state(rng)
    sigma, tau = np.broadcast_arrays(_as_axes(sigma), _as_axes(tau))
    n_axes = len(sigma)
    w = rng.randn(n_samples, n_axes)

    result = np.empty((n_samples, n_axes))
    for axis in range(n_axes):
        if tau[axis] <= 0:
            result[:, axis] = sigma[axis] * w[:, axis]
            continue
        a = np.exp(-dt / tau[axis])
        drive = sigma[axis] * np.sqrt(1 - a ** 2)
        w[0, axis] *= sigma[axis]
        w[1:, axis] *= drive
        result[:, axis] = lfilter([1.0], [1.0, -a], w[:, axis])
    return result


def fixed_bias(sd, rng=None):
    """Draw a turn-on bias, constant over a run.

    Parameters
    ----------
    sd : array_like, shape (n_axes,) or float
        Standard deviation of the bias.
    rng : None, int or `numpy.random.RandomState`, optional
        Random state.

    Returns
    -------
    ndarray, shape (n_axes,)
    """
    rng = check_random_state(rng)
    sd = _as_axes(sd)
    return sd * rng.randn(len(sd))


def psd_from_sigma(sigma, tau):
    """Compute driving root PSD of Gauss-Markov process from its steady-state sigma.

    For infinite or non-positive `tau` the process is a random constant or white
    noise and `sigma` is returned.
    """
    sigma, tau = np.broadcast_arrays(_as_axes(sigma), _as_axes(tau))
    with np.errstate(invalid='ignore'):
        return np.where(np.isinf(tau) | (tau <= 0), sigma,
                        sigma * np.sqrt(np.abs(tau)))


def sigma_from_psd(psd, tau):
    """Compute steady-state sigma of Gauss-Markov process from its root PSD.

    The inverse of `psd_from_sigma`.
    """
    psd, tau = np.broadcast_arrays(_as_axes(psd), _as_axes(tau))
    with np.errstate(divide='ignore', invalid='ignore'):
        return np.where(np.isinf(tau) | (tau <= 0), psd, psd / np.sqrt(np.abs(tau)))
