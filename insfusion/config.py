"""Configuration of a navigation run.

Classes
-------
.. autosummary::
    :toctree: generated/

    FusionConfig
"""
from dataclasses import dataclass
import numpy as np
from . import transform


def _as_optional_vector(value, name):
    if value is None:
        return None
    value = np.array(value, dtype=float)
    if value.ndim == 0:
        value = np.resize(value, 3)
    if value.shape != (3,):
        raise ValueError(f"`{name}` must be None, float or array with shape (3,)")
    value.setflags(write=False)
    return value


@dataclass(frozen=True)
class FusionConfig:
    """Parameters of the navigation filter.

    The configuration is immutable and passed to the filter at construction.

    Parameters
    ----------
    position_sd : array_like, shape (3,), float or None, optional
        Initial position standard deviation in meters for North, East and Down.
        If None (default), accuracy of the fix stream is used.
    velocity_sd : array_like, shape (3,), float or None, optional
        Initial velocity standard deviation in m/s for North, East and Down.
        If None (default), accuracy of the fix stream is used.
    attitude_sd : array_like, shape (3,), optional
        Initial roll, pitch and yaw standard deviations in radians.
        Default is 3, 3 and 10 degrees.
    lever_arm : array_like, shape (3,) or None, optional
        Vector from IMU to antenna in body frame which overrides the one of the
        fix stream. If None (default), the fix stream value is used.
    discretization : 'van-loan' or 'taylor', optional
        Method to compute discrete process matrices. Default is 'van-loan'.
    clamp_negative_variance : bool, optional
        If True, negative variances are replaced by `variance_floor` and the
        filter continues. Otherwise (default) the filter is considered diverged.
    variance_floor : float, optional
        Variance to replace negative ones with. Default is 1e-12.
    precision : 'double' or 'single', optional
        Floating point precision of the covariance arithmetic.
        Default is 'double'.
    symmetry_tolerance : float, optional
        Maximum allowed relative asymmetry of the covariance matrix before
        symmetrization. Default is 1e-6.
    """
    position_sd: np.ndarray = None
    velocity_sd: np.ndarray = None
    attitude_sd: np.ndarray = (3 * transform.DEG_TO_RAD, 3 * transform.DEG_TO_RAD,
                               10 * transform.DEG_TO_RAD)
    lever_arm: np.ndarray = None
    discretization: str = 'van-loan'
    clamp_negative_variance: bool = False
    variance_floor: float = 1e-12
    precision: str = 'double'
    symmetry_tolerance: float = 1e-6

    def __post_init__(self):
        for name in ['position_sd', 'velocity_sd', 'attitude_sd', 'lever_arm']:
            object.__setattr__(self, name,
                               _as_optional_vector(getattr(self, name), name))
        if self.attitude_sd is None:
            raise ValueError("`attitude_sd` must be provided")
        for name in ['position_sd', 'velocity_sd', 'attitude_sd']:
            value = getattr(self, name)
            if value is not None and np.any(value < 0):
                raise ValueError(f"`{name}` must be non-negative")
        if self.discretization not in ['van-loan', 'taylor']:
            raise ValueError("`discretization` must be 'van-loan' or 'taylor'")
        if self.precision not in ['double', 'single']:
            raise ValueError("`precision` must be 'double' or 'single'")
        if not self.variance_floor > 0:
            raise ValueError("`variance_floor` must be positive")
        if not self.symmetry_tolerance > 0:
            raise ValueError("`symmetry_tolerance` must be positive")

    @property
    def dtype(self):
        return np.float64 if self.precision == 'double' else np.float32
