"""Validated measurement streams.

Two kinds of streams are fed to the navigation filter: the fast inertial stream
with gyro and accelerometer readings and the slow GNSS fix stream. Both wrap a
DataFrame indexed by time in seconds. Construction validates the columns and the
time index, so downstream code can rely on them.

Classes
-------
.. autosummary::
    :toctree: generated/

    InertialStream
    FixStream
"""
from dataclasses import dataclass
import numpy as np
import pandas as pd
from .util import IMU_COLS, FIX_COLS


def _validate_frame(data, columns, kind):
    if not isinstance(data, pd.DataFrame):
        raise ValueError(f"{kind} data must be a DataFrame")
    missing = [col for col in columns if col not in data.columns]
    if missing:
        raise ValueError(f"{kind} data misses columns {missing}")
    time = np.asarray(data.index, dtype=float)
    if not np.all(np.isfinite(time)):
        raise ValueError(f"{kind} time index must be finite")
    if np.any(np.diff(time) <= 0):
        raise ValueError(f"{kind} time index must be strictly increasing")
    values = data[columns]
    if not np.all(np.isfinite(values.values)):
        raise ValueError(f"{kind} data must contain only finite values")
    values = values.astype(float)
    values.index = pd.Index(time, name='time')
    return values


def _as_vector(value, name):
    value = np.array(value, dtype=float)
    if value.ndim == 0:
        value = np.resize(value, 3)
    if value.shape != (3,):
        raise ValueError(f"`{name}` must be float or array with shape (3,)")
    if not np.all(np.isfinite(value)):
        raise ValueError(f"`{name}` must be finite")
    value.setflags(write=False)
    return value


class _Stream:
    @property
    def time(self):
        return np.asarray(self.data.index)

    @property
    def period(self):
        """Median sampling period."""
        if len(self.data) < 2:
            return np.nan
        return float(np.median(np.diff(self.data.index)))

    def __len__(self):
        return len(self.data)


@dataclass(frozen=True)
class InertialStream(_Stream):
    """Stream of gyro and accelerometer readings.

    Parameters
    ----------
    data : DataFrame
        Indexed by strictly increasing time, must contain columns 'gyro_x',
        'gyro_y', 'gyro_z' (rad/s) and 'accel_x', 'accel_y', 'accel_z' (m/s^2).
    """
    data: pd.DataFrame

    def __post_init__(self):
        object.__setattr__(self, 'data',
                           _validate_frame(self.data, IMU_COLS, "Inertial"))

    def slice(self, start, stop):
        """Select samples by integer positions ``start:stop``."""
        return InertialStream(self.data.iloc[start:stop])


@dataclass(frozen=True)
class FixStream(_Stream):
    """Stream of GNSS position and velocity fixes.

    Parameters
    ----------
    data : DataFrame
        Indexed by strictly increasing time, must contain columns 'lat', 'lon'
        (radians), 'alt' (meters) and 'VN', 'VE', 'VD' (m/s).
    position_sd : array_like, shape (3,)
        Position accuracy in meters for North, East and Down.
    velocity_sd : array_like, shape (3,)
        Velocity accuracy in m/s for North, East and Down.
    lever_arm : array_like, shape (3,)
        Vector from IMU to antenna expressed in body frame.
    """
    data: pd.DataFrame
    position_sd: np.ndarray
    velocity_sd: np.ndarray
    lever_arm: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 'data', _validate_frame(self.data, FIX_COLS, "Fix"))
        for name in ['position_sd', 'velocity_sd', 'lever_arm']:
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))
        if np.any(self.position_sd <= 0) or np.any(self.velocity_sd <= 0):
            raise ValueError("Fix standard deviations must be positive")

    def slice(self, start, stop):
        """Select samples by integer positions ``start:stop``."""
        return FixStream(self.data.iloc[start:stop], self.position_sd,
                         self.velocity_sd, self.lever_arm)
