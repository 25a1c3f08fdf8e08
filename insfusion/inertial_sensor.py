"""Description of inertial sensor errors.

Module contains classes to describe an IMU error profile as given by a
manufacturer, its conversion to SI units and the application of the errors to true
readings. The normalized description also provides the bias model used by the
navigation filter.

Gyroscopes and accelerometers are treated as independent triads.

Classes
-------
.. autosummary::
    :toctree: generated/

    ImuProfile
    TriadErrors
    NormalizedImuProfile

Functions
---------
.. autosummary::
    :toctree: generated/

    apply_imu_errors

Constants
---------
.. autosummary::
    :toctree: generated/

    ADIS16405
    ADIS16488
"""
from dataclasses import dataclass
import numpy as np
import pandas as pd
from scipy._lib._util import check_random_state
from . import noise, transform
from .util import GYRO_COLS, ACCEL_COLS, INDEX_TO_XYZ


def _as_vector(value, name):
    value = np.array(value, dtype=float)
    if value.ndim == 0:
        value = np.resize(value, 3)
    if value.shape != (3,):
        raise ValueError(f"`{name}` might be float or array with shape (3,)")
    value.setflags(write=False)
    return value


@dataclass(frozen=True)
class ImuProfile:
    """IMU error profile in manufacturer units.

    All error parameters might be floats or arrays with shape (3,) for X, Y, Z axes.

    Parameters
    ----------
    arw : array_like
        Angle random walk in deg/root-hour.
    vrw : array_like
        Velocity random walk in m/s/root-hour.
    gb_fix : array_like
        Gyro turn-on bias standard deviation in deg/s.
    ab_fix : array_like
        Accelerometer turn-on bias standard deviation in mg.
    gb_drift : array_like
        Gyro bias instability in deg/s.
    ab_drift : array_like
        Accelerometer bias instability in mg.
    gb_corr : array_like
        Gyro bias instability correlation time in seconds.
    ab_corr : array_like
        Accelerometer bias instability correlation time in seconds.
    freq : float
        Sampling frequency in Hz.
    arrw : array_like, optional
        Angle rate random walk in deg/root-hour/s. Default is zero.
    vrrw : array_like, optional
        Velocity rate random walk in m/s/root-hour/s. Default is zero.
    """
    arw: np.ndarray
    vrw: np.ndarray
    gb_fix: np.ndarray
    ab_fix: np.ndarray
    gb_drift: np.ndarray
    ab_drift: np.ndarray
    gb_corr: np.ndarray
    ab_corr: np.ndarray
    freq: float
    arrw: np.ndarray = 0.0
    vrrw: np.ndarray = 0.0

    def __post_init__(self):
        for name in ['arw', 'vrw', 'gb_fix', 'ab_fix', 'gb_drift', 'ab_drift',
                     'gb_corr', 'ab_corr', 'arrw', 'vrrw']:
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))
        if not self.freq > 0:
            raise ValueError("`freq` must be positive")
        for name in ['arw', 'vrw', 'gb_fix', 'ab_fix', 'gb_drift', 'ab_drift',
                     'arrw', 'vrrw']:
            if np.any(getattr(self, name) < 0):
                raise ValueError(f"`{name}` must be non-negative")

    @classmethod
    def ideal(cls, freq):
        """Create an error-free profile with the given sampling frequency."""
        return cls(arw=0, vrw=0, gb_fix=0, ab_fix=0, gb_drift=0, ab_drift=0,
                   gb_corr=np.inf, ab_corr=np.inf, freq=freq)

    def normalize(self):
        """Convert the profile to SI units.

        Returns
        -------
        NormalizedImuProfile
        """
        gyro = TriadErrors(
            noise=self.arw * transform.DRH_TO_RRS,
            bias_walk=self.arrw * transform.DRH_TO_RRS,
            fixed_bias_sd=self.gb_fix * transform.DS_TO_RS,
            bias_sigma=self.gb_drift * transform.DS_TO_RS,
            correlation_time=self.gb_corr)
        accel = TriadErrors(
            noise=self.vrw * transform.MRH_TO_MRS,
            bias_walk=self.vrrw * transform.MRH_TO_MRS,
            fixed_bias_sd=self.ab_fix * transform.MG_TO_MSS,
            bias_sigma=self.ab_drift * transform.MG_TO_MSS,
            correlation_time=self.ab_corr)
        return NormalizedImuProfile(gyro=gyro, accel=accel, frequency=float(self.freq))


@dataclass(frozen=True)
class TriadErrors:
    """Errors of a sensor triad (gyros or accelerometers) in SI units.

    The following model is used for readings::

        x_out = x + b_fix + b_gm + b_rw + n

    where

        - ``x`` is a true kinematic vector
        - ``b_fix`` is a random constant bias with standard deviation
          `fixed_bias_sd`
        - ``b_gm`` is a first-order Gauss-Markov bias with steady-state standard
          deviation `bias_sigma` and `correlation_time`
        - ``b_rw`` is a random walk with intensity `bias_walk`
        - ``n`` is a white noise with intensity `noise`

    Parameters
    ----------
    noise : array_like
        Root PSD of additive white noise (rad/s/root-Hz or m/s^2/root-Hz).
    bias_walk : array_like
        Root PSD of noise integrated into the bias (rad/s/root-s or m/s^2/root-s).
    fixed_bias_sd : array_like
        Standard deviation of the turn-on bias (rad/s or m/s^2).
    bias_sigma : array_like
        Steady-state standard deviation of the bias instability (rad/s or m/s^2).
    correlation_time : array_like
        Correlation time of the bias instability in seconds.
    """
    noise: np.ndarray
    bias_walk: np.ndarray
    fixed_bias_sd: np.ndarray
    bias_sigma: np.ndarray
    correlation_time: np.ndarray

    def __post_init__(self):
        for name in ['noise', 'bias_walk', 'fixed_bias_sd', 'bias_sigma',
                     'correlation_time']:
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))

    @property
    def bias_psd(self):
        """Root PSD of the bias instability process."""
        return noise.psd_from_sigma(self.bias_sigma, self.correlation_time)

    @property
    def is_ideal(self):
        return not (np.any(self.noise > 0) or np.any(self.bias_walk > 0) or
                    np.any(self.fixed_bias_sd > 0) or np.any(self.bias_sigma > 0))

    def generate_bias(self, n_samples, dt, rng=None):
        """Generate a realization of the total bias.

        Parameters
        ----------
        n_samples : int
            Number of samples.
        dt : float
            Sampling period.
        rng : None, int or `numpy.random.RandomState`, optional
            Random state.

        Returns
        -------
        ndarray, shape (n_samples, 3)
        """
        rng = check_random_state(rng)
        bias = np.zeros((n_samples, 3))
        bias += noise.fixed_bias(self.fixed_bias_sd, rng)
        bias += noise.gauss_markov(self.bias_sigma, self.correlation_time, dt,
                                   n_samples, rng)
        bias += noise.random_walk(self.bias_walk, dt, n_samples, rng)
        return bias

    def apply(self, readings, rng=None):
        """Apply errors to rate-type readings.

        Parameters
        ----------
        readings : DataFrame
            Either gyro or accelerometer readings indexed by time, must contain
            only 3 columns.
        rng : None, int or `numpy.random.RandomState`, optional
            Random state.

        Returns
        -------
        readings : DataFrame
            Readings after the errors were applied.
        bias : DataFrame
            Realized bias with columns 'bias_x', 'bias_y', 'bias_z'.
        """
        rng = check_random_state(rng)
        dt = np.median(np.diff(readings.index)) if len(readings) > 1 else 1.0
        n_samples = len(readings)
        bias = self.generate_bias(n_samples, dt, rng)
        result = (readings.values + bias +
                  noise.white_noise(self.noise, dt, n_samples, rng))
        return (pd.DataFrame(result, index=readings.index, columns=readings.columns),
                pd.DataFrame(bias, index=readings.index,
                             columns=[f"bias_{INDEX_TO_XYZ[axis]}"
                                      for axis in range(3)]))

    def bias_model(self, dt):
        """Compute the model of bias errors for a Kalman filter.

        The total bias of each axis is approximated by a single first-order
        Gauss-Markov state with the correlation time of the bias instability and
        steady-state variance covering both the turn-on bias and the bias
        instability. Rate random walk adds to its driving noise. An infinite
        correlation time gives a random constant. A non-positive correlation time
        makes the bias instability a white noise which is added to the output
        noise.

        Parameters
        ----------
        dt : float
            Sampling period, used only for white bias instability.

        Returns
        -------
        F : ndarray, shape (3, 3)
            Bias dynamics matrix.
        q : ndarray, shape (3,)
            Root PSD of the bias driving noise.
        P : ndarray, shape (3, 3)
            Initial bias covariance.
        v : ndarray, shape (3,)
            Root PSD of the output white noise.
        """
        tau = self.correlation_time
        white = tau <= 0
        gauss_markov = ~white & np.isfinite(tau)

        variance = self.fixed_bias_sd ** 2 + np.where(white, 0, self.bias_sigma ** 2)
        F = np.zeros((3, 3))
        q2 = self.bias_walk ** 2
        F[gauss_markov, gauss_markov] = -1 / tau[gauss_markov]
        q2 = q2 + np.where(gauss_markov,
                           2 * variance / np.where(gauss_markov, tau, 1), 0)
        v2 = self.noise ** 2 + np.where(white, self.bias_sigma ** 2 * dt, 0)
        return F, q2 ** 0.5, np.diag(variance), v2 ** 0.5


@dataclass(frozen=True)
class NormalizedImuProfile:
    """IMU error profile in SI units.

    Created by `ImuProfile.normalize`.

    Parameters
    ----------
    gyro : TriadErrors
        Gyro errors.
    accel : TriadErrors
        Accelerometer errors.
    frequency : float
        Sampling frequency in Hz.
    """
    gyro: TriadErrors
    accel: TriadErrors
    frequency: float

    @property
    def dt(self):
        return 1.0 / self.frequency


def apply_imu_errors(imu, profile, rng=None):
    """Apply IMU errors to true readings.

    Parameters
    ----------
    imu : Imu
        True IMU readings.
    profile : NormalizedImuProfile
        Error profile.
    rng : None, int or `numpy.random.RandomState`, optional
        Random state.

    Returns
    -------
    imu : Imu
        IMU readings after application of the errors.
    gyro_bias, accel_bias : DataFrame
        Realized biases of gyros and accelerometers.
    """
    rng = check_random_state(rng)
    gyro, gyro_bias = profile.gyro.apply(imu[GYRO_COLS], rng)
    accel, accel_bias = profile.accel.apply(imu[ACCEL_COLS], rng)
    return pd.concat([gyro, accel], axis='columns'), gyro_bias, accel_bias


#: Analog Devices ADIS16405 (industrial MEMS grade).
ADIS16405 = ImuProfile(arw=2.0, vrw=0.2, gb_fix=3.0, ab_fix=50.0, gb_drift=0.007,
                       ab_drift=0.2, gb_corr=100.0, ab_corr=100.0, freq=100.0)

#: Analog Devices ADIS16488 (tactical MEMS grade).
ADIS16488 = ImuProfile(arw=0.3, vrw=0.029, gb_fix=0.2, ab_fix=16.0,
                       gb_drift=6.5 / 3600, ab_drift=0.1, gb_corr=100.0,
                       ab_corr=100.0, freq=100.0)
