"""Navigation Kalman filter.

Module provides the error-state (feedback) Kalman filter which fuses an inertial
stream with GNSS position and velocity fixes. It relies on functionality provided
by `insfusion.strapdown`, `insfusion.error_model`, `insfusion.kalman` and
`insfusion.measurements` modules.

The filter is a state machine with two steps: `NavigationFilter.predict` for every
inertial sample and `NavigationFilter.update` for every fix.
`run_feedback_filter` drives it over complete streams.

Refer to [1]_ for the discussion of Kalman filtering in context of inertial navigation.

Classes
-------
.. autosummary::
    :toctree: generated/

    NavigationState
    NavigationFilter
    FilterDivergenceError

Functions
---------
.. autosummary::
    :toctree: generated/

    run_feedback_filter

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
"""
from dataclasses import dataclass
import logging
import numpy as np
import pandas as pd
from . import kalman, transform, util
from .config import FusionConfig
from .error_model import InsErrorModel
from .inertial_sensor import ImuProfile
from .measurements import PositionVelocity
from .strapdown import Mechanizer
from .util import (VEL_COLS, GYRO_COLS, ACCEL_COLS, FIX_COLS, NED_COLS,
                   TRAJECTORY_COLS, TRAJECTORY_ERROR_COLS)


logger = logging.getLogger(__name__)

BIAS_COLS = ['bias_x', 'bias_y', 'bias_z']
INNOVATION_COLS = NED_COLS + VEL_COLS


class FilterDivergenceError(RuntimeError):
    """Covariance matrix lost its positive diagonal.

    Attributes
    ----------
    index : int
        Index of the inertial sample at which the divergence was detected.
    time : float
        Time of the divergence.
    """
    def __init__(self, index, time, message=None):
        self.index = index
        self.time = time
        if message is None:
            message = (f"Filter diverged at sample {index} (time {time}): "
                       "negative or non-finite variance")
        super().__init__(message)

    def __reduce__(self):
        return self.__class__, (self.index, self.time, str(self))


@dataclass
class NavigationState:
    """Navigation state of the filter.

    Parameters
    ----------
    time : float
        Time.
    lla : ndarray, shape (3,)
        Latitude, longitude (radians) and altitude.
    velocity_n : ndarray, shape (3,)
        Velocity resolved in NED.
    quat_nb : ndarray, shape (4,)
        Body-to-NED unit quaternion, scalar last.
    gyro_bias : ndarray, shape (3,)
        Gyro bias estimate.
    accel_bias : ndarray, shape (3,)
        Accelerometer bias estimate.
    """
    time: float
    lla: np.ndarray
    velocity_n: np.ndarray
    quat_nb: np.ndarray
    gyro_bias: np.ndarray
    accel_bias: np.ndarray

    def to_pva(self):
        """Convert to position-velocity-attitude Series."""
        return pd.Series(np.hstack((self.lla, self.velocity_n,
                                    transform.quat_to_rph(self.quat_nb))),
                         index=TRAJECTORY_COLS, name=self.time)


class NavigationFilter:
    """Error-state Kalman filter with feedback corrections.

    Parameters
    ----------
    initial_pva : Pva
        Initial position-velocity-attitude. Its name is used as the initial time.
    imu_profile : ImuProfile or NormalizedImuProfile
        IMU error profile.
    config : FusionConfig or None, optional
        Filter configuration. If None (default), default configuration is used.
    measurement : PositionVelocity or None, optional
        Fix measurement model. Required to call `update` and to initialize
        position and velocity uncertainty when `config` doesn't specify it.

    Attributes
    ----------
    P : ndarray, shape (15, 15)
        Error covariance matrix.
    index : int
        Number of processed inertial samples with non-zero time step.
    clamp_events : list of tuple
        Recorded clamps of negative variances as (index, time, state).
    innovations : list of tuple
        Standardized innovations as (time, innovation).
    """
    def __init__(self, initial_pva, imu_profile, config=None, measurement=None):
        if config is None:
            config = FusionConfig()
        if isinstance(imu_profile, ImuProfile):
            imu_profile = imu_profile.normalize()

        self.config = config
        self.measurement = measurement
        self.error_model = InsErrorModel(imu_profile.gyro, imu_profile.accel,
                                         imu_profile.dt)
        self.mechanizer = Mechanizer(initial_pva)
        self.gyro_bias = np.zeros(3)
        self.accel_bias = np.zeros(3)
        self.index = 0
        self.clamp_events = []
        self.innovations = []

        self._dtype = config.dtype
        self._rate_b = np.zeros(3)
        self._gyro = None
        self._accel = None
        self._last_dt = 0.0
        self._asymmetry_reported = False

        position_sd = config.position_sd
        velocity_sd = config.velocity_sd
        if position_sd is None or velocity_sd is None:
            if measurement is None:
                raise ValueError("`position_sd` and `velocity_sd` must be set in "
                                 "`config` when `measurement` is not provided")
            if position_sd is None:
                position_sd = measurement.position_sd
            if velocity_sd is None:
                velocity_sd = measurement.velocity_sd

        P = self.error_model.initial_covariance(
            self.mechanizer.velocity_n, self.mechanizer.rph,
            position_sd, velocity_sd, config.attitude_sd)
        self.P = self._stabilize(P.astype(self._dtype))

    @property
    def time(self):
        return self.mechanizer.time

    @property
    def state(self):
        """Current navigation state as `NavigationState`."""
        return NavigationState(time=self.time,
                               lla=self.mechanizer.lla.copy(),
                               velocity_n=self.mechanizer.velocity_n.copy(),
                               quat_nb=self.mechanizer.quat_nb.copy(),
                               gyro_bias=self.gyro_bias.copy(),
                               accel_bias=self.accel_bias.copy())

    def _stabilize(self, P):
        asymmetry = np.max(np.abs(P - P.T))
        scale = np.max(np.abs(P))
        if (scale > 0 and asymmetry > self.config.symmetry_tolerance * scale
                and not self._asymmetry_reported):
            logger.warning("Covariance asymmetry %.3g exceeds tolerance at "
                           "sample %d", asymmetry / scale, self.index)
            self._asymmetry_reported = True
        P = util.symmetrize(P)

        diagonal = np.diag(P)
        if not np.all(np.isfinite(diagonal)):
            logger.error("Non-finite variance at sample %d, time %.6f",
                         self.index, self.time)
            raise FilterDivergenceError(self.index, self.time)

        negative = np.nonzero(diagonal < 0)[0]
        if len(negative) > 0:
            if not self.config.clamp_negative_variance:
                logger.error("Negative variance of states %s at sample %d, "
                             "time %.6f",
                             [self.error_model.states[i] for i in negative],
                             self.index, self.time)
                raise FilterDivergenceError(self.index, self.time)
            for i in negative:
                state = self.error_model.states[i]
                logger.warning("Clamping negative variance %.3g of %s at sample "
                               "%d, time %.6f", P[i, i], state, self.index,
                               self.time)
                P[i, i] = self.config.variance_floor
                self.clamp_events.append((self.index, self.time, state))
        return P

    def predict(self, time, gyro, accel):
        """Propagate the state and covariance to the next inertial sample.

        Parameters
        ----------
        time : float
            Time of the inertial sample, must not be less than the current time.
            When equal to it, only the readings are stored.
        gyro : array_like, shape (3,)
            Gyro reading in rad/s.
        accel : array_like, shape (3,)
            Accelerometer reading in m/s^2.
        """
        dt = time - self.time
        if dt < 0:
            raise ValueError(f"Inertial sample at {time} precedes the current "
                             f"time {self.time}")
        self._gyro = np.asarray(gyro, dtype=float)
        self._accel = np.asarray(accel, dtype=float)
        gyro = self._gyro - self.gyro_bias
        accel = self._accel - self.accel_bias
        self._rate_b = gyro
        if dt == 0:
            self.mechanizer.set_readings(gyro, accel)
            return

        self.mechanizer.step(dt, gyro, accel)
        self.mechanizer.time = float(time)
        self._last_dt = dt
        self.index += 1

        F, Q = self.error_model.system_matrices(self.mechanizer.lla,
                                                self.mechanizer.velocity_n,
                                                self.mechanizer.mat_nb)
        Phi, Qd = kalman.compute_process_matrices(
            F.astype(self._dtype), Q.astype(self._dtype), dt,
            self.config.discretization)
        self.P = self._stabilize(Phi @ self.P @ Phi.T + Qd)

    def update(self, fix, time):
        """Process a GNSS fix.

        The fix time must lie within the last inertial interval, the mechanized
        state is extrapolated back to it using the current velocity.

        Parameters
        ----------
        fix : Series or array_like, shape (6,)
            Fix with latitude, longitude, altitude, VN, VE, VD.
        time : float
            Time of the fix.

        Returns
        -------
        ndarray, shape (6,)
            Standardized innovation.
        """
        if self.measurement is None:
            raise ValueError("Filter was created without a measurement model")
        if isinstance(fix, pd.Series):
            fix = fix[FIX_COLS]
        fix = np.asarray(fix, dtype=float)

        time_back = self.time - time
        tolerance = 1e-9 * max(1.0, abs(self.time))
        if time_back < -tolerance or time_back > self._last_dt + tolerance:
            raise ValueError(f"Fix at {time} is outside of the last inertial "
                             f"interval ending at {self.time}")
        time_back = max(time_back, 0.0)

        velocity_n = self.mechanizer.velocity_n
        lla = transform.perturb_lla(self.mechanizer.lla, -velocity_n * time_back)
        mat_nb = self.mechanizer.mat_nb
        z, H, R = self.measurement.compute_matrices(fix, lla, velocity_n, mat_nb,
                                                    self._rate_b, self.error_model)
        x, P, innovation = kalman.correct(
            np.zeros(self.error_model.n_states, dtype=self._dtype), self.P, z,
            H.astype(self._dtype), R.astype(self._dtype))
        self.P = self._stabilize(P)

        x = np.asarray(x, dtype=float)
        lla, velocity_n, quat_nb = self.error_model.correct_state(
            self.mechanizer.lla, velocity_n, self.mechanizer.quat_nb, x)
        self.mechanizer.set_state(lla, velocity_n, quat_nb)
        self.gyro_bias += x[self.error_model.BG]
        self.accel_bias += x[self.error_model.BA]
        if self._gyro is not None:
            self._rate_b = self._gyro - self.gyro_bias
            self.mechanizer.set_readings(self._rate_b, self._accel - self.accel_bias)
        self.innovations.append((time, innovation))
        return innovation


def _compute_sd(P_nav, velocity_n, rph, error_model):
    if len(P_nav) == 0:
        return np.empty((0, 9))
    T = error_model.transform_to_output(velocity_n, rph)
    variance = np.diagonal(util.mm_prod_symmetric(T, P_nav), axis1=1, axis2=2)
    return np.maximum(variance, 0) ** 0.5


def run_feedback_filter(initial_pva, inertial, fix, imu_profile, config=None):
    """Run navigation filter with feedback corrections.

    Also known as extended Kalman filter (EKF). The initial state is assigned to
    the first inertial sample. Fixes outside of the inertial time span are
    ignored, the streams are supposed to be synchronized by
    `insfusion.sync.synchronize`.

    If the filter diverges, the error is logged and all output series are
    truncated at the sample where it happened.

    Parameters
    ----------
    initial_pva : Pva
        Initial position-velocity-attitude.
    inertial : InertialStream
        Inertial readings.
    fix : FixStream
        GNSS fixes.
    imu_profile : ImuProfile or NormalizedImuProfile
        IMU error profile used to model sensor errors.
    config : FusionConfig or None, optional
        Filter configuration. If None (default), default configuration is used.

    Returns
    -------
    Bunch with the following fields:

        trajectory, trajectory_sd : DataFrame
            Estimated trajectory and its error standard deviations.
        P_diagonal : DataFrame
            Diagonal of the covariance matrix for each sample.
        gyro, gyro_sd : DataFrame
            Estimated gyro biases and their standard deviations.
        accel, accel_sd : DataFrame
            Estimated accelerometer biases and their standard deviations.
        innovations : DataFrame
            Standardized innovations indexed by fix time.
        clamp_events : DataFrame
            Recorded clamps of negative variances.
        diverged : bool
            Whether the filter diverged.
        failure : FilterDivergenceError or None
            The divergence error if happened.
    """
    if config is None:
        config = FusionConfig()
    if isinstance(imu_profile, ImuProfile):
        imu_profile = imu_profile.normalize()

    lever_arm = config.lever_arm if config.lever_arm is not None else fix.lever_arm
    measurement = PositionVelocity(fix.position_sd, fix.velocity_sd, lever_arm)

    times = inertial.time
    gyro = inertial.data[GYRO_COLS].values
    accel = inertial.data[ACCEL_COLS].values
    fix_times = fix.time
    fix_values = fix.data[FIX_COLS].values

    initial_pva = initial_pva[TRAJECTORY_COLS].copy()
    initial_pva.name = times[0]
    filt = NavigationFilter(initial_pva, imu_profile, config, measurement)
    error_model = filt.error_model

    n_samples = len(times)
    lla = np.empty((n_samples, 3))
    velocity_n = np.empty((n_samples, 3))
    quat_nb = np.empty((n_samples, 4))
    gyro_bias = np.empty((n_samples, 3))
    accel_bias = np.empty((n_samples, 3))
    P_diagonal = np.empty((n_samples, error_model.n_states))
    P_nav = np.empty((n_samples, 9, 9))

    logger.info("Running feedback filter over %d inertial samples and %d fixes",
                n_samples, len(fix_times))
    fix_index = np.searchsorted(fix_times, times[0], side='left')
    n_done = 0
    failure = None
    try:
        for i in range(n_samples):
            filt.predict(times[i], gyro[i], accel[i])
            while fix_index < len(fix_times) and fix_times[fix_index] <= times[i]:
                filt.update(fix_values[fix_index], fix_times[fix_index])
                fix_index += 1

            lla[i] = filt.mechanizer.lla
            velocity_n[i] = filt.mechanizer.velocity_n
            quat_nb[i] = filt.mechanizer.quat_nb
            gyro_bias[i] = filt.gyro_bias
            accel_bias[i] = filt.accel_bias
            P_diagonal[i] = np.diag(filt.P)
            P_nav[i] = filt.P[:9, :9]
            n_done = i + 1
    except FilterDivergenceError as error:
        logger.error("Run aborted: %s", error)
        failure = error

    index = pd.Index(times[:n_done], name='time')
    lla = lla[:n_done]
    velocity_n = velocity_n[:n_done]
    rph = transform.quat_to_rph(quat_nb[:n_done]) if n_done > 0 else np.empty((0, 3))
    P_diagonal = P_diagonal[:n_done]

    trajectory = pd.DataFrame(np.hstack((lla, velocity_n, rph)), index=index,
                              columns=TRAJECTORY_COLS)
    trajectory_sd = pd.DataFrame(
        _compute_sd(P_nav[:n_done], velocity_n, rph, error_model),
        index=index, columns=TRAJECTORY_ERROR_COLS)
    variance = np.maximum(P_diagonal, 0)

    last_time = times[n_done - 1] if n_done > 0 else -np.inf
    innovations = [(time, innovation) for time, innovation in filt.innovations
                   if time <= last_time]
    innovations = pd.DataFrame(
        np.reshape([innovation for _, innovation in innovations],
                   (len(innovations), len(INNOVATION_COLS))),
        index=pd.Index([time for time, _ in innovations], name='time'),
        columns=INNOVATION_COLS)
    clamp_events = pd.DataFrame(filt.clamp_events,
                                columns=['index', 'time', 'state'])

    logger.info("Feedback filter finished, %d samples processed", n_done)
    return util.Bunch(
        trajectory=trajectory,
        trajectory_sd=trajectory_sd,
        P_diagonal=pd.DataFrame(P_diagonal, index=index,
                                columns=error_model.states),
        gyro=pd.DataFrame(gyro_bias[:n_done], index=index, columns=BIAS_COLS),
        gyro_sd=pd.DataFrame(variance[:, error_model.BG] ** 0.5, index=index,
                             columns=BIAS_COLS),
        accel=pd.DataFrame(accel_bias[:n_done], index=index, columns=BIAS_COLS),
        accel_sd=pd.DataFrame(variance[:, error_model.BA] ** 0.5, index=index,
                              columns=BIAS_COLS),
        innovations=innovations,
        clamp_events=clamp_events,
        diverged=failure is not None,
        failure=failure)
