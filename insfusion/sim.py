"""Simulation of sensors.

The main functionality is synthesis of IMU readings from the given trajectory and
generation of realistic inertial and GNSS fix streams from it. It also contains
reference motion generators and utilities for perturbing the initial state.

Functions
---------
.. autosummary::
    :toctree: generated/

    generate_imu
    generate_straight_motion
    generate_sine_velocity_motion
    generate_inertial_stream
    generate_fix_stream
    generate_pva_error
    perturb_pva
"""
import numpy as np
import pandas as pd
from scipy.interpolate import CubicSpline, CubicHermiteSpline, interp1d
from scipy.spatial.transform import Rotation, RotationSpline
from scipy._lib._util import check_random_state
from . import earth, transform, util
from .inertial_sensor import ImuProfile, apply_imu_errors
from .streams import InertialStream, FixStream
from .util import (LLA_COLS, VEL_COLS, RPH_COLS, NED_COLS, GYRO_COLS, ACCEL_COLS,
                   FIX_COLS, TRAJECTORY_COLS, TRAJECTORY_ERROR_COLS)


def generate_imu(time, lla, rph, velocity_n=None, imu_time=None):
    """Generate IMU readings from the trajectory.

    The readings are exact angular rates and specific forces obtained by
    differentiation of position and attitude splines in the inertial frame.

    Attitude angles (`rph`) must be always given and there are 3 options for
    position and velocity:

        - Both position and velocity are given
        - Only position is given
        - Initial position and velocity are given

    Parameters
    ----------
    time : array_like, shape (n,)
        Time points for which the trajectory is provided.
    lla : array_like, shape (n, 3) or (3,)
        Either time series of latitude, longitude and altitude or initial
        values of those.
    rph : array_like, shape (n, 3)
        Time series of roll, pitch and yaw angles.
    velocity_n : array_like with shape (n, 3) or None
        Time series of velocity expressed in NED frame.
    imu_time : array_like with shape (m,) or None, optional
        Time points at which to compute the readings, must lie within the
        range of `time`. If None (default), `time` is used.

    Returns
    -------
    trajectory : Trajectory
        Trajectory dataframe with n rows.
    imu : Imu
        IMU dataframe with readings at `imu_time`.
    """
    MAX_ITER = 3
    ACCURACY = 0.01

    time = np.asarray(time, dtype=float)
    lla = np.asarray(lla, dtype=float)
    rph = np.asarray(rph, dtype=float)
    if lla.ndim == 1 and velocity_n is None:
        raise ValueError("`velocity_n` must be provided when `lla` contains only "
                         "initial values")
    if imu_time is None:
        imu_time = time
    else:
        imu_time = np.asarray(imu_time, dtype=float)
        if imu_time[0] < time[0] or imu_time[-1] > time[-1]:
            raise ValueError("`imu_time` must lie within the range of `time`")

    n_points = len(time)
    if lla.ndim == 1:
        lat0, lon0, alt0 = lla
        velocity_n = np.asarray(velocity_n, dtype=float)
        VU_spline = CubicSpline(time, -velocity_n[:, 2])
        alt_spline = VU_spline.antiderivative()
        alt = alt0 + alt_spline(time)

        lat = lat0
        for iteration in range(MAX_ITER):
            rn, _, _ = earth.principal_radii(lat, alt)
            dlat_spline = CubicSpline(time, velocity_n[:, 0] / rn)
            lat_spline = dlat_spline.antiderivative()
            lat_new = lat0 + lat_spline(time)
            delta = (lat - lat_new) * rn
            lat = lat_new
            if np.all(np.abs(delta) < ACCURACY):
                break

        _, _, rp = earth.principal_radii(lat, alt)
        dlon_spline = CubicSpline(time, velocity_n[:, 1] / rp)
        lon_spline = dlon_spline.antiderivative()

        lla = np.empty((n_points, 3))
        lla[:, 0] = lat
        lla[:, 1] = lon0 + lon_spline(time)
        lla[:, 2] = alt

    lla_inertial = lla.copy()
    lla_inertial[:, 1] += earth.RATE * time
    mat_in = transform.mat_en_from_ll(lla_inertial[:, 0], lla_inertial[:, 1])

    r_i = transform.lla_to_ecef(lla_inertial)
    earth_rate_i = [0, 0, earth.RATE]
    if velocity_n is None:
        v_i_spline = CubicSpline(time, r_i).derivative()
        velocity_n = util.mv_prod(
            mat_in, v_i_spline(time) - np.cross(earth_rate_i, r_i), True)
    else:
        velocity_n = np.asarray(velocity_n, dtype=float)
        v_i = util.mv_prod(mat_in, velocity_n) + np.cross(earth_rate_i, r_i)
        v_i_spline = CubicHermiteSpline(time, r_i, v_i).derivative()

    mat_ib = util.mm_prod(mat_in, transform.mat_from_rph(rph))
    rot_ib_spline = RotationSpline(time, Rotation.from_matrix(mat_ib))

    if imu_time is time:
        lla_imu = lla_inertial
        mat_ib_imu = mat_ib
    else:
        lla_imu = interp1d(time, lla_inertial, axis=0)(imu_time)
        mat_ib_imu = rot_ib_spline(imu_time).as_matrix()
    g_i = earth.gravitation_ecef(lla_imu)

    gyro = rot_ib_spline(imu_time, 1)
    accel = util.mv_prod(mat_ib_imu, v_i_spline(imu_time, 1) - g_i, at=True)

    return (pd.DataFrame(np.hstack([lla, velocity_n, rph]),
                         index=pd.Index(time, name='time'), columns=TRAJECTORY_COLS),
            pd.DataFrame(data=np.hstack((gyro, accel)),
                         index=pd.Index(imu_time, name='time'),
                         columns=GYRO_COLS + ACCEL_COLS))


def generate_sine_velocity_motion(dt, total_time, lla0, velocity_mean,
                                  velocity_change_amplitude=0,
                                  velocity_change_period=60,
                                  velocity_change_phase_offset=[0, 0.5 * np.pi, 0]):
    """Generate trajectory with NED velocity changing as sine.

    The NED velocity changes as::

        V = V_mean + V_ampl * sin(2 * pi * t / period + phase_offset)

    Roll is set to zero, pitch and yaw angles are computed with zero
    lateral and vertical velocity assumptions.

    Parameters
    ----------
    dt : float
        Time step.
    total_time : float
        Total motion time.
    lla0 : array_like, shape (3,)
        Initial latitude, longitude (radians) and altitude.
    velocity_mean : array_like, shape (3,)
        Mean velocity resolved in NED.
    velocity_change_amplitude : array_like, optional
        Velocity change amplitude. Default is 0.
    velocity_change_period : float, optional
        Period of sinusoidal velocity change in seconds. Default is 60.
    velocity_change_phase_offset : array_like, shape (3,), optional
        Phase offset for sinusoid part in radians. Default is [0, pi/2, 0]
        which will create an ellipse for latitude-longitude trajectory when
        the mean velocity is zero.

    Returns
    -------
    trajectory : Trajectory
        Trajectory dataframe with n rows.
    imu : Imu
        IMU dataframe with n rows.
    """
    time = np.arange(0, total_time, dt)
    phase = (2 * np.pi * time[:, None] / velocity_change_period +
             np.asarray(velocity_change_phase_offset))
    velocity_n = (np.atleast_2d(velocity_mean) +
                  np.atleast_2d(velocity_change_amplitude) * np.sin(phase))
    rph = np.zeros_like(velocity_n)
    rph[:, 1] = np.arctan2(-velocity_n[:, 2],
                           np.hypot(velocity_n[:, 0], velocity_n[:, 1]))
    rph[:, 2] = np.arctan2(velocity_n[:, 1], velocity_n[:, 0])
    return generate_imu(time, lla0, rph, velocity_n)


def generate_straight_motion(dt, total_time, lla0, velocity_n):
    """Generate trajectory with constant NED velocity.

    The body is aligned with the velocity vector, so attitude relative to NED
    stays constant.

    Parameters
    ----------
    dt : float
        Time step.
    total_time : float
        Total motion time.
    lla0 : array_like, shape (3,)
        Initial latitude, longitude (radians) and altitude.
    velocity_n : array_like, shape (3,)
        Velocity resolved in NED.

    Returns
    -------
    trajectory : Trajectory
        Trajectory dataframe.
    imu : Imu
        IMU dataframe.
    """
    return generate_sine_velocity_motion(dt, total_time, lla0, velocity_n)


def _sample_times(index, frequency):
    start = index[0]
    n_samples = int(np.floor((index[-1] - start) * frequency + 1e-9)) + 1
    return np.minimum(start + np.arange(n_samples) / frequency, index[-1])


def generate_inertial_stream(trajectory, imu_profile, rng=None):
    """Generate a stream of IMU readings with errors.

    True readings are computed at the profile frequency inside the time span of
    `trajectory`, then fixed bias, Gauss-Markov bias, rate random walk and white
    noise are added to each triad.

    Parameters
    ----------
    trajectory : Trajectory
        Reference trajectory.
    imu_profile : ImuProfile or NormalizedImuProfile
        IMU error profile.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    stream : InertialStream
        Generated readings.
    bias : DataFrame
        Realized biases. Columns are two-level with 'gyro' and 'accel' on the
        first level and 'bias_x', 'bias_y', 'bias_z' on the second.
    """
    rng = check_random_state(rng)
    if isinstance(imu_profile, ImuProfile):
        imu_profile = imu_profile.normalize()
    times = _sample_times(trajectory.index, imu_profile.frequency)
    _, imu = generate_imu(trajectory.index, trajectory[LLA_COLS], trajectory[RPH_COLS],
                          trajectory[VEL_COLS], times)
    imu, gyro_bias, accel_bias = apply_imu_errors(imu, imu_profile, rng)
    return (InertialStream(imu),
            pd.concat({'gyro': gyro_bias, 'accel': accel_bias}, axis='columns'))


def generate_fix_stream(trajectory, gnss_profile, rng=None):
    """Generate a stream of GNSS position and velocity fixes.

    The reference is sampled at the profile frequency, moved to the antenna by
    the lever arm and perturbed by independent normal errors in North, East, Down
    position and NED velocity.

    Parameters
    ----------
    trajectory : Trajectory
        Reference trajectory.
    gnss_profile : GnssProfile
        GNSS error profile.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    FixStream
        Generated fixes.
    """
    rng = check_random_state(rng)
    times = _sample_times(trajectory.index, gnss_profile.freq)
    reference = transform.resample_state(trajectory[TRAJECTORY_COLS], times)

    if np.any(gnss_profile.lever_arm != 0):
        rotation_spline = RotationSpline(
            trajectory.index, Rotation.from_euler('xyz', trajectory[RPH_COLS]))
        rate = pd.DataFrame(rotation_spline(times, 1), index=reference.index,
                            columns=['rate_x', 'rate_y', 'rate_z'])
        reference = transform.translate_trajectory(
            pd.concat([reference, rate], axis='columns'), gnss_profile.lever_arm)

    n_samples = len(times)
    position_error = gnss_profile.position_sd * rng.randn(n_samples, 3)
    velocity_error = gnss_profile.velocity_sd * rng.randn(n_samples, 3)

    fix = pd.DataFrame(index=reference.index, columns=FIX_COLS, dtype=float)
    fix[LLA_COLS] = transform.perturb_lla(reference[LLA_COLS], position_error)
    fix[VEL_COLS] = reference[VEL_COLS].values + velocity_error
    return FixStream(fix, gnss_profile.position_sd, gnss_profile.velocity_sd,
                     gnss_profile.lever_arm)


def generate_pva_error(position_sd, velocity_sd, level_sd, azimuth_sd, rng=None):
    """Generate random position-velocity-attitude error.

    All errors are generated as independent and normally distributed.

    Parameters
    ----------
    position_sd : float
        Position error standard deviation in meters.
    velocity_sd : float
        Velocity error standard deviation in m/s.
    level_sd : float
        Roll and pitch standard deviation in radians.
    azimuth_sd : float
        Yaw standard deviation in radians.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.

    Returns
    -------
    PvaError
        Series containing 9 elements with position-velocity-attitude errors.
    """
    rng = check_random_state(rng)
    result = pd.Series(index=TRAJECTORY_ERROR_COLS, dtype=float)
    result[NED_COLS] = position_sd * rng.randn(3)
    result[VEL_COLS] = velocity_sd * rng.randn(3)
    result[RPH_COLS] = [level_sd, level_sd, azimuth_sd] * rng.randn(3)
    return result


def perturb_pva(pva, pva_error):
    """Apply errors to position-velocity-attitude.

    Parameters
    ----------
    pva : Pva
        Position-velocity-attitude.
    pva_error : PvaError
        Errors of position-velocity-attitude.

    Returns
    -------
    Pva
        Position-velocity-attitude with applied errors.
    """
    result = pva.copy()
    result[LLA_COLS] = transform.perturb_lla(result[LLA_COLS], pva_error[NED_COLS])
    result[VEL_COLS] += pva_error[VEL_COLS]
    result[RPH_COLS] = util.to_pi_range(result[RPH_COLS] + pva_error[RPH_COLS])
    return result
