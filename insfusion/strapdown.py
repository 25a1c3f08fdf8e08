"""Strapdown INS integration algorithms.

This module provides implementation of the classic "strapdown algorithm" to obtain
position, velocity and attitude by integration of IMU readings.
The implementation follows [1]_ and [2]_ with some simplifications.

Attitude is kept as a unit quaternion (scalar last) which rotates vectors from
body to NED frame. The quaternion is renormalized after every step.

Functions
---------
.. autosummary::
    :toctree: generated/

    compute_increments_from_imu

Classes
-------
.. autosummary::
    :toctree: generated/

    Mechanizer

References
----------
.. [1] P. G. Savage, "Strapdown Inertial Navigation Integration Algorithm
       Design Part 1: Attitude Algorithms", Journal of Guidance, Control,
       and Dynamics 1998, Vol. 21, no. 2.
.. [2] P. G. Savage, "Strapdown Inertial Navigation Integration Algorithm
       Design Part 2: Velocity and Position Algorithms", Journal of
       Guidance, Control, and Dynamics 1998, Vol. 21, no. 2.
"""
import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation
from . import transform
from .util import (LLA_COLS, RPH_COLS, VEL_COLS, GYRO_COLS, ACCEL_COLS, THETA_COLS,
                   DV_COLS, TRAJECTORY_COLS)
from ._numba_integrate import integrate


def _compute_increments(dt, gyro_0, gyro_1, accel_0, accel_1):
    b_gyro = gyro_1 - gyro_0
    b_accel = accel_1 - accel_0
    gyro_increment = (gyro_0 + 0.5 * b_gyro) * dt
    accel_increment = (accel_0 + 0.5 * b_accel) * dt
    coning = np.cross(gyro_0, b_gyro) * dt ** 2 / 12
    sculling = (np.cross(gyro_0, b_accel) +
                np.cross(accel_0, b_gyro)) * dt ** 2 / 12
    theta = gyro_increment + coning
    dv = accel_increment + sculling + 0.5 * np.cross(gyro_increment, accel_increment)
    return theta, dv


def compute_increments_from_imu(imu):
    """Compute attitude and velocity increments from IMU readings.

    This function transforms gyro and accelerometer rate readings into
    rotation vectors and velocity increments by applying coning and sculling
    corrections and accounting for IMU rotation during a sampling period.

    The algorithm assumes a linear model for the angular velocity and the
    specific force.

    The number of returned increments is always one less than the number
    of IMU readings.

    Parameters
    ----------
    imu : Imu
        Dataframe with IMU data.

    Returns
    -------
    Increments
        DataFrame containing attitude and velocity increments with one less row than
        the passed `imu`.
    """
    gyro = imu[GYRO_COLS].values
    accel = imu[ACCEL_COLS].values
    dt = np.diff(imu.index).reshape(-1, 1)
    theta, dv = _compute_increments(dt, gyro[:-1], gyro[1:], accel[:-1], accel[1:])
    return pd.DataFrame(data=np.hstack((dt, theta, dv)), index=imu.index[1:],
                        columns=['dt'] + THETA_COLS + DV_COLS)


class Mechanizer:
    """Strapdown INS integration algorithm.

    The position is updated using the trapezoid rule. Radii of curvature and
    gravity are computed at the current position on every step.

    Parameters
    ----------
    pva : Pva
        Initial position-velocity-attitude. Its name is used as the initial time,
        0 is used when it is None.

    Attributes
    ----------
    time : float
        Time of the current state.
    lla : ndarray, shape (3,)
        Latitude, longitude and altitude.
    velocity_n : ndarray, shape (3,)
        Velocity resolved in NED.
    quat_nb : ndarray, shape (4,)
        Body-to-NED unit quaternion, scalar last.
    """
    def __init__(self, pva):
        self.time = 0.0 if pva.name is None else float(pva.name)
        self.lla = np.asarray(pva[LLA_COLS], dtype=float).copy()
        self.velocity_n = np.asarray(pva[VEL_COLS], dtype=float).copy()
        self.quat_nb = transform.quat_from_rph(np.asarray(pva[RPH_COLS], dtype=float))
        self._gyro = None
        self._accel = None

    @property
    def mat_nb(self):
        return Rotation.from_quat(self.quat_nb).as_matrix()

    @property
    def rph(self):
        return transform.quat_to_rph(self.quat_nb)

    def get_pva(self):
        """Get the current position-velocity-attitude as Pva."""
        return pd.Series(np.hstack((self.lla, self.velocity_n, self.rph)),
                         index=TRAJECTORY_COLS, name=self.time)

    def set_state(self, lla, velocity_n, quat_nb):
        """Overwrite the current state, used to apply filter corrections."""
        self.lla = np.asarray(lla, dtype=float).copy()
        self.velocity_n = np.asarray(velocity_n, dtype=float).copy()
        quat_nb = np.asarray(quat_nb, dtype=float)
        self.quat_nb = quat_nb / np.linalg.norm(quat_nb)

    def set_readings(self, gyro, accel):
        """Set the readings at the current time without integration."""
        self._gyro = np.asarray(gyro, dtype=float).copy()
        self._accel = np.asarray(accel, dtype=float).copy()

    def step(self, dt, gyro, accel):
        """Integrate a single inertial sample.

        The readings at the start of the interval are taken from the previous
        call, on the first call the readings are assumed constant over the
        interval.

        Parameters
        ----------
        dt : float
            Time from the previous sample.
        gyro : array_like, shape (3,)
            Bias-corrected angular rate in rad/s at the end of the interval.
        accel : array_like, shape (3,)
            Bias-corrected specific force in m/s^2 at the end of the interval.

        Returns
        -------
        theta : ndarray, shape (3,)
            Rotation vector increment used.
        dv : ndarray, shape (3,)
            Velocity increment used.
        """
        if dt < 0:
            raise ValueError("`dt` must be non-negative")
        gyro = np.asarray(gyro, dtype=float)
        accel = np.asarray(accel, dtype=float)
        gyro_0 = gyro if self._gyro is None else self._gyro
        accel_0 = accel if self._accel is None else self._accel
        self.set_readings(gyro, accel)
        if dt == 0:
            return np.zeros(3), np.zeros(3)

        theta, dv = _compute_increments(dt, gyro_0, gyro, accel_0, accel)

        lla = np.empty((2, 3))
        velocity_n = np.empty((2, 3))
        quat_nb = np.empty((2, 4))
        lla[0] = self.lla
        velocity_n[0] = self.velocity_n
        quat_nb[0] = self.quat_nb
        integrate(np.array([dt]), lla, velocity_n, quat_nb, theta.reshape(1, 3),
                  dv.reshape(1, 3), 0)
        self.lla = lla[1]
        self.velocity_n = velocity_n[1]
        self.quat_nb = quat_nb[1]
        self.time += dt
        return theta, dv

    def integrate(self, imu):
        """Integrate a batch of IMU readings.

        The first reading must correspond to the current time. The integration
        continues from the current state.

        Parameters
        ----------
        imu : Imu
            IMU readings with columns 'gyro_x', 'gyro_y', 'gyro_z', 'accel_x',
            'accel_y', 'accel_z' indexed by time.

        Returns
        -------
        Trajectory
            Computed trajectory including the initial point.
        """
        if not np.isclose(imu.index[0], self.time, rtol=0, atol=1e-9):
            raise ValueError("The first IMU reading must correspond to the "
                             "current time")
        increments = compute_increments_from_imu(imu)
        n = len(imu)

        lla = np.empty((n, 3))
        velocity_n = np.empty((n, 3))
        quat_nb = np.empty((n, 4))
        lla[0] = self.lla
        velocity_n[0] = self.velocity_n
        quat_nb[0] = self.quat_nb
        integrate(np.ascontiguousarray(increments.dt), lla, velocity_n, quat_nb,
                  np.ascontiguousarray(increments[THETA_COLS]),
                  np.ascontiguousarray(increments[DV_COLS]), 0)

        self.lla = lla[-1].copy()
        self.velocity_n = velocity_n[-1].copy()
        self.quat_nb = quat_nb[-1].copy()
        self.time = float(imu.index[-1])
        self.set_readings(imu[GYRO_COLS].values[-1], imu[ACCEL_COLS].values[-1])

        rph = transform.quat_to_rph(quat_nb)
        return pd.DataFrame(np.hstack((lla, velocity_n, rph)),
                            index=pd.Index(imu.index, name='time'),
                            columns=TRAJECTORY_COLS)
