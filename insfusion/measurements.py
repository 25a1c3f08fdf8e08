r"""GNSS fix description and its measurement model.

In context of inertial navigation measurements are obtained from sensors other than
IMU. In a Kalman filter a measurement is processed by forming a difference between
the predicted and the measured vectors and linearly relating it to the error vector::

    z = Z_ins - Z = H @ x + v

Where

    - ``Z`` - measured vector
    - ``Z_ins`` - predicted vector using the current INS state
    - ``z`` - innovation vector
    - ``x`` - error state vector
    - ``H`` - measurement Jacobian
    - ``v`` - noise vector, assumed to have zero mean and known variance

The only aiding source is a GNSS receiver providing position and NED velocity
fixes of its antenna.

Refer to [1]_ and [2]_ for the discussion of measurements in navigation and in
Kalman filtering in general.

Classes
-------
.. autosummary::
    :toctree: generated/

    GnssProfile
    NormalizedGnssProfile
    PositionVelocity

Constants
---------
.. autosummary::
    :toctree: generated/

    GARMIN_GPS18X

References
----------
.. [1] P. D. Groves, "Principles of GNSS, Inertial, and Multisensor Integrated
       Navigation Systems", 2nd edition
.. [2] P\. S\. Maybeck, "Stochastic Models, Estimation and Control", volume 1
"""
from dataclasses import dataclass
import numpy as np
from . import earth, transform


def _as_vector(value, name):
    value = np.array(value, dtype=float)
    if value.ndim == 0:
        value = np.resize(value, 3)
    if value.shape != (3,):
        raise ValueError(f"`{name}` might be float or array with shape (3,)")
    value.setflags(write=False)
    return value


@dataclass(frozen=True)
class GnssProfile:
    """GNSS receiver error profile.

    Parameters
    ----------
    position_sd : array_like, shape (3,) or float
        Position error standard deviation in meters for North, East and Down axes.
    velocity_sd : array_like, shape (3,) or float
        Velocity error standard deviation in m/s for North, East and Down axes.
    lever_arm : array_like, shape (3,)
        Vector from IMU to antenna expressed in body frame in meters.
    freq : float
        Fix frequency in Hz.
    """
    position_sd: np.ndarray
    velocity_sd: np.ndarray
    lever_arm: np.ndarray
    freq: float

    def __post_init__(self):
        for name in ['position_sd', 'velocity_sd', 'lever_arm']:
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))
        if np.any(self.position_sd < 0) or np.any(self.velocity_sd < 0):
            raise ValueError("Standard deviations must be non-negative")
        if not self.freq > 0:
            raise ValueError("`freq` must be positive")

    def normalize(self, lat, alt):
        """Compute position errors in geodetic units at the given location.

        Parameters
        ----------
        lat, alt : float
            Latitude in radians and altitude in meters.

        Returns
        -------
        NormalizedGnssProfile
        """
        rn, _, rp = earth.principal_radii(lat, alt)
        lla_sd = np.array([self.position_sd[0] / rn,
                           self.position_sd[1] / rp,
                           self.position_sd[2]])
        lla_sd.setflags(write=False)
        return NormalizedGnssProfile(position_sd=self.position_sd,
                                     velocity_sd=self.velocity_sd,
                                     lever_arm=self.lever_arm,
                                     frequency=float(self.freq),
                                     lla_sd=lla_sd)


@dataclass(frozen=True)
class NormalizedGnssProfile:
    """GNSS receiver error profile with position errors in geodetic units.

    Created by `GnssProfile.normalize`.

    Parameters
    ----------
    position_sd : ndarray, shape (3,)
        Position error standard deviation in meters (NED).
    velocity_sd : ndarray, shape (3,)
        Velocity error standard deviation in m/s (NED).
    lever_arm : ndarray, shape (3,)
        Vector from IMU to antenna in body frame.
    frequency : float
        Fix frequency in Hz.
    lla_sd : ndarray, shape (3,)
        Standard deviations of latitude and longitude in radians and of altitude
        in meters.
    """
    position_sd: np.ndarray
    velocity_sd: np.ndarray
    lever_arm: np.ndarray
    frequency: float
    lla_sd: np.ndarray

    @property
    def dt(self):
        return 1.0 / self.frequency


class PositionVelocity:
    """Measurement of antenna position and NED velocity from a GNSS fix.

    The INS prediction is moved to the antenna by the lever arm before forming the
    difference::

        r_ins = r + C @ l
        V_ins = V + C @ (omega x l)

    where ``C`` is the body-to-NED matrix, ``l`` is the lever arm and ``omega`` is
    the body angular rate.

    Parameters
    ----------
    position_sd : array_like, shape (3,)
        Position accuracy in meters for North, East and Down.
    velocity_sd : array_like, shape (3,)
        Velocity accuracy in m/s for North, East and Down.
    lever_arm : array_like, shape (3,) or None, optional
        Vector from IMU to antenna expressed in body frame. If None (default),
        assumed to be zero.

    Attributes
    ----------
    position_sd, velocity_sd : ndarray, shape (3,)
        Measurement accuracies.
    R : ndarray, shape (6, 6)
        Measurement noise covariance.
    lever_arm : ndarray, shape (3,)
        Lever arm.
    """
    def __init__(self, position_sd, velocity_sd, lever_arm=None):
        self.position_sd = np.resize(np.asarray(position_sd, dtype=float), 3)
        self.velocity_sd = np.resize(np.asarray(velocity_sd, dtype=float), 3)
        self.R = np.diag(np.hstack((self.position_sd ** 2, self.velocity_sd ** 2)))
        self.lever_arm = (np.zeros(3) if lever_arm is None
                          else np.asarray(lever_arm, dtype=float))

    def compute_matrices(self, fix, lla, velocity_n, mat_nb, rate_b, error_model):
        """Compute matrices for a single linearized measurement.

        Parameters
        ----------
        fix : array_like, shape (6,)
            Measured latitude, longitude, altitude, VN, VE, VD.
        lla : ndarray, shape (3,)
            INS latitude, longitude and altitude at the fix time.
        velocity_n : ndarray, shape (3,)
            INS velocity at the fix time.
        mat_nb : ndarray, shape (3, 3)
            INS body-to-NED matrix at the fix time.
        rate_b : ndarray, shape (3,)
            Body angular rate.
        error_model : `insfusion.error_model.InsErrorModel`
            Error model.

        Returns
        -------
        z : ndarray, shape (6,)
            Innovation vector, INS minus fix.
        H : ndarray, shape (6, n_states)
            Measurement matrix.
        R : ndarray, shape (6, 6)
            Measurement noise covariance.
        """
        fix = np.asarray(fix, dtype=float)
        z_position = (transform.compute_lla_difference(lla, fix[:3]) +
                      mat_nb @ self.lever_arm)
        z_velocity = (velocity_n + mat_nb @ np.cross(rate_b, self.lever_arm) -
                      fix[3:])
        H = np.vstack((
            error_model.position_error_jacobian(mat_nb, self.lever_arm),
            error_model.ned_velocity_error_jacobian(velocity_n, mat_nb, rate_b,
                                                    self.lever_arm)))
        return np.hstack((z_position, z_velocity)), H, self.R


#: Garmin GPS 18x receiver at 5 Hz.
GARMIN_GPS18X = GnssProfile(position_sd=[0.5, 0.5, 1.0],
                            velocity_sd=0.1 * transform.KNOT_TO_MS,
                            lever_arm=[0.0, 0.0, 0.0], freq=5.0)
