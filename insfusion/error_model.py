"""INS error model to use in navigation Kalman filters.

An INS error model is a system of non-stationary (depends on the trajectory) linear
differential equations which describe time evolution of INS errors.

The error vector has 15 states: 3 for attitude, velocity and position errors
followed by 3 residual gyro biases and 3 residual accelerometer biases.
The details are given in class `InsErrorModel`.

Classes
-------
.. autosummary::
    :toctree: generated/

    InsErrorModel
"""
import numpy as np
from scipy.spatial.transform import Rotation
from . import earth, util, transform


def _phi_to_delta_rph(rph):
    rph = np.asarray(rph)
    single = rph.ndim == 1
    rph = np.atleast_2d(rph)
    result = np.zeros((len(rph), 3, 3))

    sin = np.sin(rph)
    cos = np.cos(rph)

    result[:, 0, 0] = -cos[:, 2] / cos[:, 1]
    result[:, 0, 1] = -sin[:, 2] / cos[:, 1]
    result[:, 1, 0] = sin[:, 2]
    result[:, 1, 1] = -cos[:, 2]
    result[:, 2, 0] = -cos[:, 2] * sin[:, 1] / cos[:, 1]
    result[:, 2, 1] = -sin[:, 2] * sin[:, 1] / cos[:, 1]
    result[:, 2, 2] = -1

    return result[0] if single else result


class InsErrorModel:
    """INS error model with sensor bias states.

    The "modified phi-angle" model proposed in [1]_ is used. The key feature of it is
    that the velocity error is measured relative to the true velocity resolved in the
    "platform" frame which eliminates specific force from the system matrix.

    Each gyro and accelerometer bias is modelled as a first-order Gauss-Markov
    process according to `TriadErrors.bias_model`. The bias states are residual
    errors of the current bias estimates.

    Parameters
    ----------
    gyro_errors, accel_errors : `insfusion.inertial_sensor.TriadErrors`
        Errors of gyros and accelerometers.
    dt : float
        IMU sampling period.

    Attributes
    ----------
    states : list of str
        Names of the states.
    n_states : int
        Number of states, always 15.
    P0_gyro, P0_accel : ndarray, shape (3, 3)
        Initial covariance of gyro and accelerometer biases.

    References
    ----------
    .. [1] Bruno M. Scherzinger and D.Blake Reid "Modified Strapdown Inertial
           Navigator Error Models"
    """
    PHI1 = 0
    PHI2 = 1
    PHI3 = 2
    DV1 = 3
    DV2 = 4
    DV3 = 5
    DR1 = 6
    DR2 = 7
    DR3 = 8
    PHI = [PHI1, PHI2, PHI3]
    DV = [DV1, DV2, DV3]
    DR = [DR1, DR2, DR3]
    BG = [9, 10, 11]
    BA = [12, 13, 14]
    NAV = PHI + DV + DR

    DRN = 0
    DRE = 1
    DRD = 2
    DVN = 3
    DVE = 4
    DVD = 5
    DROLL = 6
    DPITCH = 7
    DYAW = 8
    DR_OUT = [DRN, DRE, DRD]
    DV_OUT = [DVN, DVE, DVD]
    DRPH = [DROLL, DPITCH, DYAW]

    def __init__(self, gyro_errors, accel_errors, dt):
        self.states = ['PHI1', 'PHI2', 'PHI3', 'DV1', 'DV2', 'DV3',
                       'DR1', 'DR2', 'DR3', 'BG1', 'BG2', 'BG3',
                       'BA1', 'BA2', 'BA3']
        self.F_gyro, q_gyro, self.P0_gyro, v_gyro = gyro_errors.bias_model(dt)
        self.F_accel, q_accel, self.P0_accel, v_accel = accel_errors.bias_model(dt)
        self._output_noise = np.hstack((v_gyro, v_accel)) ** 2
        self._bias_noise = np.hstack((q_gyro, q_accel)) ** 2

    @property
    def n_states(self):
        return len(self.states)

    def system_matrices(self, lla, velocity_n, mat_nb):
        """Compute matrices which govern the error model differential equations.

        The system of differential equations has the form::

            dx/dt = F @ x + w, with w ~ white noise with PSD matrix Q

        Parameters
        ----------
        lla : array_like, shape (3,)
            Latitude, longitude and altitude.
        velocity_n : array_like, shape (3,)
            Velocity resolved in NED.
        mat_nb : array_like, shape (3, 3)
            Body-to-NED rotation matrix.

        Returns
        -------
        F : ndarray, shape (15, 15)
            Error dynamics matrix.
        Q : ndarray, shape (15, 15)
            Continuous process noise PSD matrix.
        """
        lat, _, alt = lla
        V_skew = util.skew_matrix(velocity_n)
        R = earth.curvature_matrix(lat, alt)
        Omega_n = earth.rate_n(lat)
        rho_n = R @ velocity_n
        g_n = earth.gravity_n(lat, alt)

        F = np.zeros((15, 15))
        F[np.ix_(self.DR, self.DV)] = np.eye(3)
        F[np.ix_(self.DR, self.PHI)] = V_skew

        F[np.ix_(self.DV, self.DV)] = -util.skew_matrix(2 * Omega_n + rho_n)
        F[np.ix_(self.DV, self.PHI)] = -util.skew_matrix(g_n)
        F[self.DV3, self.DR3] = 2 * earth.gravity(lat, 0) / earth.A

        F[np.ix_(self.PHI, self.DR)] = util.skew_matrix(Omega_n) @ R
        F[np.ix_(self.PHI, self.DV)] = R
        F[np.ix_(self.PHI, self.PHI)] = -util.skew_matrix(rho_n + Omega_n) + R @ V_skew

        B_gyro = np.zeros((15, 3))
        B_gyro[self.DV] = V_skew @ mat_nb
        B_gyro[self.PHI] = -mat_nb
        B_accel = np.zeros((15, 3))
        B_accel[self.DV] = mat_nb

        F[:, self.BG] = B_gyro
        F[:, self.BA] = B_accel
        F[np.ix_(self.BG, self.BG)] = self.F_gyro
        F[np.ix_(self.BA, self.BA)] = self.F_accel

        G = np.hstack((B_gyro, B_accel))
        Q = G @ np.diag(self._output_noise) @ G.T
        Q[self.BG + self.BA, self.BG + self.BA] += self._bias_noise

        return F, Q

    def _transform_to_output(self, velocity_n, rph):
        velocity_n = np.asarray(velocity_n)
        single = velocity_n.ndim == 1
        velocity_n = np.atleast_2d(velocity_n)
        rph = np.atleast_2d(rph)

        result = np.zeros((len(velocity_n), 9, 9))
        samples = np.arange(len(velocity_n))
        result[np.ix_(samples, self.DR_OUT, self.DR)] = np.eye(3)
        result[np.ix_(samples, self.DV_OUT, self.DV)] = np.eye(3)
        result[np.ix_(samples, self.DV_OUT, self.PHI)] = util.skew_matrix(velocity_n)
        result[np.ix_(samples, self.DRPH, self.PHI)] = _phi_to_delta_rph(rph)

        return result[0] if single else result

    def transform_to_output(self, velocity_n, rph):
        """Compute matrix transforming the navigation states into output states.

        Output states are comprised of NED position errors, NED velocity errors,
        roll, pitch and yaw errors.

        Parameters
        ----------
        velocity_n : array_like, shape (3,) or (n, 3)
            Velocity resolved in NED.
        rph : array_like, shape (3,) or (n, 3)
            Roll, pitch and yaw.

        Returns
        -------
        ndarray, shape (9, 9) or (n, 9, 9)
            Transformation matrix or matrices acting on the first 9 states.
        """
        return self._transform_to_output(velocity_n, rph)

    def transform_to_internal(self, velocity_n, rph):
        """Compute matrix transforming the output states into navigation states.

        Parameters
        ----------
        velocity_n : array_like, shape (3,)
            Velocity resolved in NED.
        rph : array_like, shape (3,)
            Roll, pitch and yaw.

        Returns
        -------
        ndarray, shape (9, 9)
            Transformation matrix.
        """
        return np.linalg.inv(self._transform_to_output(velocity_n, rph))

    def initial_covariance(self, velocity_n, rph, position_sd, velocity_sd,
                           attitude_sd):
        """Compute the initial covariance matrix.

        Parameters
        ----------
        velocity_n : array_like, shape (3,)
            Initial velocity.
        rph : array_like, shape (3,)
            Initial roll, pitch and yaw.
        position_sd : array_like, shape (3,)
            Position standard deviations in meters for North, East, Down.
        velocity_sd : array_like, shape (3,)
            Velocity standard deviations in m/s for North, East, Down.
        attitude_sd : array_like, shape (3,)
            Roll, pitch and yaw standard deviations in radians.

        Returns
        -------
        ndarray, shape (15, 15)
        """
        P_out = np.diag(np.hstack((np.resize(position_sd, 3),
                                   np.resize(velocity_sd, 3),
                                   np.resize(attitude_sd, 3))) ** 2)
        T = self.transform_to_internal(velocity_n, rph)
        P = np.zeros((15, 15))
        P[np.ix_(self.NAV, self.NAV)] = T @ P_out @ T.T
        P[np.ix_(self.BG, self.BG)] = self.P0_gyro
        P[np.ix_(self.BA, self.BA)] = self.P0_accel
        return util.symmetrize(P)

    def correct_state(self, lla, velocity_n, quat_nb, x):
        """Correct navigation state with estimated errors.

        Parameters
        ----------
        lla : ndarray, shape (3,)
            Latitude, longitude and altitude.
        velocity_n : ndarray, shape (3,)
            Velocity resolved in NED.
        quat_nb : ndarray, shape (4,)
            Body-to-NED quaternion, scalar last.
        x : ndarray, shape (15,)
            Error vector.

        Returns
        -------
        lla, velocity_n, quat_nb
            Corrected values, the quaternion is normalized.
        """
        rot_tp = Rotation.from_rotvec(x[self.PHI])
        lla = transform.perturb_lla(lla, -x[self.DR])
        velocity_n = rot_tp.apply(velocity_n - x[self.DV])
        quat_nb = (rot_tp * Rotation.from_quat(quat_nb)).as_quat()
        return lla, velocity_n, quat_nb / np.linalg.norm(quat_nb)

    def position_error_jacobian(self, mat_nb, imu_to_antenna_b=None):
        """Compute position error Jacobian matrix.

        This is the matrix which linearly relates the position error in
        NED frame and the error state vector.

        Parameters
        ----------
        mat_nb : ndarray, shape (3, 3)
            Body-to-NED rotation matrix.
        imu_to_antenna_b : array_like, shape (3,) or None, optional
            Vector from IMU to antenna (measurement point) expressed in body
            frame. If None, assumed to be zero.

        Returns
        -------
        ndarray, shape (3, 15)
        """
        result = np.zeros((3, 15))
        result[:, self.DR] = np.eye(3)
        if imu_to_antenna_b is not None:
            result[:, self.PHI] = util.skew_matrix(mat_nb @ imu_to_antenna_b)
        return result

    def ned_velocity_error_jacobian(self, velocity_n, mat_nb, rate_b=None,
                                    imu_to_antenna_b=None):
        """Compute NED velocity error Jacobian matrix.

        This is the matrix which linearly relates the velocity error in
        NED frame and the error state vector.

        Parameters
        ----------
        velocity_n : ndarray, shape (3,)
            Velocity resolved in NED.
        mat_nb : ndarray, shape (3, 3)
            Body-to-NED rotation matrix.
        rate_b : array_like, shape (3,) or None, optional
            Body angular rate. Required to account for `imu_to_antenna_b`.
        imu_to_antenna_b : array_like, shape (3,) or None, optional
            Vector from IMU to antenna (measurement point) expressed in body
            frame. If None (default), assumed to be zero.

        Returns
        -------
        ndarray, shape (3, 15)
        """
        result = np.zeros((3, 15))
        result[:, self.DV] = np.eye(3)
        velocity_n = np.array(velocity_n, dtype=float)
        if imu_to_antenna_b is not None and rate_b is not None:
            velocity_n += mat_nb @ np.cross(rate_b, imu_to_antenna_b)
        result[:, self.PHI] = util.skew_matrix(velocity_n)
        return result
