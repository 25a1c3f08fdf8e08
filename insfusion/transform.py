"""Coordinate and attitude transformations, unit conversions and interpolation.

Constants
----------
.. autosummary::
    :toctree: generated

    DEG_TO_RAD
    DH_TO_RS
    DS_TO_RS
    DRH_TO_RRS
    MRH_TO_MRS
    G0
    MG_TO_MSS
    KNOT_TO_MS

Functions
---------
.. autosummary::
    :toctree: generated

    lla_to_ecef
    lla_to_ned
    perturb_lla
    translate_trajectory
    compute_lla_difference
    resample_state
    interpolate_to_reference
    compute_state_difference
    mat_en_from_ll
    mat_from_rph
    mat_to_rph
    quat_from_rph
    quat_to_rph
"""
import numpy as np
import pandas as pd
from scipy.interpolate import interp1d
from scipy.spatial.transform import Rotation, Slerp
from .util import LLA_COLS, VEL_COLS, RPH_COLS, NED_COLS, RATE_COLS
from . import earth, util

#: Degrees to radians.
DEG_TO_RAD = np.pi / 180
#: Degrees per hour to radians per second.
DH_TO_RS = DEG_TO_RAD / 3600
#: Degrees per second to radians per second.
DS_TO_RS = DEG_TO_RAD
#: Degrees per root-hour to radians per root-second.
DRH_TO_RRS = DEG_TO_RAD / 60
#: Meters per second per root-hour to meters per second per root-second.
MRH_TO_MRS = 1 / 60
#: Standard gravity used to express accelerometer errors in g units.
G0 = 9.81
#: Milli-g to meters per second squared.
MG_TO_MSS = G0 * 1e-3
#: Knots to meters per second.
KNOT_TO_MS = 0.514444


class InterpolationRangeError(ValueError):
    """Requested time lies outside the time span of the interpolated series."""


def lla_to_ecef(lla):
    """Convert latitude, longitude, altitude into ECEF Cartesian coordinates.

    Parameters
    ----------
    lla : array_like, shape (3,) or (n, 3)
        Latitude, longitude and altitude values.

    Returns
    -------
    r_e : ndarray, shape (3,) or (n, 3)
        Cartesian coordinates in ECEF frame.
    """
    lat, lon, alt = np.asarray(lla).T

    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    sin_lon = np.sin(lon)
    cos_lon = np.cos(lon)

    _, re, _ = earth.principal_radii(lat, 0)
    r_e = np.empty((3,) + lat.shape)
    r_e[0] = (re + alt) * cos_lat * cos_lon
    r_e[1] = (re + alt) * cos_lat * sin_lon
    r_e[2] = ((1 - earth.E2) * re + alt) * sin_lat

    return r_e.transpose()


def lla_to_ned(lla, lla_origin=None):
    """Convert lla into NED Cartesian coordinates.

    Parameters
    ----------
    lla : array_like, shape (n, 3)
        Latitude, longitude and altitude values. If DataFrame (with columns 'lat',
        'lon', 'alt) the result will be DataFrame with columns 'north', 'east', 'down'.
    lla_origin : array_like with shape (3,) or None, optional
        Values of latitude, longitude and latitude of the origin point.
        If None (default), the first row in `lla` will be used.

    Returns
    -------
    ndarray of DataFrame
        NED coordinates.
    """
    is_dataframe = isinstance(lla, pd.DataFrame)
    if is_dataframe:
        time = lla.index
        lla = lla[LLA_COLS].values
    else:
        lla = np.asarray(lla)
    if lla_origin is None:
        lla_origin = lla[0]
    r_e = lla_to_ecef(lla) - lla_to_ecef(lla_origin)
    mat_en = mat_en_from_ll(lla_origin[0], lla_origin[1])
    r_n = util.mv_prod(mat_en, r_e, True)
    return pd.DataFrame(r_n, index=time, columns=NED_COLS) if is_dataframe else r_n


def perturb_lla(lla, dr_n):
    """Perturb latitude, longitude and altitude by displacements in meters.

    Note that this computation is approximate in nature and makes a good
    sense only if displacements are significantly less than Earth radius.

    Parameters
    ----------
    lla : array_like, shape (3,) or (n, 3)
        Latitude, longitude and altitude.
    dr_n : array_like, shape (3,) or (n, 3)
        Perturbation values in meters resolved in NED frame.

    Returns
    -------
    lla_new : ndarray, shape (3,) or (n, 3)
        Perturbed values of latitude, longitude and altitude.
    """
    lla = np.asarray(lla, dtype=float)
    dr_n = np.asarray(dr_n, dtype=float)
    return_single = lla.ndim == 1 and dr_n.ndim == 1

    lla = np.atleast_2d(lla).copy()
    dr_n = np.atleast_2d(dr_n)

    rn, _, rp = earth.principal_radii(lla[:, 0], lla[:, 2])

    lla[:, 0] += dr_n[:, 0] / rn
    lla[:, 1] += dr_n[:, 1] / rp
    lla[:, 2] -= dr_n[:, 2]

    return lla[0] if return_single else lla


def translate_trajectory(trajectory, translation_b):
    """Translate trajectory by a vector expressed in body frame.

    Used to move a trajectory from the IMU to the antenna by the lever arm.

    Parameters
    ----------
    trajectory : Trajectory or Pva
        Either trajectory or position-velocity-attitude.
        If has columns 'rate_x', 'rate_y', 'rate_z', velocity will be adjusted by
        rotation effect.
    translation_b : array_like, shape (3,)
        Translation vector expressed in body frame.

    Returns
    -------
    Trajectory or Pva
        Translated trajectory or position-velocity-attitude.
    """
    mat_nb = mat_from_rph(trajectory[RPH_COLS])
    result = trajectory.copy()
    result[LLA_COLS] = perturb_lla(result[LLA_COLS],
                                   util.mv_prod(mat_nb, translation_b))
    if all(col in trajectory for col in RATE_COLS):
        result[VEL_COLS] += util.mv_prod(
            mat_nb, np.cross(trajectory[RATE_COLS], translation_b))
    return result


def compute_lla_difference(lla1, lla2):
    """Compute difference between lla points resolved in NED in meters.

    Parameters
    ----------
    lla1, lla2 : array_like
        Points with latitude, longitude and altitude.

    Returns
    -------
    dr_n : ndarray
        Difference in meters resolved in NED.
    """
    lla1 = np.asarray(lla1, dtype=float)
    lla2 = np.asarray(lla2, dtype=float)
    single = lla1.ndim == 1 and lla2.ndim == 1
    lla1 = np.atleast_2d(lla1)
    lla2 = np.atleast_2d(lla2)
    rn, _, rp = earth.principal_radii(0.5 * (lla1[:, 0] + lla2[:, 0]),
                                      0.5 * (lla1[:, 2] + lla2[:, 2]))
    diff = lla1 - lla2
    result = np.empty_like(diff)
    result[:, 0] = diff[:, 0] * rn
    result[:, 1] = diff[:, 1] * rp
    result[:, 2] = -diff[:, 2]
    return result[0] if single else result


def _has_rph(data):
    return all(col in data for col in RPH_COLS)


def resample_state(state, times):
    """Compute state values at new set of time values.

    Piecewise linear interpolation is used with special care for rotation
    ('roll', 'pitch', 'yaw' columns), for which SLERP is used. The
    interpolation never extrapolates.

    Parameters
    ----------
    state : DataFrame
        State data indexed by time.
    times : array_like
        Values of time at which compute new state values.

    Returns
    -------
    DataFrame
        Resampled state values.

    Raises
    ------
    InterpolationRangeError
        If any of `times` is outside of the time span of `state`.
    """
    times = np.sort(np.asarray(times, dtype=float))
    if len(times) > 0 and (times[0] < state.index[0] or times[-1] > state.index[-1]):
        raise InterpolationRangeError(
            f"Requested times [{times[0]}, {times[-1]}] are outside of the "
            f"series range [{state.index[0]}, {state.index[-1]}]")

    result = pd.DataFrame(index=pd.Index(times, name=state.index.name))
    if _has_rph(state):
        slerp = Slerp(state.index, Rotation.from_euler('xyz', state[RPH_COLS]))
        result[RPH_COLS] = slerp(times).as_euler('xyz')

    other_columns = state.columns.difference(RPH_COLS)
    if len(other_columns) > 0:
        interpolator = interp1d(state.index, state[other_columns].values, axis=0)
        result[other_columns] = interpolator(times)
    return result[state.columns]


def interpolate_to_reference(state, reference):
    """Resample a series onto the time base of a reference series.

    The reference is first trimmed to the time span of `state`, so the
    resampling never extrapolates.

    Parameters
    ----------
    state : DataFrame
        Series to resample, for example a navigation solution.
    reference : DataFrame
        Reference series, for example a true trajectory.

    Returns
    -------
    state_resampled : DataFrame
        `state` resampled at the retained reference times.
    reference_trimmed : DataFrame
        Reference restricted to the time span of `state`.
    """
    index = reference.index
    mask = (index >= state.index[0]) & (index <= state.index[-1])
    reference_trimmed = reference.loc[mask]
    return resample_state(state, reference_trimmed.index), reference_trimmed


def compute_state_difference(first, second):
    """Compute difference between two state data frames indexed by time.

    If both inputs are DataFrame, the function synchronizes data to the common time
    index using `resample_state`. The interpolation is done for the dataframe with
    less frequent data (to reduce average interpolation period).

    For columns 'lat', 'lon', 'alt', the difference is computed in meters
    resolved in NED frame. Attitude angle differences are wrapped to [-pi, pi].

    Parameters
    ----------
    first, second : DataFrame or Series
        State data to compute the difference between.

    Returns
    -------
    DataFrame or Series
        Computed difference.
    """
    def has_lla(data):
        return all(col in data for col in LLA_COLS)

    if isinstance(first, pd.DataFrame) and isinstance(second, pd.DataFrame):
        if np.median(np.diff(first.index)) < np.median(np.diff(second.index)):
            result_sign = -1.0
            first, second = second, first
        else:
            result_sign = 1.0

        index = first.index
        index = index[(index >= second.index[0]) & (index <= second.index[-1])]
        columns = first.columns.intersection(second.columns)

        first = first.loc[index, columns]
        second = resample_state(second[columns], index)
    elif isinstance(first, pd.Series) and isinstance(second, pd.Series):
        result_sign = 1.0
    else:
        raise ValueError("Both inputs must be either DataFrame or Series")

    difference = first - second
    if has_lla(difference):
        rn, _, rp = earth.principal_radii(0.5 * (first.lat + second.lat),
                                          0.5 * (first.alt + second.alt))
        difference.lat *= rn
        difference.lon *= rp
        difference.alt *= -1
        difference = difference.rename(
            {'lat': 'north', 'lon': 'east', 'alt': 'down'},
            axis=1 if isinstance(difference, pd.DataFrame) else 0)

    if _has_rph(difference):
        difference[RPH_COLS] = util.to_pi_range(difference[RPH_COLS])

    return result_sign * difference


def mat_en_from_ll(lat, lon):
    """Create a rotation matrix projecting from ECEF to NED frame.

    Parameters
    ----------
    lat, lon : float or array_like, shape (n,)
        Latitude and longitude.

    Returns
    -------
    ndarray, shape (3, 3) or (n, 3, 3)
        Rotation matrices.
    """
    lat = np.asarray(lat)
    lon = np.asarray(lon)

    if lat.ndim == 0 and lon.ndim == 0:
        return Rotation.from_euler('ZY', [lon, -0.5 * np.pi - lat]).as_matrix()

    lat = np.atleast_1d(lat)
    lon = np.atleast_1d(lon)

    n = max(len(lat), len(lon))
    angles = np.empty((n, 2))
    angles[:, 0] = lon
    angles[:, 1] = -0.5 * np.pi - lat
    return Rotation.from_euler('ZY', angles).as_matrix()


def mat_from_rph(rph):
    """Create a body-to-NED rotation matrix from roll, pitch and yaw.

    Parameters
    ----------
    rph : array_like, shape (3,) or (n, 3)
        Roll, pitch and yaw in radians.

    Returns
    -------
    ndarray, shape (3, 3) or (n, 3, 3)
        Rotation matrices.
    """
    return Rotation.from_euler('xyz', rph).as_matrix()


def mat_to_rph(mat):
    """Convert a rotation matrix to roll, pitch and yaw angles."""
    return Rotation.from_matrix(mat).as_euler('xyz')


def quat_from_rph(rph):
    """Create a body-to-NED unit quaternion (scalar last) from roll, pitch and yaw."""
    return Rotation.from_euler('xyz', rph).as_quat()


def quat_to_rph(quat):
    """Convert a body-to-NED quaternion (scalar last) to roll, pitch and yaw."""
    return Rotation.from_quat(quat).as_euler('xyz')
