import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
from scipy.spatial.transform import Rotation
from insfusion import earth, sim, transform, util
from insfusion.transform import DEG_TO_RAD
from insfusion.util import LLA_COLS, NED_COLS, VEL_COLS, RPH_COLS, GYRO_COLS, RATE_COLS


def test_lla_to_ecef():
    r_e = transform.lla_to_ecef([0, 0, 10])
    assert_allclose(r_e, [earth.A + 10, 0, 0])

    r_e = transform.lla_to_ecef([-0.5 * np.pi, 0, -10])
    b = (1 - earth.E2) ** 0.5 * earth.A
    assert_allclose(r_e, [0, 0, -b + 10], atol=1e-9)

    r_e = transform.lla_to_ecef([[0, 0, 10], [-0.5 * np.pi, 0, -10]])
    assert_allclose(r_e, [[earth.A + 10, 0, 0], [0, 0, -b + 10]], atol=1e-9)


def test_lla_to_ned():
    lla = [[0, 0, 1000], [0.5 * np.pi, 0.5 * np.pi, 0], [0, -0.5 * np.pi, -1000]]
    ned = transform.lla_to_ned(lla)
    a = earth.A + 1000
    b = (1 - earth.E2) ** 0.5 * earth.A
    expected = [[0, 0, 0], [b, 0, a], [0, -earth.A + 1000, a]]
    assert_allclose(ned, expected, atol=1e-8)
    assert isinstance(ned, np.ndarray)

    lla = pd.DataFrame(data=lla, columns=LLA_COLS)
    ned = transform.lla_to_ned(lla)
    expected = pd.DataFrame(data=expected, columns=NED_COLS)
    assert_allclose(ned, expected, atol=1e-8)
    assert isinstance(ned, pd.DataFrame)


def test_perturb_lla():
    lla = [40 * DEG_TO_RAD, 50 * DEG_TO_RAD, 0]
    lla_new = transform.perturb_lla(lla, [10, -20, 5])
    assert lla_new[0] > lla[0]
    assert lla_new[1] < lla[1]
    assert_allclose(lla_new[2], -5)
    lla_back = transform.perturb_lla(lla_new, [-10, 20, -5])
    assert_allclose(lla_back, lla, rtol=1e-11, atol=1e-11)

    lla = [[40 * DEG_TO_RAD, 50 * DEG_TO_RAD, 0],
           [-40 * DEG_TO_RAD, 50 * DEG_TO_RAD, 10]]
    lla_new = transform.perturb_lla(lla, [10, -20, 5])
    lla_back = transform.perturb_lla(lla_new, [-10, 20, -5])
    assert_allclose(lla_back, lla, rtol=1e-11, atol=1e-11)


def test_compute_lla_difference():
    lla0 = [40 * DEG_TO_RAD, 50 * DEG_TO_RAD, 0]
    lla1 = transform.perturb_lla(lla0, [10, -20, 5])
    ned = transform.compute_lla_difference(lla1, lla0)
    assert_allclose(ned, [10, -20, 5], atol=1e-4)

    lla0 = [[40 * DEG_TO_RAD, 50 * DEG_TO_RAD, 0],
            [-40 * DEG_TO_RAD, 50 * DEG_TO_RAD, 10]]
    lla1 = transform.perturb_lla(lla0, [10, -20, 5])
    ned = transform.compute_lla_difference(lla1, lla0)
    assert_allclose(ned, [[10, -20, 5], [10, -20, 5]], atol=1e-4)


def test_translate_trajectory():
    traj, imu = sim.generate_sine_velocity_motion(
        0.1, 60, [10 * DEG_TO_RAD, 20 * DEG_TO_RAD, -3], [5, 7, 3])
    traj_new = transform.translate_trajectory(traj, [10, -20, 5])
    mat_nb = Rotation.from_euler('xyz', traj[RPH_COLS]).as_matrix()
    ned = util.mv_prod(mat_nb, [10, -20, 5])
    lla = transform.perturb_lla(traj[LLA_COLS], ned)
    assert_allclose(traj_new[LLA_COLS], lla, rtol=1e-11)
    assert_allclose(traj_new[VEL_COLS], traj[VEL_COLS], rtol=1e-11)
    assert_allclose(traj_new[RPH_COLS], traj[RPH_COLS], rtol=1e-11)

    traj[RATE_COLS] = imu[GYRO_COLS].values
    traj_new = transform.translate_trajectory(traj, [10, -20, 5])
    vel_b = np.cross(traj[RATE_COLS], [10, -20, 5])
    vel = traj[VEL_COLS] + util.mv_prod(mat_nb, vel_b)
    assert_allclose(traj_new[VEL_COLS], vel)

    traj_back = transform.translate_trajectory(traj_new, [-10, 20, -5])
    assert_allclose(traj_back, traj)


def test_resample_state():
    lla0 = [40 * DEG_TO_RAD, -50 * DEG_TO_RAD, 100]
    traj, _ = sim.generate_sine_velocity_motion(
        0.02, 60.01, lla0, [5, -7, 0], velocity_change_amplitude=[10, 15, 2])
    ref_traj, _ = sim.generate_sine_velocity_motion(
        0.01, 60.01, lla0, [5, -7, 0], velocity_change_amplitude=[10, 15, 2])
    ref_traj = ref_traj.loc[:traj.index[-1]]
    test_traj = transform.resample_state(traj, ref_traj.index)

    assert_allclose(test_traj.lat, ref_traj.lat)
    assert_allclose(test_traj.lon, ref_traj.lon)
    assert_allclose(test_traj.alt, ref_traj.alt, atol=1e-4)

    assert_allclose(test_traj[VEL_COLS], ref_traj[VEL_COLS], atol=1e-5)
    assert_allclose(test_traj[RPH_COLS], ref_traj[RPH_COLS], atol=1e-5)


def test_resample_state_never_extrapolates():
    traj, _ = sim.generate_straight_motion(0.1, 10, [0.5, 0.5, 0], [10, 0, 0])
    with pytest.raises(transform.InterpolationRangeError):
        transform.resample_state(traj, [traj.index[0] - 0.1])
    with pytest.raises(transform.InterpolationRangeError):
        transform.resample_state(traj, [traj.index[-1] + 0.1])
    with pytest.raises(ValueError):
        transform.resample_state(traj, [5.0, 100.0])

    result = transform.resample_state(traj, [traj.index[0], 5.05, traj.index[-1]])
    assert_allclose(result.VN, 10)
    assert_allclose(result.iloc[0], traj.iloc[0])
    assert_allclose(result.iloc[-1], traj.iloc[-1])


def test_interpolate_to_reference():
    reference, _ = sim.generate_straight_motion(0.1, 20, [0.5, 0.5, 0], [10, 0, 0])
    state = reference.iloc[25:150:2]
    resampled, trimmed = transform.interpolate_to_reference(state, reference)
    assert trimmed.index[0] == state.index[0]
    assert trimmed.index[-1] == state.index[-1]
    assert_allclose(resampled.index, trimmed.index)
    assert_allclose(resampled[VEL_COLS], trimmed[VEL_COLS], atol=1e-9)
    assert_allclose(resampled[RPH_COLS], trimmed[RPH_COLS], atol=1e-9)


def test_compute_state_difference():
    lla0 = [40 * DEG_TO_RAD, -50 * DEG_TO_RAD, 100]
    traj1, _ = sim.generate_sine_velocity_motion(
        0.02, 60.01, lla0, [5, -7, 0], velocity_change_amplitude=[10, 15, 2])
    traj2, _ = sim.generate_sine_velocity_motion(
        0.01, 60.01, lla0, [5, -7, 0], velocity_change_amplitude=[10, 15, 2])
    traj2 = traj2.iloc[1::2].copy()
    traj2[LLA_COLS] = transform.perturb_lla(traj2[LLA_COLS], [-3, 5, 7])
    traj2[VEL_COLS] += [1, -2, 3]
    traj2[RPH_COLS] += np.array([359, 3, -3]) * DEG_TO_RAD

    diff = transform.compute_state_difference(traj1, traj2)
    assert_allclose(diff[NED_COLS] - [3, -5, -7], 0, atol=1e-4)
    assert_allclose(diff[VEL_COLS] - [-1, 2, -3], 0, atol=1e-5)
    assert_allclose(diff[RPH_COLS] - np.array([1, -3, 3]) * DEG_TO_RAD, 0,
                    atol=1e-5)


def test_compute_state_difference_series():
    pva1 = pd.Series([0.5, 0.5, 10, 1, 2, 3, 0.1, 0.2, np.pi - 0.05],
                     index=LLA_COLS + VEL_COLS + RPH_COLS)
    pva2 = pva1.copy()
    pva2[RPH_COLS] = [0.1, 0.2, -np.pi + 0.05]
    pva2[VEL_COLS] = [1, 2, 4]
    diff = transform.compute_state_difference(pva1, pva2)
    assert_allclose(diff[NED_COLS], 0, atol=1e-9)
    assert_allclose(diff[VEL_COLS], [0, 0, -1])
    assert_allclose(diff[RPH_COLS], [0, 0, -0.1], atol=1e-12)

    with pytest.raises(ValueError):
        transform.compute_state_difference(pva1, pva2.to_frame().T)


def test_mat_en_from_ll():
    A1 = np.eye(3)
    A2 = np.array([[0, 0, -1], [0, 1, 0], [1, 0, 0]])

    assert_allclose(transform.mat_en_from_ll(-0.5 * np.pi, 0), A1,
                    rtol=1e-10, atol=1e-10)
    assert_allclose(transform.mat_en_from_ll(0, 0), A2, rtol=1e-10, atol=1e-10)
    assert_allclose(transform.mat_en_from_ll([-0.5 * np.pi, 0], [0, 0]),
                    np.stack([A1, A2]), rtol=1e-10, atol=1e-10)


def test_mat_from_rph():
    assert_allclose(transform.mat_from_rph([0, 0, 0]), np.eye(3))

    rph1 = [0.5 * np.pi, 0, 0]
    mat1 = [[1, 0, 0], [0, 0, -1], [0, 1, 0]]
    assert_allclose(transform.mat_from_rph(rph1), mat1, atol=1e-15)

    rph2 = [0, -0.5 * np.pi, 0]
    mat2 = [[0, 0, -1], [0, 1, 0], [1, 0, 0]]
    assert_allclose(transform.mat_from_rph(rph2), mat2, atol=1e-15)

    rph3 = [0, 0, np.pi]
    mat3 = [[-1, 0, 0], [0, -1, 0], [0, 0, 1]]
    assert_allclose(transform.mat_from_rph(rph3), mat3, atol=1e-15)

    rph = np.asarray([rph1, rph2, rph3])
    mat = np.asarray([mat1, mat2, mat3])
    assert_allclose(transform.mat_from_rph(rph), mat, atol=1e-15)


def test_mat_to_rph():
    assert_allclose(transform.mat_to_rph(np.eye(3)), 0)

    rng = np.random.RandomState(0)
    for i in range(10):
        rph = 0.5 * rng.randn(3)
        mat = Rotation.from_euler('xyz', rph).as_matrix()
        assert_allclose(transform.mat_to_rph(mat), rph)

    rph = 0.5 * rng.randn(10, 3)
    mat = Rotation.from_euler('xyz', rph).as_matrix()
    assert_allclose(transform.mat_to_rph(mat), rph)


def test_quat_rph_conversion():
    assert_allclose(transform.quat_from_rph([0, 0, 0]), [0, 0, 0, 1])
    assert_allclose(transform.quat_from_rph([0, 0, np.pi]), [0, 0, 1, 0],
                    atol=1e-15)

    rng = np.random.RandomState(1)
    rph = 0.5 * rng.randn(10, 3)
    quat = transform.quat_from_rph(rph)
    assert_allclose(np.linalg.norm(quat, axis=1), 1)
    assert_allclose(transform.quat_to_rph(quat), rph)
    assert_allclose(Rotation.from_quat(quat).as_matrix(), transform.mat_from_rph(rph),
                    atol=1e-15)
