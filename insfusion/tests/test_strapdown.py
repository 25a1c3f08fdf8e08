import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
from insfusion import sim
from insfusion.strapdown import compute_increments_from_imu, Mechanizer
from insfusion.transform import DEG_TO_RAD, compute_state_difference
from insfusion.util import GYRO_COLS, ACCEL_COLS, THETA_COLS, DV_COLS


def test_coning_sculling():
    # Basically a smoke test, because the function is quite simple.
    imu = pd.DataFrame(data=np.zeros((10, 6)), columns=GYRO_COLS + ACCEL_COLS)

    imu.gyro_x = 0.01
    imu.gyro_z = -0.01
    imu.accel_z = 0.1

    dv_true = np.empty((9, 3))
    dv_true[:, 0] = 0
    dv_true[:, 1] = -0.5e-3
    dv_true[:, 2] = 0.1
    increments = compute_increments_from_imu(imu)
    assert_allclose(increments[THETA_COLS], imu[GYRO_COLS].iloc[1:], rtol=1e-10)
    assert_allclose(increments[DV_COLS], dv_true, rtol=1e-10)
    assert_allclose(increments.dt, 1)


def run_integration_test(reference_trajectory, imu, thresholds):
    mechanizer = Mechanizer(reference_trajectory.iloc[0])
    result = mechanizer.integrate(imu)
    assert len(result) == len(imu)
    assert_allclose(result.iloc[0], reference_trajectory.iloc[0], rtol=1e-12,
                    atol=1e-12)
    assert_allclose(np.linalg.norm(mechanizer.quat_nb), 1, rtol=1e-9)
    diff = compute_state_difference(result, reference_trajectory).abs().max(axis=0)
    assert (diff < thresholds).all()


def test_integrate_stationary():
    total_time = 3600
    dt = 1e-1
    time = np.arange(0, total_time, dt)
    n = len(time)

    lla = np.empty((n, 3))
    lla[:, 0] = 55.0 * DEG_TO_RAD
    lla[:, 1] = 37.0 * DEG_TO_RAD
    lla[:, 2] = 150.0

    rph = np.empty((n, 3))
    rph[:, 0] = -5.0 * DEG_TO_RAD
    rph[:, 1] = 10.0 * DEG_TO_RAD
    rph[:, 2] = 110.0 * DEG_TO_RAD

    thresholds = pd.Series({
        'north': 1e-3, 'east': 1e-3, 'down': 1e-2,
        'VN': 1e-6, 'VE': 1e-6, 'VD': 1e-5,
        'roll': 1e-9, 'pitch': 1e-9, 'yaw': 1e-9
    })

    ref, imu = sim.generate_imu(time, lla, rph)
    run_integration_test(ref, imu, thresholds)


def test_integrate_sine_velocity():
    thresholds = pd.Series({'north': 10.0, 'east': 10.0, 'down': 10,
                            'VN': 1e-2, 'VE': 1e-2, 'VD': 1e-2,
                            'roll': 5e-6, 'pitch': 5e-6, 'yaw': 5e-6})
    ref, imu = sim.generate_sine_velocity_motion(
        1e-2, 3600, [55 * DEG_TO_RAD, 37 * DEG_TO_RAD, 1500], [5, -3, 0.2],
        velocity_change_amplitude=1)
    run_integration_test(ref, imu, thresholds)


def test_step_matches_integrate():
    ref, imu = sim.generate_sine_velocity_motion(
        0.01, 10, [0.9, 0.6, 100], [10, 5, 0], velocity_change_amplitude=3,
        velocity_change_period=5)
    batch = Mechanizer(ref.iloc[0])
    trajectory = batch.integrate(imu)

    stepwise = Mechanizer(ref.iloc[0])
    stepwise.set_readings(imu[GYRO_COLS].values[0], imu[ACCEL_COLS].values[0])
    for i in range(1, len(imu)):
        stepwise.step(imu.index[i] - imu.index[i - 1], imu[GYRO_COLS].values[i],
                      imu[ACCEL_COLS].values[i])

    assert_allclose(stepwise.time, trajectory.index[-1])
    assert_allclose(stepwise.lla, batch.lla, rtol=1e-12)
    assert_allclose(stepwise.velocity_n, batch.velocity_n, rtol=1e-9, atol=1e-9)
    assert_allclose(stepwise.quat_nb, batch.quat_nb, rtol=1e-9, atol=1e-12)
    assert_allclose(stepwise.get_pva(), trajectory.iloc[-1], rtol=1e-9, atol=1e-9)


def test_step_edge_cases():
    ref, imu = sim.generate_straight_motion(0.01, 1, [0.9, 0.6, 100], [10, 0, 0])
    mechanizer = Mechanizer(ref.iloc[0])
    with pytest.raises(ValueError):
        mechanizer.step(-0.01, np.zeros(3), np.zeros(3))

    theta, dv = mechanizer.step(0, imu[GYRO_COLS].values[0],
                                imu[ACCEL_COLS].values[0])
    assert_allclose(theta, 0)
    assert_allclose(dv, 0)
    assert_allclose(mechanizer.get_pva(), ref.iloc[0], rtol=1e-12, atol=1e-12)

    with pytest.raises(ValueError):
        mechanizer.integrate(imu.iloc[1:])

    mechanizer.set_state(ref.iloc[0][['lat', 'lon', 'alt']],
                         ref.iloc[0][['VN', 'VE', 'VD']], [0, 0, 0, 2])
    assert_allclose(mechanizer.quat_nb, [0, 0, 0, 1])


def test_step_keeps_unit_quaternion_at_high_rates():
    ref, _ = sim.generate_straight_motion(0.01, 1, [0.9, 0.6, 100], [10, 0, 0])
    mechanizer = Mechanizer(ref.iloc[0])
    rng = np.random.RandomState(0)
    gyro = rng.uniform(-20, 20, size=(5000, 3))
    accel = rng.uniform(-50, 50, size=(5000, 3))
    for i in range(len(gyro)):
        mechanizer.step(0.01, gyro[i], accel[i])
        assert abs(np.linalg.norm(mechanizer.quat_nb) - 1) < 1e-9
