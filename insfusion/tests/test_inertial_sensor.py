import dataclasses
import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose, assert_equal
from insfusion import inertial_sensor, transform
from insfusion.inertial_sensor import ImuProfile, TriadErrors
from insfusion.util import IMU_COLS


def test_normalize_profile():
    profile = inertial_sensor.ADIS16405.normalize()
    assert profile.frequency == 100
    assert_allclose(profile.dt, 0.01)
    assert_allclose(profile.gyro.noise, 2 * transform.DEG_TO_RAD / 60)
    assert_allclose(profile.accel.noise, 0.2 / 60)
    assert_allclose(profile.gyro.fixed_bias_sd, 3 * transform.DEG_TO_RAD)
    assert_allclose(profile.accel.fixed_bias_sd, 50 * 9.81e-3)
    assert_allclose(profile.gyro.bias_sigma, 0.007 * transform.DEG_TO_RAD)
    assert_allclose(profile.accel.bias_sigma, 0.2 * 9.81e-3)
    assert_equal(profile.gyro.correlation_time, 100)
    assert_equal(profile.gyro.bias_walk, 0)


def test_profile_validation():
    with pytest.raises(ValueError):
        ImuProfile(arw=1, vrw=1, gb_fix=1, ab_fix=1, gb_drift=1, ab_drift=1,
                   gb_corr=1, ab_corr=1, freq=0)
    with pytest.raises(ValueError):
        ImuProfile(arw=-1, vrw=1, gb_fix=1, ab_fix=1, gb_drift=1, ab_drift=1,
                   gb_corr=1, ab_corr=1, freq=100)
    with pytest.raises(ValueError):
        ImuProfile(arw=[1, 2], vrw=1, gb_fix=1, ab_fix=1, gb_drift=1, ab_drift=1,
                   gb_corr=1, ab_corr=1, freq=100)


def test_profile_immutable():
    profile = inertial_sensor.ADIS16488
    with pytest.raises(dataclasses.FrozenInstanceError):
        profile.freq = 200
    with pytest.raises(ValueError):
        profile.arw[0] = 1.0

    values = np.array([1.0, 2.0, 3.0])
    profile = ImuProfile(arw=values, vrw=1, gb_fix=1, ab_fix=1, gb_drift=1,
                         ab_drift=1, gb_corr=1, ab_corr=1, freq=100)
    values[0] = 10
    assert profile.arw[0] == 1.0


def test_ideal_profile():
    profile = ImuProfile.ideal(50).normalize()
    assert profile.gyro.is_ideal
    assert profile.accel.is_ideal
    assert not inertial_sensor.ADIS16405.normalize().gyro.is_ideal


def test_bias_model():
    errors = TriadErrors(noise=[1e-3, 1e-3, 1e-3], bias_walk=[0, 0, 1e-5],
                         fixed_bias_sd=1e-2, bias_sigma=2e-2,
                         correlation_time=[100, np.inf, 0])
    dt = 0.01
    F, q, P, v = errors.bias_model(dt)
    assert_allclose(F, np.diag([-0.01, 0, 0]))

    variance = 1e-4 + 4e-4
    assert_allclose(q, [(2 * variance / 100) ** 0.5, 0, 1e-5])
    assert_allclose(P, np.diag([variance, variance, 1e-4]))
    assert_allclose(v, [1e-3, 1e-3, (1e-6 + 4e-4 * dt) ** 0.5])


def test_generate_bias():
    errors = TriadErrors(noise=0, bias_walk=0, fixed_bias_sd=[1, 2, 3],
                         bias_sigma=0, correlation_time=np.inf)
    bias = errors.generate_bias(100, 0.1, rng=0)
    assert bias.shape == (100, 3)
    assert_allclose(bias, bias[0])
    assert_equal(bias, errors.generate_bias(100, 0.1, rng=0))


def test_apply_imu_errors():
    time = 0.01 * np.arange(1000)
    imu = pd.DataFrame(np.zeros((1000, 6)), index=time, columns=IMU_COLS)
    imu['accel_z'] = -9.8

    ideal = ImuProfile.ideal(100).normalize()
    imu_out, gyro_bias, accel_bias = inertial_sensor.apply_imu_errors(imu, ideal, 0)
    assert_allclose(imu_out, imu)
    assert_equal(gyro_bias.values, 0)
    assert list(gyro_bias.columns) == ['bias_x', 'bias_y', 'bias_z']

    profile = inertial_sensor.ADIS16405.normalize()
    imu_1, gyro_bias_1, accel_bias_1 = inertial_sensor.apply_imu_errors(imu, profile,
                                                                        123)
    imu_2, gyro_bias_2, accel_bias_2 = inertial_sensor.apply_imu_errors(imu, profile,
                                                                        123)
    assert_equal(imu_1.values, imu_2.values)
    assert_equal(gyro_bias_1.values, gyro_bias_2.values)
    assert list(imu_1.columns) == IMU_COLS
    assert_allclose(imu_1.index, time)

    gyro_noise = imu_1[['gyro_x', 'gyro_y', 'gyro_z']].values - gyro_bias_1.values
    assert_allclose(np.std(gyro_noise, axis=0),
                    profile.gyro.noise * profile.frequency ** 0.5, rtol=0.1)
    accel_error = (imu_1[['accel_x', 'accel_y', 'accel_z']].values - imu.values[:, 3:]
                   - accel_bias_1.values)
    assert_allclose(np.std(accel_error, axis=0),
                    profile.accel.noise * profile.frequency ** 0.5, rtol=0.1)
