import numpy as np
import pytest
from numpy.testing import assert_allclose
from insfusion import earth, measurements, transform
from insfusion.error_model import InsErrorModel
from insfusion.inertial_sensor import ImuProfile


def make_error_model():
    profile = ImuProfile.ideal(100).normalize()
    return InsErrorModel(profile.gyro, profile.accel, profile.dt)


def test_gnss_profile():
    profile = measurements.GARMIN_GPS18X
    assert profile.freq == 5
    assert_allclose(profile.velocity_sd, 0.1 * transform.KNOT_TO_MS)

    lat = 0.7
    normalized = profile.normalize(lat, 100)
    rn, _, rp = earth.principal_radii(lat, 100)
    assert_allclose(normalized.lla_sd, [0.5 / rn, 0.5 / rp, 1.0])
    assert_allclose(normalized.dt, 0.2)

    with pytest.raises(ValueError):
        measurements.GnssProfile(1, 1, [0, 0, 0], freq=-1)
    with pytest.raises(ValueError):
        measurements.GnssProfile(-1, 1, [0, 0, 0], freq=1)


def test_position_velocity_no_lever_arm():
    em = make_error_model()
    measurement = measurements.PositionVelocity([1, 2, 3], 0.1)
    assert_allclose(np.diag(measurement.R), [1, 4, 9, 0.01, 0.01, 0.01])

    lla = np.array([0.8, 0.5, 100])
    velocity_n = np.array([10, -5, 1])
    mat_nb = transform.mat_from_rph([0.1, -0.2, 1.0])
    fix = np.hstack((transform.perturb_lla(lla, [-1, 2, 0.5]), velocity_n - 0.2))

    z, H, R = measurement.compute_matrices(fix, lla, velocity_n, mat_nb, np.zeros(3),
                                           em)
    assert_allclose(z, [1, -2, -0.5, 0.2, 0.2, 0.2], atol=1e-6)
    assert H.shape == (6, 15)
    assert_allclose(H[:3, em.DR], np.eye(3))
    assert_allclose(H[:3, em.PHI], 0)
    assert_allclose(H[3:, em.DV], np.eye(3))
    assert_allclose(H[3:, em.PHI], np.array([[0, -1, -5],
                                              [1, 0, -10],
                                              [5, 10, 0]]))
    assert_allclose(H[:, em.BG + em.BA], 0)
    assert R is measurement.R


def test_position_velocity_lever_arm():
    em = make_error_model()
    lever_arm = np.array([1.0, -0.5, -2.0])
    measurement = measurements.PositionVelocity(1, 0.1, lever_arm)

    lla = np.array([0.8, 0.5, 100])
    velocity_n = np.array([10, -5, 1])
    rph = np.array([0.1, -0.2, 1.0])
    rate_b = np.array([0.05, -0.02, 0.3])
    mat_nb = transform.mat_from_rph(rph)

    antenna_lla = transform.perturb_lla(lla, mat_nb @ lever_arm)
    antenna_velocity = velocity_n + mat_nb @ np.cross(rate_b, lever_arm)
    fix = np.hstack((antenna_lla, antenna_velocity))

    z, H, _ = measurement.compute_matrices(fix, lla, velocity_n, mat_nb, rate_b, em)
    assert_allclose(z, 0, atol=1e-6)
    assert_allclose(H[:3, em.PHI], np.array([
        [0, -(mat_nb @ lever_arm)[2], (mat_nb @ lever_arm)[1]],
        [(mat_nb @ lever_arm)[2], 0, -(mat_nb @ lever_arm)[0]],
        [-(mat_nb @ lever_arm)[1], (mat_nb @ lever_arm)[0], 0]]))
