import numba
import numpy as np
from . import earth


@numba.njit()
def gravity(lat, alt):
    sin2 = np.sin(lat) ** 2
    return (earth.GE * (1 + earth.F * sin2) /
            (1 - earth.E2 * sin2) ** 0.5 * (1 - 2 * alt / earth.A))


@numba.njit
def quat_from_rotvec(rv, quat):
    norm2 = rv[0] * rv[0] + rv[1] * rv[1] + rv[2] * rv[2]
    if norm2 > 1e-6:
        norm = norm2 ** 0.5
        k = np.sin(0.5 * norm) / norm
        w = np.cos(0.5 * norm)
    else:
        norm4 = norm2 * norm2
        k = 0.5 - norm2 / 48 + norm4 / 3840
        w = 1 - norm2 / 8 + norm4 / 384

    quat[0] = k * rv[0]
    quat[1] = k * rv[1]
    quat[2] = k * rv[2]
    quat[3] = w


@numba.njit
def quat_multiply(a, b, result):
    result[0] = a[3] * b[0] + b[3] * a[0] + a[1] * b[2] - a[2] * b[1]
    result[1] = a[3] * b[1] + b[3] * a[1] + a[2] * b[0] - a[0] * b[2]
    result[2] = a[3] * b[2] + b[3] * a[2] + a[0] * b[1] - a[1] * b[0]
    result[3] = a[3] * b[3] - a[0] * b[0] - a[1] * b[1] - a[2] * b[2]


@numba.njit
def quat_to_mat(quat, mat):
    x = quat[0]
    y = quat[1]
    z = quat[2]
    w = quat[3]

    mat[0, 0] = 1 - 2 * (y * y + z * z)
    mat[0, 1] = 2 * (x * y - z * w)
    mat[0, 2] = 2 * (x * z + y * w)
    mat[1, 0] = 2 * (x * y + z * w)
    mat[1, 1] = 1 - 2 * (x * x + z * z)
    mat[1, 2] = 2 * (y * z - x * w)
    mat[2, 0] = 2 * (x * z - y * w)
    mat[2, 1] = 2 * (y * z + x * w)
    mat[2, 2] = 1 - 2 * (x * x + y * y)


@numba.njit
def integrate(dt_array, lla, velocity_n, quat_nb, theta, dv, offset):
    xi = np.empty(3)
    dv_n = np.empty(3)
    C = np.empty((3, 3))
    qn = np.empty(4)
    qb = np.empty(4)
    q = np.empty(4)

    for i in range(len(theta)):
        j = i + offset
        dt = dt_array[i]

        lat = lla[j, 0]
        alt = lla[j, 2]

        sin_lat = np.sin(lat)
        cos_lat = np.sqrt(1 - sin_lat * sin_lat)
        tan_lat = sin_lat / cos_lat

        x = 1 - earth.E2 * sin_lat * sin_lat
        re = earth.A / x ** 0.5
        rn = re * (1 - earth.E2) / x + alt
        re += alt

        Omega1 = earth.RATE * cos_lat
        Omega2 = 0.0
        Omega3 = -earth.RATE * sin_lat

        V1 = velocity_n[j, 0]
        V2 = velocity_n[j, 1]
        V3 = velocity_n[j, 2]

        rho1 = V2 / re
        rho2 = -V1 / rn
        rho3 = -rho1 * tan_lat
        chi1 = Omega1 + rho1
        chi2 = Omega2 + rho2
        chi3 = Omega3 + rho3

        quat_to_mat(quat_nb[j], C)
        np.dot(C, dv[i], dv_n)
        dv1 = dv_n[0]
        dv2 = dv_n[1]
        dv3 = dv_n[2]

        velocity_n[j + 1, 0] = V1 + dv1 + (- (chi2 + Omega2) * V3
                                           + (chi3 + Omega3) * V2
                                           - 0.5 * (chi2 * dv3 - chi3 * dv2)
                                           ) * dt
        velocity_n[j + 1, 1] = V2 + dv2 + (- (chi3 + Omega3) * V1
                                           + (chi1 + Omega1) * V3
                                           - 0.5 * (chi3 * dv1 - chi1 * dv3)
                                           ) * dt
        velocity_n[j + 1, 2] = V3 + dv3 + (- (chi1 + Omega1) * V2
                                           + (chi2 + Omega2) * V1
                                           - 0.5 * (chi1 * dv2 - chi2 * dv1)
                                           + gravity(lat, alt - 0.5 * V3 * dt)
                                           ) * dt

        V1 = 0.5 * (V1 + velocity_n[j + 1, 0])
        V2 = 0.5 * (V2 + velocity_n[j + 1, 1])
        V3 = 0.5 * (V3 + velocity_n[j + 1, 2])
        rho1 = V2 / re
        rho2 = -V1 / rn
        rho3 = -rho1 * tan_lat
        chi1 = Omega1 + rho1
        chi2 = Omega2 + rho2
        chi3 = Omega3 + rho3

        lla[j + 1, 0] = lla[j, 0] - rho2 * dt
        lla[j + 1, 1] = lla[j, 1] + rho1 / cos_lat * dt
        lla[j + 1, 2] = lla[j, 2] - V3 * dt

        xi[0] = -chi1 * dt
        xi[1] = -chi2 * dt
        xi[2] = -chi3 * dt
        quat_from_rotvec(xi, qn)
        quat_from_rotvec(theta[i], qb)
        quat_multiply(quat_nb[j], qb, q)
        quat_multiply(qn, q, quat_nb[j + 1])

        norm = np.sqrt(np.sum(quat_nb[j + 1] ** 2))
        for k in range(4):
            quat_nb[j + 1, k] /= norm
