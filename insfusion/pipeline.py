"""End-to-end navigation runs and their evaluation.

A run synthesizes an inertial stream from a reference trajectory, synchronizes
it with a fix stream and processes both by the feedback filter. Several IMU
profiles can be compared against the same fix stream, each run owns all its data
and can be executed in a separate process.

Functions
---------
.. autosummary::
    :toctree: generated/

    run_navigation
    compare_imu_profiles
    compute_error_statistics
"""
import concurrent.futures
import logging
import numpy as np
import pandas as pd
from scipy.interpolate import interp1d
from . import filters, sim, sync, transform, util
from .util import TRAJECTORY_COLS, TRAJECTORY_ERROR_COLS


logger = logging.getLogger(__name__)


def run_navigation(reference, imu_profile, fix, config=None, rng=None,
                   initial_pva=None):
    """Run navigation for a single IMU profile.

    Parameters
    ----------
    reference : Trajectory
        Reference trajectory used to synthesize the inertial stream.
    imu_profile : ImuProfile or NormalizedImuProfile
        IMU error profile.
    fix : FixStream
        GNSS fixes.
    config : FusionConfig or None, optional
        Filter configuration. If None (default), default configuration is used.
    rng : None, int or `numpy.random.RandomState`, optional
        Seed to create or already created RandomState. None (default) corresponds to
        nondeterministic seeding.
    initial_pva : Pva or None, optional
        Initial position-velocity-attitude. If None (default), the reference
        value at the first synchronized inertial sample is used.

    Returns
    -------
    Bunch
        Output of `insfusion.filters.run_feedback_filter` with additional fields:

            true_bias : DataFrame
                Realized sensor biases at the synchronized inertial samples.
            inertial, fix : InertialStream, FixStream
                Synchronized streams.
    """
    inertial, true_bias = sim.generate_inertial_stream(reference, imu_profile, rng)
    inertial, fix = sync.synchronize(inertial, fix)
    if initial_pva is None:
        initial_pva = transform.resample_state(reference[TRAJECTORY_COLS],
                                               inertial.time[:1]).iloc[0]

    logger.info("Starting navigation run from %.3f to %.3f s",
                inertial.time[0], inertial.time[-1])
    result = filters.run_feedback_filter(initial_pva, inertial, fix, imu_profile,
                                         config)
    result.true_bias = true_bias.loc[inertial.data.index[0]:]
    result.inertial = inertial
    result.fix = fix
    return result


def _seed_for(seeds, name, position):
    if seeds is None:
        return None
    if isinstance(seeds, dict):
        return seeds.get(name)
    return seeds[position]


def compare_imu_profiles(reference, profiles, fix, config=None, seeds=None,
                         max_workers=None):
    """Run navigation for several IMU profiles against the same fixes.

    Parameters
    ----------
    reference : Trajectory
        Reference trajectory.
    profiles : dict
        IMU profiles by name.
    fix : FixStream
        GNSS fixes shared by all runs.
    config : FusionConfig or None, optional
        Filter configuration. If None (default), default configuration is used.
    seeds : dict, sequence or None, optional
        Random seeds for each profile, either by name or in the order of
        `profiles`. If None (default), nondeterministic seeding is used.
    max_workers : int or None, optional
        Number of worker processes. If None (default), runs are executed
        sequentially in the current process.

    Returns
    -------
    dict
        Results of `run_navigation` by profile name.
    """
    names = list(profiles)
    results = {}
    if max_workers is None:
        for position, name in enumerate(names):
            logger.info("Running profile '%s'", name)
            results[name] = run_navigation(reference, profiles[name], fix, config,
                                           _seed_for(seeds, name, position))
        return results

    with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = {}
        for position, name in enumerate(names):
            logger.info("Submitting profile '%s'", name)
            future = executor.submit(run_navigation, reference, profiles[name], fix,
                                     config, _seed_for(seeds, name, position))
            futures[future] = name

        for future in concurrent.futures.as_completed(futures):
            results[futures[future]] = future.result()

    return {name: results[name] for name in names}


def compute_error_statistics(result, reference):
    """Compute error statistics of a navigation run.

    The estimated trajectory and its standard deviations are resampled at the
    reference times within the time span of the run. Standard deviations are
    interpolated linearly, including the attitude ones.

    Parameters
    ----------
    result : Bunch
        Output of `run_navigation` or `insfusion.filters.run_feedback_filter`.
    reference : Trajectory
        Reference trajectory.

    Returns
    -------
    DataFrame
        Rows 'rms' with root-mean-square errors and 'within_3sd' with the fraction
        of samples with errors inside the 3-sigma envelope. Columns are
        'north', 'east', 'down', 'VN', 'VE', 'VD', 'roll', 'pitch', 'yaw'.
    """
    if len(result.trajectory) < 2:
        raise ValueError("The run must contain at least 2 samples")
    trajectory, reference = transform.interpolate_to_reference(
        result.trajectory, reference[TRAJECTORY_COLS])
    sd = pd.DataFrame(interp1d(result.trajectory_sd.index, result.trajectory_sd.values,
                               axis=0)(reference.index),
                      index=reference.index, columns=result.trajectory_sd.columns)
    error = transform.compute_state_difference(trajectory, reference)
    error = error[TRAJECTORY_ERROR_COLS]
    within = np.abs(error.values) <= 3 * sd[TRAJECTORY_ERROR_COLS].values
    return pd.DataFrame([util.compute_rms(error.values), within.mean(axis=0)],
                        index=['rms', 'within_3sd'], columns=TRAJECTORY_ERROR_COLS)
