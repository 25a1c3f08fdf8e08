"""Synchronization of inertial and GNSS fix streams.

The navigation filter requires the fix stream to start before the inertial
stream and to end before it, so that every processed fix lies inside the
inertial envelope and nothing is extrapolated.

Functions
---------
.. autosummary::
    :toctree: generated/

    synchronize
"""
import logging
import numpy as np


logger = logging.getLogger(__name__)


class SynchronizationError(ValueError):
    """Streams can't be brought to a common working interval."""


def synchronize(inertial, fix):
    """Trim inertial and fix streams to a common working interval.

    If the inertial stream starts at or before the first fix, its head is
    dropped up to the first sample with time greater than the first fix time.
    If the inertial stream ends at or before the last fix, the fix tail is
    dropped down to the last fix with time less than the last inertial time.
    Only prefixes and suffixes are removed.

    Parameters
    ----------
    inertial : InertialStream
        Inertial stream.
    fix : FixStream
        Fix stream.

    Returns
    -------
    inertial : InertialStream
        Trimmed inertial stream.
    fix : FixStream
        Trimmed fix stream.

    Raises
    ------
    SynchronizationError
        If a stream is empty after trimming or the overlap of the streams is
        shorter than one fix period.
    """
    if len(inertial) == 0 or len(fix) == 0:
        logger.error("Can't synchronize empty streams")
        raise SynchronizationError("Inertial and fix streams must be non-empty")

    inertial_time = inertial.time
    fix_time = fix.time

    if inertial_time[0] <= fix_time[0]:
        start = np.searchsorted(inertial_time, fix_time[0], side='right')
        logger.info("Dropping %d inertial samples before the first fix at %.3f",
                    start, fix_time[0])
        inertial = inertial.slice(start, None)
        inertial_time = inertial_time[start:]

    if len(inertial_time) > 0 and inertial_time[-1] <= fix_time[-1]:
        stop = np.searchsorted(fix_time, inertial_time[-1], side='left')
        logger.info("Dropping %d fixes after the last inertial sample at %.3f",
                    len(fix_time) - stop, inertial_time[-1])
        fix = fix.slice(None, stop)
        fix_time = fix_time[:stop]

    if len(inertial_time) == 0 or len(fix_time) == 0:
        logger.error("A stream became empty after synchronization")
        raise SynchronizationError("Streams don't overlap, a stream is empty after "
                                   "trimming")

    overlap = min(inertial_time[-1], fix_time[-1]) - max(inertial_time[0], fix_time[0])
    fix_period = fix.period
    if np.isnan(fix_period):
        fix_period = 0.0
    if overlap < fix_period:
        logger.error("Streams overlap for %.3f s, shorter than the fix period %.3f s",
                     overlap, fix_period)
        raise SynchronizationError(f"Streams overlap for {overlap} s which is shorter "
                                   f"than the fix period {fix_period} s")

    return inertial, fix
