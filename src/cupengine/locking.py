"""
Per-tournament mutual exclusion for resolution passes.

Two passes over the same tournament (a scheduled poll and a manual
trigger, say) must not interleave their writes. The lock is a file lock
next to the tournament's data, so it also holds across processes; a
second caller blocks until the first pass has saved, then reads the saved
state and finds the completed matches already done.
"""
import os
import re
import logging

from filelock import FileLock

from cupengine.resolution import rebuild, resolve_and_advance

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10


def _safe_name(tournament_id) -> str:
    return re.sub(r'[^A-Za-z0-9_.-]', '_', str(tournament_id))


def tournament_lock(tournament_id, lock_dir: str, timeout: float = DEFAULT_LOCK_TIMEOUT) -> FileLock:
    """A FileLock dedicated to one tournament. Raises filelock.Timeout on expiry."""
    os.makedirs(lock_dir, exist_ok=True)
    return FileLock(os.path.join(lock_dir, f".{_safe_name(tournament_id)}.lock"), timeout=timeout)


def run_locked_pass(tournament_id, lock_dir: str, load_matches, save_matches, feed,
                    full_rebuild: bool = False, lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
                    **pass_options):
    """
    Load, resolve and save one tournament while holding its lock.

    load_matches() returns the current matches; save_matches(updated)
    persists the changed ones. Both run inside the lock so the pass always
    starts from the last saved state. Returns the ResolutionResult.
    """
    with tournament_lock(tournament_id, lock_dir, lock_timeout):
        matches = load_matches()
        if full_rebuild:
            result = rebuild(matches, feed, **pass_options)
        else:
            result = resolve_and_advance(matches, feed, **pass_options)
        if result.updated:
            save_matches(result.updated)
        else:
            logger.info(f"Tournament {tournament_id}: nothing to save")
        return result
