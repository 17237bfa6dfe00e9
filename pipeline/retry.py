"""
Operator-driven retries.

A check that finds a problem may ask the operator whether to look again
after they fixed it by hand. Instead of re-entering itself, the check runs
inside a bounded loop; there is no automatic or time-based retry.
"""

from typing import Callable
import logging

from utils.terminal import Terminal

logger = logging.getLogger(__name__)


def retry_until_settled(
    attempt: Callable[[], bool],
    max_attempts: int,
    terminal: Terminal,
    what: str,
    indent: int
) -> bool:
    """
    Run attempt() until it stops asking for a retry.

    Args:
        attempt: Runs the check once; returns True when the operator asked to retry
        max_attempts: Upper bound on the number of runs
        terminal: Where to report giving up
        what: Name of the check, for the report
        indent: Indentation of the report

    Returns:
        True if the check settled, False if it was still asking for a retry
        when max_attempts ran out
    """
    for number in range(1, max_attempts + 1):
        if not attempt():
            return True
        logger.debug(f"Retrying {what} (attempt {number + 1}/{max_attempts})")

    terminal.warning(f"Giving up on {what} after {max_attempts} attempts", indent)
    return False
