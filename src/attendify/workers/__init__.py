"""Background workers for periodic lifecycle housekeeping."""

from attendify.workers.sweeper_worker import run_sweeper_cycle, run_sweeper_worker

__all__ = [
    "run_sweeper_cycle",
    "run_sweeper_worker",
]
