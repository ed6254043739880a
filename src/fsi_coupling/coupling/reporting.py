"""
Reporting of the partitioned coupling.

This module writes the per-time-step iteration log (CSV with a commented
configuration header) and prints the console summaries at the end of a run.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, Union

from ..core.config import CouplingConfig
from .driver import IterationStats, TimeStepResult
from .timings import CouplingTimings

logger = logging.getLogger(__name__)


class IterationLogger:
    """
    CSV log of the partitioned iterations, one row per time step.

    Parameters
    ----------
    log_file : str or Path, optional
        Path of the log file. ``None`` disables logging.
    config : CouplingConfig
        Coupling parameters written to the header.
    separator : str
        Column separator.

    Example
    -------
    ::

        iteration_log = IterationLogger("results/coupling_iterations.csv", config)
        iteration_log.initialize()

        for step in simulation:
            iteration_log.log_time_step(result)

        iteration_log.close()
    """

    COLUMNS = ("time_step", "time", "iterations", "abs_residual", "rel_residual", "method")

    def __init__(
        self,
        log_file: Optional[Union[str, Path]],
        config: CouplingConfig,
        separator: str = ",",
    ):
        self.log_file = log_file
        self.config = config
        self.separator = separator
        self.handle: Optional[TextIO] = None

    def initialize(self) -> None:
        """Create the log file and write the header."""
        if self.log_file is None:
            return

        log_path = Path(self.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.handle = open(log_path, "w", encoding="utf-8")
        except OSError as e:
            logger.warning("Could not open iteration log file: %s", e)
            self.handle = None
            return

        self._write_header()

    def _write_header(self) -> None:
        h = self.handle
        h.write("# Partitioned FSI Coupling Log\n")
        h.write(f"# Generated: {datetime.now().isoformat()}\n")
        h.write("#\n")
        h.write("# === COUPLING CONFIGURATION ===\n")
        for key, value in self.config.to_dict().items():
            h.write(f"# {key}: {value}\n")
        h.write("#\n")
        h.write(self.separator.join(self.COLUMNS) + "\n")
        h.flush()

    def log_time_step(self, result: TimeStepResult) -> None:
        """Write the row of a converged time step."""
        if self.handle is None:
            return

        values = [
            f"{result.time_step:d}",
            f"{result.time:.6e}",
            f"{result.iterations:d}",
            f"{result.absolute_residual:.6e}",
            f"{result.relative_residual:.6e}",
            self.config.method.value,
        ]
        self.handle.write(self.separator.join(values) + "\n")
        self.handle.flush()

    def close(self) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None

    def __enter__(self) -> "IterationLogger":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def print_partitioned_iterations(stats: IterationStats) -> None:
    """Print the cumulative partitioned iteration counts."""
    print("\n" + "═" * 70, flush=True)
    print("  PARTITIONED ITERATIONS", flush=True)
    print("═" * 70, flush=True)
    print(f"  Time steps:                   {stats.time_step_count}", flush=True)
    print(f"  Partitioned iterations:       {stats.iteration_count}", flush=True)
    print(f"  Iterations per time step:     {stats.average_iterations:.2f}", flush=True)
    print("═" * 70, flush=True)


def print_performance_results(timings: CouplingTimings, total_time: float) -> None:
    """Print the wall time of each coupling stage relative to ``total_time``."""
    print("\n" + "═" * 70, flush=True)
    print("  PERFORMANCE RESULTS", flush=True)
    print("═" * 70, flush=True)
    print(f"  {'Stage':<20}{'Calls':>10}{'Time [s]':>16}{'Share':>12}", flush=True)
    print("─" * 70, flush=True)
    for stage, seconds, calls in timings.items():
        share = seconds / total_time * 100.0 if total_time > 0 else 0.0
        print(f"  {stage:<20}{calls:>10d}{seconds:>16.4e}{share:>11.1f}%", flush=True)
    other = max(total_time - timings.total, 0.0)
    share = other / total_time * 100.0 if total_time > 0 else 0.0
    print(f"  {'other':<20}{'':>10}{other:>16.4e}{share:>11.1f}%", flush=True)
    print("─" * 70, flush=True)
    print(f"  Total wall time:  {total_time:.4e} s", flush=True)
    print("═" * 70 + "\n", flush=True)
