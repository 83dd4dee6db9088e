from typing import Callable, Optional
import time
import logging
from dataclasses import dataclass
import numpy as np


@dataclass
class ProjectionOptions:
    """Configuration options for landmark projection."""

    force_segment_visible: bool = True
    line_norm_threshold: float = 1e-12
    min_depth: float = 0.0
    max_depth: float = np.inf
    enable_profiler: bool = False
    debug_verify_analytic_jacobians: bool = False
    debug_verify_analytic_jacobians_threshold: float = 1e-2
    verbosity_level: int = logging.INFO

    def load_from_config(self, config_dict: dict) -> None:
        """Load options from a configuration dictionary."""
        for key, value in config_dict.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def dump_to_text(self) -> str:
        """Return a string representation of all options."""
        lines = ["\n----------- [projection_options] ------------ \n"]
        lines.append(f"force_segment_visible                   = {'Y' if self.force_segment_visible else 'N'}")
        lines.append(f"line_norm_threshold                     = {self.line_norm_threshold}")
        lines.append(f"min_depth                               = {self.min_depth}")
        lines.append(f"max_depth                               = {self.max_depth}")
        lines.append(f"enable_profiler                         = {'Y' if self.enable_profiler else 'N'}")
        lines.append(f"debug_verify_analytic_jacobians         = {'Y' if self.debug_verify_analytic_jacobians else 'N'}")
        lines.append(f"debug_verify_analytic_jacobians_threshold = {self.debug_verify_analytic_jacobians_threshold}")
        lines.append(f"verbosity_level                         = {logging.getLevelName(self.verbosity_level)}")
        return "\n".join(lines) + "\n"


class TimeLogger:
    """Simple time profiler for performance monitoring."""

    def __init__(self):
        self.times = {}
        self.elapsed = {}
        self.enabled = False

    def enable(self, enabled: bool = True):
        self.enabled = enabled

    def tic(self, name: str):
        if self.enabled:
            self.times[name] = time.time()

    def toc(self, name: str) -> float:
        if self.enabled and name in self.times:
            elapsed = time.time() - self.times[name]
            self.elapsed.setdefault(name, []).append(elapsed)
            logging.debug(f"Timer '{name}': {elapsed:.6f} seconds")
            return elapsed
        return 0.0

    def get_stats(self) -> dict:
        """Count and mean duration of each timer."""
        return {name: (len(values), float(np.mean(values)))
                for name, values in self.elapsed.items()}


def numeric_jacobian(f: Callable[[np.ndarray], np.ndarray], x: np.ndarray,
                     increments: Optional[np.ndarray] = None,
                     central: bool = False) -> np.ndarray:
    """
    Estimate the Jacobian of f at x by finite differences.

    Parameters:
    -----------
    f : callable
        Function of a vector returning a vector
    x : np.ndarray
        Evaluation point
    increments : np.ndarray, optional
        Increment for each dimension of x (default 1e-6)
    central : bool
        Use central instead of forward differences

    Returns:
    --------
    np.ndarray
        Jacobian of shape (len(f(x)), len(x))
    """
    x = np.asarray(x, dtype=float).reshape(-1)
    if increments is None:
        increments = np.full(x.size, 1e-6)

    # Nominal value
    nominal = np.asarray(f(x), dtype=float).reshape(-1)
    jacobian = np.zeros((nominal.size, x.size))

    for i in range(x.size):
        # Perturb input
        perturbed = x.copy()
        perturbed[i] += increments[i]
        plus = np.asarray(f(perturbed), dtype=float).reshape(-1)

        if central:
            perturbed[i] = x[i] - increments[i]
            minus = np.asarray(f(perturbed), dtype=float).reshape(-1)
            jacobian[:, i] = (plus - minus) / (2 * increments[i])
        else:
            # Finite difference
            jacobian[:, i] = (plus - nominal) / increments[i]

    return jacobian
