# -*- coding: utf-8 -*-
"""config.py - Numeric tolerances and iteration caps for the solvers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SolverSettings:
    """
    Tolerances shared by the refiner, the TPS inversion and the file writer.

    Make variants with dataclasses.replace(DEFAULT_SETTINGS, ...).
    """
    # Levenberg-Marquardt (MINPACK lmdif)
    lm_max_evaluations: int = 2000
    lm_xtol: float = 1e-12
    lm_ftol: float = 1e-12
    lm_gtol: float = 1e-12

    # Newton-Raphson TPS inversion
    newton_max_iterations: int = 20
    newton_tolerance: float = 1e-6   # distance in world units
    newton_step: float = 1e-6        # central-difference step

    # Degeneracy guards
    scale_denominator_floor: float = 1e-30
    gimbal_lock_epsilon: float = 1e-12

    # Significant digits for floats written to transform files
    xfm_precision: int = 15

    def __post_init__(self):
        if self.lm_max_evaluations < 1:
            raise ValueError("lm_max_evaluations must be positive")
        if self.newton_max_iterations < 0:
            raise ValueError("newton_max_iterations must be non-negative")
        if self.newton_step <= 0:
            raise ValueError("newton_step must be positive")
        if self.xfm_precision < 15:
            raise ValueError("xfm_precision below 15 digits loses round-trip precision")


DEFAULT_SETTINGS = SolverSettings()
