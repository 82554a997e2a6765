# -*- coding: utf-8 -*-
"""
derive package - Transform Derivation Functions

Re-exports the solvers from sub-modules.
"""

# Core entry point
from .core import compute_transform, SOLVER_REGISTRY

# Closed-form fits
from .procrustes import solve_procrustes
from .affine import solve_affine, decompose_affine, AffineDecomposition

# Nonlinear refinement
from .refine import ResidualModel, initial_parameters, refine_transform, REFINED_FAMILIES

# Thin-plate spline
from .tps import solve_tps, build_tps_system, TpsFit


__all__ = [
    # Main entry
    'compute_transform', 'SOLVER_REGISTRY',

    # Closed form
    'solve_procrustes', 'solve_affine', 'decompose_affine', 'AffineDecomposition',

    # Refinement
    'ResidualModel', 'initial_parameters', 'refine_transform', 'REFINED_FAMILIES',

    # TPS
    'solve_tps', 'build_tps_system', 'TpsFit',
]
