"""
tagreg - Landmark (tag-pair) registration between two 3-D volumes.

Core modules:
- tagreg.core: transform families, solvers, TransformResult evaluation
- tagreg.io: MNI transform file persistence
"""

import logging

from tagreg.core import (
    TransformFamily, family_name, TransformResult, NewtonInversion, PointSet,
    SolverSettings, DEFAULT_SETTINGS, compute_transform,
    NotInvertibleError, TransformFileError,
    MIN_PAIRS_LINEAR, MIN_PAIRS_TPS, TRANSFORM_FAMILY_COUNT,
)
from tagreg.io import write_xfm, read_xfm

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__all__ = [
    "TransformFamily", "family_name", "TransformResult", "NewtonInversion", "PointSet",
    "SolverSettings", "DEFAULT_SETTINGS", "compute_transform",
    "NotInvertibleError", "TransformFileError",
    "MIN_PAIRS_LINEAR", "MIN_PAIRS_TPS", "TRANSFORM_FAMILY_COUNT",
    "write_xfm", "read_xfm",
]
