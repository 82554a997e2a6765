"""
tagreg core - Tag-pair transform computation and evaluation.
"""

from tagreg.core.base import (
    TransformFamily, family_name, NotInvertibleError, TransformFileError,
    MIN_PAIRS_LINEAR, MIN_PAIRS_TPS, TRANSFORM_FAMILY_COUNT,
)
from tagreg.core.config import SolverSettings, DEFAULT_SETTINGS
from tagreg.core.state import PointSet
from tagreg.core.transform import TransformResult, NewtonInversion
from tagreg.core.derive import compute_transform

__all__ = [
    "TransformFamily", "family_name", "NotInvertibleError", "TransformFileError",
    "MIN_PAIRS_LINEAR", "MIN_PAIRS_TPS", "TRANSFORM_FAMILY_COUNT",
    "SolverSettings", "DEFAULT_SETTINGS", "PointSet",
    "TransformResult", "NewtonInversion", "compute_transform",
]
