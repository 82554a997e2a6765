#!/usr/bin/env python3
"""
base.py - Transform families and package exceptions.

The family set is closed: every solver, residual layout and display name is
keyed on one of these six members.
"""
from enum import Enum


MIN_PAIRS_LINEAR = 4
MIN_PAIRS_TPS = 5


class NotInvertibleError(Exception):
    """Raised when a linear transform matrix has no inverse."""
    pass


class TransformFileError(Exception):
    """Raised when a transform file cannot be parsed or is not supported."""
    pass


class TransformFamily(Enum):
    """Requested transform model for a set of tag pairs."""
    RIGID = "lsq6"                  # 3 rotations + 3 translations
    SIMILARITY = "lsq7"             # + 1 uniform scale
    NINE_PARAM = "lsq9"             # + 3 independent scales
    TEN_PARAM = "lsq10"             # + 1 X/Y shear
    FULL_AFFINE = "lsq12"           # unconstrained 3x4
    THIN_PLATE_SPLINE = "tps"       # non-linear

    @property
    def label(self) -> str:
        """Stable human-readable name for display."""
        return _LABELS[self]

    @property
    def n_parameters(self) -> int:
        """Degrees of freedom; 0 for the thin-plate spline (data-sized)."""
        return _PARAMETER_COUNTS[self]

    @property
    def is_linear(self) -> bool:
        return self is not TransformFamily.THIN_PLATE_SPLINE

    @property
    def min_pairs(self) -> int:
        return MIN_PAIRS_LINEAR if self.is_linear else MIN_PAIRS_TPS

    @classmethod
    def from_name(cls, name: str) -> 'TransformFamily':
        """
        Look up a family by member name ("NINE_PARAM"), value ("lsq9")
        or display label ("LSQ9 (9 param)"), case-insensitively.
        """
        key = name.strip().lower()
        for family in cls:
            if key in (family.name.lower(), family.value, family.label.lower()):
                return family
        raise ValueError(f"Unknown transform family: {name!r}")


_LABELS = {
    TransformFamily.RIGID: "LSQ6 (Rigid)",
    TransformFamily.SIMILARITY: "LSQ7 (Similarity)",
    TransformFamily.NINE_PARAM: "LSQ9 (9 param)",
    TransformFamily.TEN_PARAM: "LSQ10 (10 param)",
    TransformFamily.FULL_AFFINE: "LSQ12 (Full Affine)",
    TransformFamily.THIN_PLATE_SPLINE: "TPS (Thin-Plate Spline)",
}

_PARAMETER_COUNTS = {
    TransformFamily.RIGID: 6,
    TransformFamily.SIMILARITY: 7,
    TransformFamily.NINE_PARAM: 9,
    TransformFamily.TEN_PARAM: 10,
    TransformFamily.FULL_AFFINE: 12,
    TransformFamily.THIN_PLATE_SPLINE: 0,
}

TRANSFORM_FAMILY_COUNT = len(TransformFamily)


def family_name(family: TransformFamily) -> str:
    """Display name for a transform family."""
    return TransformFamily(family).label


__all__ = [
    'TransformFamily', 'family_name', 'NotInvertibleError', 'TransformFileError',
    'MIN_PAIRS_LINEAR', 'MIN_PAIRS_TPS', 'TRANSFORM_FAMILY_COUNT',
]
