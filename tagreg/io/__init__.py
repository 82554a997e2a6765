# -*- coding: utf-8 -*-
"""
Transform file I/O

MNI .xfm encoding for linear and thin-plate spline results.
"""

from .xfm import (
    write_xfm, read_xfm, format_xfm, format_linear_xfm, format_tps_xfm, parse_linear_xfm,
)

__all__ = [
    'write_xfm',
    'read_xfm',
    'format_xfm',
    'format_linear_xfm',
    'format_tps_xfm',
    'parse_linear_xfm',
]
