# -*- coding: utf-8 -*-
"""
MNI Transform File (.xfm) Handler

Text container, statements terminated by ';':
- Header line: "MNI Transform File"
- '%' lines are comments
- Linear entry: Transform_Type = Linear; Linear_Transform = <3x4 rows>;
- TPS entry: Transform_Type = Thin_Plate_Spline_Transform; Invert_Flag;
  Number_Dimensions; Points = <n rows>; Displacements = <n+4 rows>;

TPS files are write-only: read_xfm accepts a single linear entry only.
"""

import logging
import os
import stat
import tempfile
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core.base import TransformFileError
from ..core.config import DEFAULT_SETTINGS
from ..core.transform import TransformResult

logger = logging.getLogger(__name__)

HEADER = "MNI Transform File"
LINEAR_TYPE = "Linear"
TPS_TYPE = "Thin_Plate_Spline_Transform"


def _check_precision(precision: int) -> int:
    if precision is None:
        return DEFAULT_SETTINGS.xfm_precision
    if precision < 15:
        raise ValueError(f"precision {precision} below 15 digits loses round-trip precision")
    return precision


def _file_mode(path: str) -> int:
    """Permission bits a plain open(path, "w") would leave on the file."""
    if os.path.exists(path):
        return stat.S_IMODE(os.stat(path).st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _format_rows(rows: np.ndarray, precision: int) -> str:
    """One ' x y z' line per row, ';' after the last."""
    lines = [" " + " ".join(f"{v:.{precision}g}" for v in row) for row in rows]
    return "\n".join(lines) + ";\n"


def format_linear_xfm(matrix: np.ndarray, precision: int = None) -> str:
    """Encode a 4x4 homogeneous matrix as a linear transform file (top 3 rows, row-major)."""
    precision = _check_precision(precision)
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape != (4, 4):
        raise ValueError(f"matrix must be 4x4, got {matrix.shape}")
    return (
        f"{HEADER}\n"
        f"\nTransform_Type = {LINEAR_TYPE};\n"
        "Linear_Transform =\n"
        + _format_rows(matrix[:3, :], precision)
    )


def format_tps_xfm(result: TransformResult, precision: int = None) -> str:
    """Encode a thin-plate spline result (kernel centres and n+4 weight rows)."""
    precision = _check_precision(precision)
    return (
        f"{HEADER}\n"
        f"\nTransform_Type = {TPS_TYPE};\n"
        "Invert_Flag = True;\n"
        "Number_Dimensions = 3;\n"
        "Points =\n"
        + _format_rows(result.tps_source_points, precision)
        + "Displacements =\n"
        + _format_rows(result.tps_weights, precision)
    )


def format_xfm(result: TransformResult, precision: int = None) -> str:
    if precision is None:
        precision = result.settings.xfm_precision
    if not result.is_linear:
        return format_tps_xfm(result, precision)
    return format_linear_xfm(result.linear_matrix, precision)


def write_xfm(path, result: TransformResult, precision: int = None) -> bool:
    """
    Write a transform file.

    The text goes to a temporary file beside `path` that is moved into place
    only once fully written, so a failure never leaves a partial file.

    The file gets the permissions ordinary creation would give it (umask
    applied), or keeps those of the file it replaces.

    Returns:
        True on success, False for an invalid result or an I/O failure.

    Raises:
        ValueError: If precision is below 15 significant digits.
    """
    if not result.valid:
        logger.warning("Refusing to write invalid %s result to %s", result.family.label, path)
        return False

    text = format_xfm(result, precision)
    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".xfm")
        with os.fdopen(fd, "w") as out:
            out.write(text)
        os.chmod(tmp_path, _file_mode(path))
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        logger.warning("Failed to write transform file %s: %s", path, e)
        return False
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)

    logger.debug("Wrote %s transform to %s", result.family.label, path)
    return True


def _parse_statements(text: str) -> List[Tuple[str, str]]:
    """Split file text into ordered (key, value) statements."""
    lines = [line for line in text.splitlines() if not line.lstrip().startswith('%')]
    while lines and not lines[0].strip():
        lines.pop(0)
    if not lines or lines[0].strip() != HEADER:
        raise TransformFileError(f"missing '{HEADER}' header")

    body = "\n".join(lines[1:])
    statements = []
    for chunk in body.split(';'):
        if not chunk.strip():
            continue
        key, sep, value = chunk.partition('=')
        if not sep:
            raise TransformFileError(f"malformed statement: {chunk.strip()!r}")
        statements.append((key.strip(), value.strip()))
    return statements


def parse_linear_xfm(text: str) -> np.ndarray:
    """
    Decode a single-entry linear transform file into a 4x4 matrix.

    Raises:
        TransformFileError: For a missing header, a concatenated (multi-entry)
            file, a non-linear entry, or a malformed matrix.
    """
    statements = _parse_statements(text)

    types = [value for key, value in statements if key == "Transform_Type"]
    if len(types) != 1:
        raise TransformFileError(f"expected exactly one transform, found {len(types)}")
    if types[0] != LINEAR_TYPE:
        raise TransformFileError(f"only linear transforms can be read, found {types[0]}")

    fields: Dict[str, str] = dict(statements)
    if "Linear_Transform" not in fields:
        raise TransformFileError("missing Linear_Transform")
    try:
        values = [float(v) for v in fields["Linear_Transform"].split()]
    except ValueError as e:
        raise TransformFileError(f"non-numeric Linear_Transform entry: {e}") from e
    if len(values) != 12:
        raise TransformFileError(f"Linear_Transform needs 12 values, got {len(values)}")

    matrix = np.eye(4)
    matrix[:3, :] = np.array(values).reshape(3, 4)

    if fields.get("Invert_Flag", "False").lower() == "true":
        try:
            matrix = np.linalg.inv(matrix)
        except np.linalg.LinAlgError as e:
            raise TransformFileError("Invert_Flag set on a singular matrix") from e
    return matrix


def read_xfm(path) -> Optional[np.ndarray]:
    """
    Read a linear transform file.

    Returns:
        4x4 matrix, or None when the file is unreadable, holds more than one
        transform, or holds a non-linear (e.g. thin-plate spline) transform.
    """
    try:
        with open(path, "r") as f:
            text = f.read()
        return parse_linear_xfm(text)
    except OSError as e:
        logger.warning("Cannot read transform file %s: %s", path, e)
    except TransformFileError as e:
        logger.warning("Unsupported transform file %s: %s", path, e)
    return None
