"""Numeric coercion for report and spreadsheet values."""

from __future__ import annotations

import math
import re

import numpy as np
import pandas as pd

_NUMERIC_CHARS_PATTERN = re.compile(r"[^\d,.\-]")


def _normalize_separators(text: str) -> str:
    last_comma = text.rfind(",")
    last_dot = text.rfind(".")
    if last_comma > -1 and last_dot > -1:
        if last_comma > last_dot:
            # 1.234,56 -> 1234.56
            return text.replace(".", "").replace(",", ".", 1)
        return text.replace(",", "")
    if last_comma > -1:
        return text.replace(".", "").replace(",", ".", 1)
    return text.replace(",", "")


def _leading_float(text: str) -> float:
    # parseFloat-like: take the longest numeric prefix ("12.5-3" -> 12.5)
    match = re.match(r"-?(\d+\.?\d*|\.\d+)", text)
    if not match:
        return math.nan
    return float(match.group(0))


def to_num(value: object) -> float:
    """Return ``value`` as a finite float, defaulting to ``0.0``.

    Currency symbols, spaces and letters are dropped. When both ``,`` and ``.``
    appear, whichever comes last is the decimal separator; a lone ``,`` is
    treated as a decimal comma.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    text = str(value).strip()
    if not text:
        return 0.0
    text = _NUMERIC_CHARS_PATTERN.sub("", text)
    if not text:
        return 0.0
    number = _leading_float(_normalize_separators(text))
    return number if math.isfinite(number) else 0.0


def round2(value: float) -> float:
    """Round half-up to two decimals on the scaled value.

    ``round2(1.005) == 1.0`` since ``1.005 * 100`` is ``100.49999...`` in
    binary floating point.
    """
    return math.floor(value * 100 + 0.5) / 100


def optional_num(value: object) -> float | None:
    """Coerce ``value`` unless it is missing (``None`` or empty string)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return to_num(value)


def is_finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def coerce_numeric_series(series: pd.Series) -> pd.Series:
    """Apply :func:`to_num` element-wise, keeping the series index."""
    return series.map(to_num).astype(float)


def to_int_id(value: object) -> int | None:
    """Parse an identifier such as ``7``, ``"7"`` or ``"7.0"``; ``None`` when absent or unparsable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)
