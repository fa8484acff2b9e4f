"""Data series preparation for goals.

A goal payload carries ``data_unit`` (required), optional ``data_scale`` and
``data_series``: a list of yearly values starting at 2020. Each entry is a
number, a numeric string, or blank (no value for that year).
"""
import math

from roadmap_platform.core.exceptions import ValidationError
from roadmap_platform.models.roadmap import DATA_SERIES_FIRST_YEAR, DATA_SERIES_LAST_YEAR

MAX_VALUES = DATA_SERIES_LAST_YEAR - DATA_SERIES_FIRST_YEAR + 1


def _parse_value(raw):
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("boolean is not a number")
    if isinstance(raw, str):
        raw = raw.strip().replace(",", ".")
        if not raw:
            return None
    value = float(raw)
    if math.isnan(value) or math.isinf(value):
        raise ValueError("not a finite number")
    return value


def prepare_data_series(payload):
    """Build the column values for a DataSeries row.

    Returns:
        dict with ``unit``, ``scale`` and ``values`` ({"2020": float|None, ...}).

    Raises:
        ValidationError: "Invalid data series" for non-list input, too many
            entries or an entry that is not a number.
    """
    series = payload.get("data_series")
    if not isinstance(series, list):
        raise ValidationError("Invalid data series", details={"data_series": "must be a list"})
    if len(series) > MAX_VALUES:
        raise ValidationError(
            "Invalid data series",
            details={"data_series": f"at most {MAX_VALUES} values ({DATA_SERIES_FIRST_YEAR}-{DATA_SERIES_LAST_YEAR})"},
        )

    values = {}
    for offset, raw in enumerate(series):
        year = str(DATA_SERIES_FIRST_YEAR + offset)
        try:
            values[year] = _parse_value(raw)
        except (ValueError, TypeError):
            raise ValidationError(
                "Invalid data series", details={year: f"{raw!r} is not a number"}
            ) from None

    return {
        "unit": payload["data_unit"],
        "scale": payload.get("data_scale") or None,
        "values": values,
    }
