"""Helpers for converting simulator outputs into JSON-friendly structures."""
from __future__ import annotations

import dataclasses
import json
import math
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd


def json_default(obj: Any) -> Any:
    """Fallback encoder for numpy/pandas objects, dataclasses and enums."""

    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, pd.DataFrame):
        return obj.to_dict(orient="list")
    if isinstance(obj, pd.Series):
        return obj.to_dict()
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _finite(data: Any) -> Any:
    """Replace inf/NaN floats with None; strict JSON has no spelling for them."""

    if isinstance(data, float):
        return data if math.isfinite(data) else None
    if isinstance(data, dict):
        return {k: _finite(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_finite(v) for v in data]
    return data


def to_json_ready(data: Any) -> Any:
    """Return a structure composed of JSON-serializable primitives."""

    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        data = dataclasses.asdict(data)
    return _finite(json.loads(json.dumps(data, default=json_default)))


__all__ = ["json_default", "to_json_ready"]
