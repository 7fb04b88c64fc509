"""
Glue between the scan core and the external face-analysis service.

The service turns a captured image into qualitative wellness text and an
``estimatedAge`` string such as ``"25-30"``.  Only the pieces the core
needs are handled here: the biometrics block sent along with the request,
the age bucket used for ranking, and the composite wellness index.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Union

import numpy as np

from vitalscan.models import VitalsResult

UNKNOWN_BUCKET = "unknown"

_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def build_analysis_payload(vitals: VitalsResult) -> Dict[str, Any]:
    """Key/value biometrics to embed in the analysis request."""
    return {"biometrics": vitals.as_biometrics()}


def age_bucket(estimated_age: Union[str, int, float, None]) -> str:
    """
    Map an age estimate to a coarse decade bucket.

    Accepts a number or a string containing one or two numbers (a range
    such as ``"25-30"`` uses its midpoint).  Anything unparsable maps to
    ``"unknown"``.
    """
    if estimated_age is None:
        return UNKNOWN_BUCKET
    if isinstance(estimated_age, (int, float)):
        age = float(estimated_age)
    else:
        numbers = [float(n) for n in _NUMBER.findall(str(estimated_age))[:2]]
        if not numbers:
            return UNKNOWN_BUCKET
        age = sum(numbers) / len(numbers)

    if age < 0:
        return UNKNOWN_BUCKET
    if age < 20:
        return "<20"
    if age >= 60:
        return "60+"
    decade = int(age // 10) * 10
    return f"{decade}-{decade + 9}"


def compose_wellness_index(scores: Mapping[str, float]) -> int:
    """
    Average 0 – 100 sub-scores into a single index clamped to [1, 100].

    Raises
    ------
    ValueError
        If *scores* is empty.
    """
    if not scores:
        raise ValueError("At least one sub-score is required.")
    mean = float(np.mean(list(scores.values())))
    return int(max(1, min(100, round(mean))))
