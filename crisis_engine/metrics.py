"""Metric model: the four tracked company-health dimensions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class MetricKind(str, Enum):
    MORALE = "Morale"
    FINANCES = "Finances"
    SUPPLY_CHAIN = "Supply Chain"
    PUBLIC_IMAGE = "Public Image"


METRIC_MIN = 0.0
METRIC_MAX = 10.0
INITIAL_VALUE = 6.0


@dataclass(frozen=True)
class MetricState:
    kind: MetricKind
    value: float
    # Informational only; overwritten by every resolution step.
    last_delta: float = 0.0


MetricVector = Dict[MetricKind, MetricState]


def clamp(value: float, lo: float = METRIC_MIN, hi: float = METRIC_MAX) -> float:
    return max(lo, min(hi, value))


def apply_delta(metric: MetricState, delta: float) -> MetricState:
    """Return a new metric moved by ``delta`` and clamped to [0, 10]."""
    new_value = clamp(metric.value + delta)
    return MetricState(kind=metric.kind, value=new_value, last_delta=new_value - metric.value)


def set_value(metric: MetricState, value: float) -> MetricState:
    new_value = clamp(value)
    return MetricState(kind=metric.kind, value=new_value, last_delta=new_value - metric.value)


def initial_metrics(value: float = INITIAL_VALUE) -> MetricVector:
    return {kind: MetricState(kind=kind, value=float(value)) for kind in MetricKind}


def validate_vector(vector: MetricVector) -> MetricVector:
    """Reject partial or over-populated vectors."""
    if set(vector) != set(MetricKind):
        missing = [k.value for k in MetricKind if k not in vector]
        raise ValueError(f"Metric vector must cover every metric; missing: {missing}")
    return vector


def with_updates(vector: MetricVector, updates: Dict[MetricKind, MetricState]) -> MetricVector:
    """Copy the vector, replacing the given entries."""
    new_vector = dict(vector)
    new_vector.update(updates)
    return validate_vector(new_vector)


def snapshot(vector: MetricVector) -> Dict[MetricKind, float]:
    """Plain-number copy used for history entries."""
    return {kind: vector[kind].value for kind in MetricKind}


def below(vector: MetricVector, threshold: float) -> List[MetricKind]:
    """Metrics strictly below ``threshold``, in declaration order."""
    return [kind for kind in MetricKind if vector[kind].value < threshold]


def all_at_least(vector: MetricVector, floor: float) -> bool:
    return all(vector[kind].value >= floor for kind in MetricKind)
