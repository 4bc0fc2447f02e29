from .types import (
    Label,
    LabeledRecord,
    Fold,
    HyperparameterPoint,
    FittedModel,
    MetricRecord,
    FinalModel,
    METRIC_NAMES,
)

__all__ = [
    "Label",
    "LabeledRecord",
    "Fold",
    "HyperparameterPoint",
    "FittedModel",
    "MetricRecord",
    "FinalModel",
    "METRIC_NAMES",
]
