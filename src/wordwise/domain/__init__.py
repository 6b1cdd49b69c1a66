# Domain Package
from .exceptions import (
    ConfigurationError,
    NotAuthenticated,
    PersistenceError,
    TransientStoreError,
    ValidationError,
    WordwiseError,
)
from .models import CardProgress, Classification, MasteryState, ProgressStats, StateThreshold
from .ports import CardCatalog, ProgressRepository, ThresholdRepository

__all__ = [
    "CardProgress",
    "Classification",
    "MasteryState",
    "ProgressStats",
    "StateThreshold",
    "ProgressRepository",
    "CardCatalog",
    "ThresholdRepository",
    "WordwiseError",
    "NotAuthenticated",
    "ValidationError",
    "ConfigurationError",
    "TransientStoreError",
    "PersistenceError",
]
