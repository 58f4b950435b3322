from .date_parser import DateParser
from .derived_metrics import DerivedMetrics

__all__ = ["DateParser", "DerivedMetrics"]
