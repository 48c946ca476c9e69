# Application Scheduling Package
from .interval_calculator import IntervalCalculator, IntervalResult, validate_quality
from .retention import RetentionEstimator

__all__ = ["IntervalCalculator", "IntervalResult", "RetentionEstimator", "validate_quality"]
