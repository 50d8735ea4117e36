"""Progress estimation and live status rendering."""

from .estimator import ProgressEstimator
from .schedule import ScheduleModel
from .status_line import LiveStatusLine, StatusLineHandler, colorize_tagged_text, format_seconds

__all__ = [
    'LiveStatusLine',
    'ProgressEstimator',
    'ScheduleModel',
    'StatusLineHandler',
    'colorize_tagged_text',
    'format_seconds',
]
