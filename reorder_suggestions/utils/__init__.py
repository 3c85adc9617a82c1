from .date_utils import (
    add_days, convert_to_date, days_between, days_per_month, is_within_days, parse_day_month, safe_date
)
from .math_utils import clamp, pearson_correlation, percentage_distribution, population_std_dev

__all__ = [
    'add_days',
    'convert_to_date',
    'days_between',
    'days_per_month',
    'is_within_days',
    'parse_day_month',
    'safe_date',
    'clamp',
    'pearson_correlation',
    'percentage_distribution',
    'population_std_dev'
]
