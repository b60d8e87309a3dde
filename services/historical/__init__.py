"""Historical WACC series: period windows and trend aggregation.

- periods.py: period types, calendar/rolling windows, labels
- trend.py: per-period WACC points and single-period summaries
"""
