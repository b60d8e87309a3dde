"""Exports & reporting: CSV writers and Markdown summaries for the capital ledger.

- writers.py: CSV emitters for ledger history and WACC trend series
- reports.py: wacc summary Markdown
"""
