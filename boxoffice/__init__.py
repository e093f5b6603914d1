"""
Box-office snapshot ingestion.

Parses box-office sales summary PDFs into per-performance sales records and
merges them into the performance_sales_snapshots time series in BigQuery.
"""

__version__ = "1.0.0"
