"""
Data Ingestion Module
"""
from .records import (
    Customer,
    LineItem,
    NormalizationStats,
    Product,
    Sale,
    coerce_number,
    normalize_records,
    parse_line_items,
    parse_timestamp,
)
from .sources import (
    DataSnapshot,
    FileDataSource,
    FileFormat,
    InMemoryDataSource,
    ReportDataSource,
    fetch_snapshot,
)

__all__ = [
    "Customer",
    "LineItem",
    "NormalizationStats",
    "Product",
    "Sale",
    "coerce_number",
    "normalize_records",
    "parse_line_items",
    "parse_timestamp",
    "DataSnapshot",
    "FileDataSource",
    "FileFormat",
    "InMemoryDataSource",
    "ReportDataSource",
    "fetch_snapshot",
]
