"""
Report Data Sources

Collaborators that supply the three raw collections a report is built from.
The aggregation layer depends only on the ReportDataSource interface, so the
hosted database client, a file export or a test fixture can be swapped in.

Each listing returns complete, already deserialized rows; no pagination.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import polars as pl
import structlog

from salesreports.exceptions import DataSourceError
from .records import (
    Customer,
    NormalizationStats,
    Product,
    Sale,
    normalize_records,
)

logger = structlog.get_logger(__name__)

RawRow = Dict[str, Any]


class FileFormat(str, Enum):
    """Supported export file formats"""
    CSV = "csv"
    JSON = "json"
    JSONL = "jsonl"
    PARQUET = "parquet"

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileFormat":
        """Infer the format from a file suffix"""
        suffix = Path(path).suffix.lower().lstrip(".")
        if suffix == "ndjson":
            return cls.JSONL
        try:
            return cls(suffix)
        except ValueError:
            raise ValueError(f"Unsupported file format: {path}") from None


class ReportDataSource(ABC):
    """Abstract base class for raw report data collaborators"""

    @abstractmethod
    async def list_sales(self) -> List[RawRow]:
        """Return every sale row"""
        pass

    @abstractmethod
    async def list_products(self) -> List[RawRow]:
        """Return every product row"""
        pass

    @abstractmethod
    async def list_customers(self) -> List[RawRow]:
        """Return every customer row"""
        pass


class InMemoryDataSource(ReportDataSource):
    """Serves rows held in memory, e.g. fixtures or an already fetched payload"""

    def __init__(
        self,
        sales: Optional[Sequence[RawRow]] = None,
        products: Optional[Sequence[RawRow]] = None,
        customers: Optional[Sequence[RawRow]] = None,
    ):
        self.sales = list(sales or [])
        self.products = list(products or [])
        self.customers = list(customers or [])

    async def list_sales(self) -> List[RawRow]:
        return list(self.sales)

    async def list_products(self) -> List[RawRow]:
        return list(self.products)

    async def list_customers(self) -> List[RawRow]:
        return list(self.customers)


class FileDataSource(ReportDataSource):
    """
    Reads collection exports from disk with Polars.

    CSV exports are read with every column as a string so numeric and date
    coercion happens in one place, at the record boundary.

    Example:
        source = FileDataSource(
            sales_path="data/sales.csv",
            products_path="data/products.csv",
            customers_path="data/customers.csv",
        )
        snapshot = await fetch_snapshot(source)
    """

    def __init__(
        self,
        sales_path: Union[str, Path],
        products_path: Union[str, Path],
        customers_path: Union[str, Path],
        file_format: Optional[Union[str, FileFormat]] = None,
    ):
        self.sales_path = Path(sales_path)
        self.products_path = Path(products_path)
        self.customers_path = Path(customers_path)
        self.file_format = FileFormat(file_format) if file_format else None

    @classmethod
    def from_settings(cls, settings) -> "FileDataSource":
        """Build a file source from DataSourceSettings"""
        return cls(
            sales_path=settings.sales_path,
            products_path=settings.products_path,
            customers_path=settings.customers_path,
            file_format=settings.file_format,
        )

    def _read_frame(self, path: Path) -> pl.DataFrame:
        """Read file based on format"""
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        file_format = self.file_format or FileFormat.from_path(path)
        if file_format == FileFormat.CSV:
            return pl.read_csv(path, infer_schema_length=0)
        if file_format == FileFormat.JSON:
            return pl.read_json(path)
        if file_format == FileFormat.JSONL:
            return pl.read_ndjson(path)
        return pl.read_parquet(path)

    def _read_rows(self, path: Path) -> List[RawRow]:
        df = self._read_frame(path)
        logger.debug("Read export file", file=str(path), rows=len(df))
        return df.to_dicts()

    async def list_sales(self) -> List[RawRow]:
        return await asyncio.to_thread(self._read_rows, self.sales_path)

    async def list_products(self) -> List[RawRow]:
        return await asyncio.to_thread(self._read_rows, self.products_path)

    async def list_customers(self) -> List[RawRow]:
        return await asyncio.to_thread(self._read_rows, self.customers_path)


@dataclass(frozen=True)
class DataSnapshot:
    """Immutable view of the three normalized collections for one aggregation pass"""
    sales: tuple
    products: tuple
    customers: tuple
    fetched_at: datetime = field(default_factory=datetime.now)
    stats: tuple = ()

    @property
    def is_empty(self) -> bool:
        return not (self.sales or self.products or self.customers)

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        return ((now or datetime.now()) - self.fetched_at).total_seconds()


async def fetch_snapshot(
    source: ReportDataSource,
    tz: Optional[tzinfo] = None,
) -> DataSnapshot:
    """
    Fetch all three collections concurrently and normalize them.

    Args:
        source: Data collaborator to list from
        tz: Zone used to localize aware sale timestamps

    Returns:
        DataSnapshot of normalized records

    Raises:
        DataSourceError: If any listing fails
    """
    started_at = datetime.now()

    try:
        raw_sales, raw_products, raw_customers = await asyncio.gather(
            source.list_sales(),
            source.list_products(),
            source.list_customers(),
        )
    except Exception as e:
        logger.error(
            "Failed to fetch report data",
            source=type(source).__name__,
            error=str(e),
        )
        raise DataSourceError(
            f"Failed to fetch report data: {e}",
            details={"source": type(source).__name__},
        ) from e

    sales, sales_stats = normalize_records(raw_sales or [], Sale, tz)
    products, product_stats = normalize_records(raw_products or [], Product, tz)
    customers, customer_stats = normalize_records(raw_customers or [], Customer, tz)

    stats: List[NormalizationStats] = [sales_stats, product_stats, customer_stats]
    snapshot = DataSnapshot(
        sales=tuple(sales),
        products=tuple(products),
        customers=tuple(customers),
        stats=tuple(stats),
    )

    logger.info(
        "Report data fetched",
        sales=len(sales),
        products=len(products),
        customers=len(customers),
        duration_seconds=round((datetime.now() - started_at).total_seconds(), 3),
    )

    return snapshot
