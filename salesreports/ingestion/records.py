"""
Raw Record Normalization

Strict record types for the three raw collections a report is built from.
Values arriving from the client service layer or from database exports are
loosely typed (numbers as strings, timestamps in several shapes, line items
serialized as JSON text). They are normalized here, once, so the aggregation
code only ever sees finite floats, naive local datetimes and parsed items.

Per-record defects never raise:
- malformed numbers coerce to 0
- malformed timestamps become None (the sale is later excluded by range)
- malformed line item payloads become an empty tuple
"""

import json
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

logger = structlog.get_logger(__name__)

_NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_FALLBACK_DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
]


def coerce_number(value: Any) -> float:
    """
    Coerce a loosely typed numeric value to a finite float.

    Strings are read by their leading numeric prefix ("12.5kg" -> 12.5).
    Anything unparsable, NaN or infinite becomes 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value)
        if not match:
            return 0.0
        value = match.group(0)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _to_local_naive(value: datetime, tz: Optional[tzinfo]) -> Optional[datetime]:
    if value.tzinfo is None:
        return value
    try:
        return value.astimezone(tz).replace(tzinfo=None)
    except (OverflowError, OSError):
        # Shifting by the offset left the representable datetime range
        return None


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse a sale timestamp into a naive datetime in report-local time.

    Accepts datetimes, dates, epoch milliseconds and ISO-8601 strings.
    Aware values are converted to ``tz`` (system local zone when None).
    Returns None when the value is missing or cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _to_local_naive(value, tz)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        parsed = None
    if parsed is not None:
        return _to_local_naive(parsed, tz)

    for fmt in _FALLBACK_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_line_items(value: Any) -> List[Dict[str, Any]]:
    """
    Parse a sale's serialized item list.

    The payload is either JSON text or an already deserialized list.
    Malformed JSON and non-list payloads yield an empty list; entries that
    are not objects are skipped.
    """
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, dict)]


def _optional_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class _RawRecord(BaseModel):
    """Common configuration for normalized input records"""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class LineItem(_RawRecord):
    """One product line inside a sale"""

    product_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("productId", "product_id")
    )
    quantity: float = 1.0
    price: float = 0.0

    @field_validator("product_id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> Optional[str]:
        return _optional_id(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _normalize_quantity(cls, v: Any) -> float:
        # Absent quantity counts as a single unit
        if v is None:
            return 1.0
        return coerce_number(v)

    @field_validator("price", mode="before")
    @classmethod
    def _normalize_price(cls, v: Any) -> float:
        return coerce_number(v)


class Sale(_RawRecord):
    """A completed point-of-sale transaction"""

    id: Optional[str] = None
    created_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    total: float = 0.0
    customer_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customerId", "customer_id")
    )
    payment_method: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("paymentMethod", "payment_method")
    )
    status: Optional[str] = None
    items: Tuple[LineItem, ...] = ()

    @field_validator("id", "customer_id", "payment_method", "status", mode="before")
    @classmethod
    def _normalize_text(cls, v: Any) -> Optional[str]:
        return _optional_id(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def _normalize_created_at(cls, v: Any, info: ValidationInfo) -> Optional[datetime]:
        tz = (info.context or {}).get("tz")
        return parse_timestamp(v, tz)

    @field_validator("total", mode="before")
    @classmethod
    def _normalize_total(cls, v: Any) -> float:
        return coerce_number(v)

    @field_validator("items", mode="before")
    @classmethod
    def _normalize_items(cls, v: Any) -> List[Dict[str, Any]]:
        return parse_line_items(v)


class Product(_RawRecord):
    """A catalogue product with its stock level"""

    id: Optional[str] = None
    name: str = ""
    price: float = 0.0
    cost: Optional[float] = None
    stock: float = 0.0

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> Optional[str]:
        return _optional_id(v)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("price", "stock", mode="before")
    @classmethod
    def _normalize_amount(cls, v: Any) -> float:
        return coerce_number(v)

    @field_validator("cost", mode="before")
    @classmethod
    def _normalize_cost(cls, v: Any) -> Optional[float]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return coerce_number(v)


class Customer(_RawRecord):
    """A registered customer"""

    id: Optional[str] = None
    name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> Optional[str]:
        return _optional_id(v)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, v: Any) -> str:
        return "" if v is None else str(v)


RecordT = TypeVar("RecordT", bound=_RawRecord)


@dataclass
class NormalizationStats:
    """Statistics from normalizing one raw collection"""
    record_type: str
    total_rows: int = 0
    rows_normalized: int = 0
    rows_skipped: int = 0
    missing_timestamps: int = 0
    empty_item_lists: int = 0

    @property
    def clean(self) -> bool:
        return self.rows_skipped == 0 and self.missing_timestamps == 0


def normalize_records(
    raw: Iterable[Any],
    model: Type[RecordT],
    tz: Optional[tzinfo] = None,
) -> Tuple[List[RecordT], NormalizationStats]:
    """
    Validate raw rows into records of ``model``.

    Rows that are not mappings or fail validation are skipped and counted.

    Args:
        raw: Raw rows as returned by a data source
        model: Record type to build (Sale, Product or Customer)
        tz: Zone used to localize aware sale timestamps

    Returns:
        Tuple of (records, stats)
    """
    stats = NormalizationStats(record_type=model.__name__)
    records: List[RecordT] = []
    context = {"tz": tz}

    for row in raw:
        stats.total_rows += 1
        if not isinstance(row, dict):
            stats.rows_skipped += 1
            continue
        try:
            record = model.model_validate(row, context=context)
        except ValidationError as e:
            stats.rows_skipped += 1
            logger.debug(
                "Skipping malformed record",
                record_type=model.__name__,
                errors=e.error_count(),
            )
            continue

        if isinstance(record, Sale):
            if record.created_at is None:
                stats.missing_timestamps += 1
            if not record.items:
                stats.empty_item_lists += 1

        records.append(record)
        stats.rows_normalized += 1

    if not stats.clean:
        logger.warning(
            "Normalized records with defects",
            record_type=stats.record_type,
            total_rows=stats.total_rows,
            rows_skipped=stats.rows_skipped,
            missing_timestamps=stats.missing_timestamps,
        )

    return records, stats
