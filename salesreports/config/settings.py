"""
Service Settings

Every section reads its own environment prefix (and `.env`):

- REPORT_*  report windows, ranked list length, time zone, snapshot TTL, export
- DATA_*    locations of the sales, products and customers exports
- API_*     HTTP server binding and CORS
- LOG_*     log level and renderer

APP_NAME and APP_ENV sit at the top level.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RANGES = ("today", "week", "month", "quarter", "year")
ENVIRONMENTS = ("development", "staging", "production", "testing")
EXPORT_FORMATS = ("parquet", "csv", "json")


class _EnvSection(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ReportSettings(_EnvSection):
    """Report aggregation and export"""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    default_range: str = Field(default="month", description="Range used when none is requested")
    top_limit: int = Field(default=10, ge=1, description="Entries in ranked product and customer lists")
    timezone: Optional[str] = Field(default=None, description="IANA zone for calendar days, system local if unset")
    snapshot_ttl_seconds: int = Field(default=86400, ge=0, description="Raw snapshot lifetime, 0 never expires")

    output_path: str = Field(default="./reports", description="Directory for exported reports")
    export_format: str = Field(default="parquet", description="parquet, csv or json")

    @field_validator("default_range")
    @classmethod
    def validate_default_range(cls, v: str) -> str:
        if v.strip().lower() not in RANGES:
            raise ValueError(f"Default range must be one of: {list(RANGES)}")
        return v.strip().lower()

    @field_validator("export_format")
    @classmethod
    def validate_export_format(cls, v: str) -> str:
        if v.lower() not in EXPORT_FORMATS:
            raise ValueError(f"Export format must be one of: {list(EXPORT_FORMATS)}")
        return v.lower()


class DataSourceSettings(_EnvSection):
    """File exports read by the default data source"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    sales_path: str = "./data/sales.json"
    products_path: str = "./data/products.json"
    customers_path: str = "./data/customers.json"
    file_format: Optional[str] = Field(default=None, description="Force a format instead of using the file suffix")


class ApiSettings(_EnvSection):
    """HTTP server"""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8081"]


class LoggingSettings(_EnvSection):
    """Log output"""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    format: str = Field(default="json", description="json, or anything else for console output")


class Settings(_EnvSection):
    """Application settings, one attribute per section"""

    app_name: str = Field(default="sales-reports", validation_alias=AliasChoices("APP_NAME", "app_name"))
    environment: str = Field(default="development", validation_alias=AliasChoices("APP_ENV", "environment"))
    version: str = "1.0.0"

    reports: ReportSettings = Field(default_factory=ReportSettings)
    data_source: DataSourceSettings = Field(default_factory=DataSourceSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v.lower() not in ENVIRONMENTS:
            raise ValueError(f"Environment must be one of: {list(ENVIRONMENTS)}")
        return v.lower()

    @property
    def docs_enabled(self) -> bool:
        """Interactive API docs are served outside production"""
        return self.environment != "production"


@lru_cache()
def get_settings() -> Settings:
    """Settings loaded once per process"""
    return Settings()
