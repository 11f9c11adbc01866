import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class DatabaseConfig:
    """Database configuration settings"""
    url: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600
    echo: bool = False  # Log SQL queries


@dataclass
class APIConfig:
    """API-specific configuration"""
    version: str = "v1"
    title: str = "Storefront API"
    max_page_size: int = 100
    default_page_size: int = 20
    related_products_limit: int = 4


@dataclass
class PricingConfig:
    """
    Checkout pricing rules.

    discount_codes maps an upper-cased code to {"type": "percentage"|"fixed", "value": n}
    where percentage values are whole percents and fixed values are cents.
    """
    tax_rate: Decimal = Decimal("0.08")
    flat_shipping_cents: int = 999
    free_shipping_threshold_cents: int = 5000  # free only when the subtotal is strictly above
    low_stock_threshold: int = 5
    high_quantity_warning: int = 10
    currency: str = "USD"
    shipping_policy: str = "flat"  # flat, method
    auto_promotions: bool = False
    discount_codes: Dict[str, Dict[str, Any]] = field(default_factory=lambda: {
        "SAVE10": {"type": "percentage", "value": 10},
        "WELCOME20": {"type": "fixed", "value": 2000},
    })
    # SKU -> (buy, free) and SKU -> [(min_quantity, unit_price_cents)], used with auto_promotions
    buy_x_get_y: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    bulk_pricing: Dict[str, List[Tuple[int, int]]] = field(default_factory=dict)


@dataclass
class AppConfig:
    """Application configuration"""
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"


class Config:
    def __init__(self):
        self.environment = os.getenv("ENVIRONMENT", "development")

        self.database = DatabaseConfig(
            url=os.getenv("DATABASE_URL", "sqlite:///storefront.db"),
            pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
            pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),
            echo=_env_bool("DB_ECHO"),
        )

        self.api = APIConfig(
            max_page_size=int(os.getenv("MAX_PAGE_SIZE", "100")),
            default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", "20")),
        )

        self.pricing = PricingConfig(
            tax_rate=Decimal(os.getenv("TAX_RATE", "0.08")),
            flat_shipping_cents=int(os.getenv("FLAT_SHIPPING_CENTS", "999")),
            free_shipping_threshold_cents=int(os.getenv("FREE_SHIPPING_THRESHOLD_CENTS", "5000")),
            low_stock_threshold=int(os.getenv("LOW_STOCK_THRESHOLD", "5")),
            currency=os.getenv("DEFAULT_CURRENCY", "USD"),
            shipping_policy=os.getenv("SHIPPING_POLICY", "flat").lower(),
            auto_promotions=_env_bool("AUTO_PROMOTIONS"),
        )

        self.app = AppConfig(
            debug=_env_bool("DEBUG"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
            environment=self.environment,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> None:
        """Validate critical configuration"""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if self.pricing.shipping_policy not in ("flat", "method"):
            raise ValueError("SHIPPING_POLICY must be 'flat' or 'method'")

        if not Decimal("0") <= self.pricing.tax_rate < Decimal("1"):
            raise ValueError("TAX_RATE must be a fraction between 0 and 1")

        if self.pricing.flat_shipping_cents < 0 or self.pricing.free_shipping_threshold_cents < 0:
            raise ValueError("FLAT_SHIPPING_CENTS and FREE_SHIPPING_THRESHOLD_CENTS must not be negative")

        if self.is_production and self.database.url.startswith("sqlite"):
            raise ValueError("A SQLite DATABASE_URL is not supported in production")


config = Config()
