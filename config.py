"""Configuration management via pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.policy import FeePolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Catalog input
    products_path: Path = Field(default=Path("./productos.json"))
    products_fallback_path: Path | None = Field(default=Path("./api/productos.json"))

    # HTTP
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Normalization
    random_seed: int | None = None
    fee_policy: FeePolicy = FeePolicy.DERIVED_FROM_PREMIUM
    extract_on_time_percentage: bool = False
    has_subcategory: bool = True
    tier_match_case_sensitive: bool = True
    landed_surcharge: float = 1.80
    premium_markup: float = 1.20
    standard_fee_floor: float = 0.90
    economy_fee_floor: float = 0.50
    fee_ceiling_floor: float = 0.50
    premium_fee_range: tuple[float, float] = (25.00, 40.00)
    standard_fee_range: tuple[float, float] = (10.00, 25.00)
    economy_fee_range: tuple[float, float] = (3.00, 10.00)
    currency_markers: list[str] = Field(default_factory=lambda: ["US$", "MX$", "USD", "MXN"])
    normalize_workers: int = 1

    # Query defaults
    default_page_size: int = 20
    recommended_count: int = 10

    # Scraper
    urls_path: Path = Field(default=Path("./urls.json"))
    scrape_output_path: Path = Field(default=Path("./productos_detalle.json"))
    browser_headless: bool = True
    browser_channel: str | None = None
    page_settle_seconds: float = 5.0
    page_timeout_ms: int = 30000

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Field(default=Path("./logs"))

    @property
    def catalog_path(self) -> Path:
        """Primary products file, or the fallback location when it is missing."""
        if self.products_path.exists():
            return self.products_path
        if self.products_fallback_path and self.products_fallback_path.exists():
            return self.products_fallback_path
        return self.products_path


settings = Settings()
