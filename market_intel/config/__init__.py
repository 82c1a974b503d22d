"""
Application Settings
Load from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 4000
    CORS_ALLOW_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # ======================
    # Database (historical snapshots)
    # ======================
    DATABASE_URL: str = "sqlite+aiosqlite:///./market_intel.db"
    DB_PERSISTENCE_ENABLED: bool = False
    AUTO_CREATE_TABLES: bool = True

    # ======================
    # Market Timings (IST)
    # ======================
    TIMEZONE: str = "Asia/Kolkata"
    MARKET_OPEN_HOUR: int = 9
    MARKET_OPEN_MINUTE: int = 15
    MARKET_CLOSE_HOUR: int = 15
    MARKET_CLOSE_MINUTE: int = 30

    # Policy meeting calendar months (1 = January). Approximation only.
    POLICY_MEETING_MONTHS: str = "2,4,6,8,10,12"

    # ======================
    # Market Intelligence
    # ======================
    INTELLIGENCE_CACHE_TTL_MINUTES: int = 15
    HISTORY_MAX_DAYS: int = 365

    # Placeholders used when the quote source is unavailable
    DEFAULT_VIX: float = 15.0
    DEFAULT_NIFTY_SPOT: float = 24750.0
    DEFAULT_BANKNIFTY_SPOT: float = 51200.0

    # ======================
    # Market Data
    # ======================
    QUOTE_CACHE_TTL_SECONDS: int = 30
    FOREIGN_INDEX_SYMBOLS: str = "^GSPC,^DJI,^IXIC"
    NEWS_FEEDS: str = (
        "https://economictimes.indiatimes.com/markets/rssfeeds/1977021501.cms,"
        "https://www.moneycontrol.com/rss/marketreports.xml"
    )
    NEWS_ITEMS_PER_SOURCE: int = 5
    NEWS_MAX_ITEMS: int = 10
    HTTP_TIMEOUT_SECONDS: float = 5.0

    # ======================
    # Scheduler
    # ======================
    SCHEDULER_ENABLED: bool = False

    # ======================
    # AI enrichment (optional)
    # ======================
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    LLM_TIMEOUT_SECONDS: float = 10.0

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="forbid",
    )

    @staticmethod
    def split_csv(raw: str) -> list[str]:
        return [item.strip() for item in raw.split(",") if item.strip()]

    @property
    def foreign_index_symbols(self) -> list[str]:
        return self.split_csv(self.FOREIGN_INDEX_SYMBOLS)

    @property
    def news_feeds(self) -> list[str]:
        return self.split_csv(self.NEWS_FEEDS)

    @property
    def policy_meeting_months(self) -> frozenset[int]:
        return frozenset(int(m) for m in self.split_csv(self.POLICY_MEETING_MONTHS))

    @property
    def cors_allow_origins(self) -> list[str]:
        return self.split_csv(self.CORS_ALLOW_ORIGINS)


settings = Settings()
