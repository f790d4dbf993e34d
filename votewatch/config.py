"""
Configuration management for VoteWatch.

Supports local (SQLite), development and production (PostgreSQL)
environments, plus settings for the social-media client, the response
cache, the roll-call scraper and the ingestion workers.

Responsibility: Centralized configuration and environment management
"""

from enum import Enum
from typing import Optional, List
import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment"""
    LOCAL = "local"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class DatabaseConfig(BaseSettings):
    """Database configuration"""
    
    # Connection settings - prioritize DATABASE_URL env var
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    driver: str = Field(default="postgresql+asyncpg")
    host: Optional[str] = Field(default="localhost")
    port: Optional[int] = Field(default=5432)
    database: str = Field(default="votewatch")
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    
    # Connection pool settings
    pool_size: int = Field(default=5)
    max_overflow: int = Field(default=10)
    pool_timeout: int = Field(default=30)
    pool_recycle: int = Field(default=3600)
    
    # Query settings
    echo: bool = Field(default=False)
    
    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True  # Allow alias matching
    )
    
    @property
    def connection_string(self) -> str:
        """
        Build database connection string.
        
        Returns:
            SQLAlchemy connection string using an async driver
        """
        if self.database_url:
            url = self.database_url
            # Hosting providers hand out plain postgres:// URLs
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url
        
        if self.driver.startswith("sqlite"):
            return f"{self.driver}:///{self.database}"
        
        auth = ""
        if self.username:
            auth = self.username
            if self.password:
                auth = f"{auth}:{self.password}"
            auth = f"{auth}@"
        
        host_port = self.host or "localhost"
        if self.port:
            host_port = f"{host_port}:{self.port}"
        
        return f"{self.driver}://{auth}{host_port}/{self.database}"
    
    @property
    def is_sqlite(self) -> bool:
        """True when the resolved connection targets SQLite"""
        return self.connection_string.startswith("sqlite")


class TwitterConfig(BaseSettings):
    """Social-media (Twitter API v2) client configuration"""
    
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token for the Twitter API v2"
    )
    api_base: str = Field(default="https://api.twitter.com/2")
    timeout_seconds: float = Field(default=30.0)
    
    # Retry on HTTP 429
    max_retries: int = Field(default=3)
    initial_retry_delay: float = Field(default=5.0)  # seconds
    
    # Quota bookkeeping
    default_quota: int = Field(default=300)
    default_window_seconds: int = Field(default=900)  # 15 minutes
    reset_safety_margin: float = Field(default=1.0)  # seconds
    
    model_config = SettingsConfigDict(
        env_prefix="TWITTER_",
        case_sensitive=False,
        extra="ignore"
    )


class CacheConfig(BaseSettings):
    """In-process response cache configuration"""
    
    max_size: int = Field(default=500)
    ttl_seconds: float = Field(default=600.0)  # 10 minutes
    
    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
        extra="ignore"
    )


class ScraperConfig(BaseSettings):
    """Roll-call page scraper configuration"""
    
    base_url: str = Field(default="https://www.psp.cz/sqw")
    rate_limit_per_second: float = Field(default=1.0)
    timeout_seconds: int = Field(default=30)
    user_agent: str = Field(default="VoteWatch/1.0 (+https://github.com/votewatch)")
    
    model_config = SettingsConfigDict(
        env_prefix="SCRAPER_",
        case_sensitive=False,
        extra="ignore"
    )


class IngestionConfig(BaseSettings):
    """Ingestion worker configuration"""
    
    max_concurrency: int = Field(default=4, ge=1)
    max_tweets_per_politician: int = Field(default=100)
    
    model_config = SettingsConfigDict(
        env_prefix="INGEST_",
        case_sensitive=False,
        extra="ignore"
    )


class AppConfig(BaseSettings):
    """Application configuration"""
    
    # Environment
    environment: Environment = Field(default=Environment.LOCAL)
    debug: bool = Field(default=True)
    
    # Application metadata
    app_name: str = Field(default="VoteWatch")
    app_version: str = Field(default="1.0.0")
    
    # Logging
    log_level: str = Field(default="INFO")
    
    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    
    # CORS settings
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins (JSON list or comma-separated in env)"
    )
    
    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
        extra="ignore"
    )
    
    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from JSON string or comma-separated list"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            v = v.strip()
            if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                v = v[1:-1]
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


class Settings(BaseSettings):
    """
    Global settings container.
    
    Loads configuration from:
    1. Environment variables
    2. .env file
    3. Default values
    
    Example:
        # Local development against SQLite
        settings = Settings(
            db=DatabaseConfig(database_url="sqlite+aiosqlite:///./votewatch.db")
        )
    """
    
    app: AppConfig = Field(default_factory=AppConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    twitter: TwitterConfig = Field(default_factory=TwitterConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
