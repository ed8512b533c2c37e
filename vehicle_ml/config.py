"""
Application Configuration — Pydantic Settings

Centralized configuration management using environment variables.
Loads from .env file automatically with sensible defaults.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Pipeline settings loaded from environment variables.
    
    Priority: Environment variables > .env file > defaults
    """
    
    PROJECT_NAME: str = "Vehicle ML Pipeline"
    ENVIRONMENT: str = "local"  # local, development, staging, production
    
    # === InfluxDB Configuration ===
    INFLUX_URL: str = "http://localhost:8086"
    INFLUX_TOKEN: str = ""
    INFLUX_ORG: str = ""
    INFLUX_BUCKET: str = "vehicle_data"
    INFLUX_MEASUREMENT: str = "vehicle_metrics"
    
    # === Feature Windows ===
    WINDOW_SIZE: int = 10           # Centered rolling window (samples)
    SAMPLE_INTERVAL_S: float = 2.0  # Fixed sampling period
    ROLLING_FIELDS: list[str] = ["rpm", "speed"]
    RATE_FIELDS: list[str] = ["rpm", "speed", "coolant_temp"]
    LAG_FIELDS: list[str] = ["rpm", "speed"]
    LAG_STEPS: list[int] = [1, 2, 3]
    MA_FIELDS: list[str] = ["rpm", "speed"]
    MA_WINDOWS: list[int] = [5, 10]
    TIMEZONE: str = "UTC"           # Used for hour/peak/weekend features
    
    # === Training Mode ===
    TRAINING_LIMIT: int = 5000
    MIN_TRAINING_SAMPLES: int = 1000
    SYNTHETIC_SAMPLE_COUNT: int = 2000
    SYNTHETIC_SEED: Optional[int] = None
    
    # === Real-time / Anomaly Modes ===
    REALTIME_WINDOW: int = 50
    ANOMALY_WINDOW: int = 100
    ANOMALY_FEATURES: list[str] = ["rpm", "speed", "coolant_temp", "engine_load"]
    ANOMALY_ZSCORE_THRESHOLD: float = 2.5
    ANOMALY_SCORE_THRESHOLD: float = 0.3
    ANOMALY_MIN_SAMPLES: int = 10
    
    # === Persistence ===
    STATS_DIR: str = "models"
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Singleton instance
settings = Settings()
