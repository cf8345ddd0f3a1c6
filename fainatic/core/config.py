from pydantic_settings import BaseSettings
from typing import List, Optional
from pathlib import Path


class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "Fainatic"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Uploads - temp namespace for the upload/process flow
    UPLOAD_DIR: str = "./tmp"
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024

    # Statement parsing
    DEFAULT_CURRENCY: str = "USD"
    DAY_FIRST_DATES: bool = False
    HEADER_SCAN_ROWS: int = 20
    CURRENCY_SAMPLE_SIZE: int = 10
    # Words that mark a line-extracted amount as money coming in
    POSITIVE_AMOUNT_KEYWORDS: List[str] = ["deposit", "credit", "refund", "salary", "payroll"]

    # Timeouts / retries
    PARSE_TIMEOUT_SECONDS: float = 90.0
    OCR_TIMEOUT_SECONDS: float = 30.0
    OCR_MAX_RETRIES: int = 2
    OCR_LANGUAGE: str = "eng"
    PDF_OCR_RESOLUTION: int = 300
    # Larger scans are refused before preprocessing
    OCR_MAX_IMAGE_PIXELS: int = 40_000_000

    # OpenAI (recommendations)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4-turbo-preview"
    OPENAI_TIMEOUT_SECONDS: float = 120.0
    OPENAI_MAX_RETRIES: int = 3

    # Analytics
    FORECAST_HORIZONS_YEARS: List[int] = [5, 10, 25]

    class Config:
        env_file = Path(__file__).parent.parent.parent / ".env"
        env_file_encoding = 'utf-8'


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process settings"""
    return settings
