"""
Application configuration loaded from environment variables.

All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with validation.

    All settings are loaded from environment variables with the same name.
    Use .env file for local development.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Image normalization
    target_width: int = Field(
        default=1000,
        gt=0,
        description="Width in pixels images are resized to before OCR"
    )

    # OCR Configuration
    ocr_backend: Literal["tesseract", "doctr"] = Field(
        default="tesseract",
        description="OCR engine used for text recognition"
    )
    ocr_language: str = Field(
        default="eng",
        description="Tesseract language code"
    )
    ocr_page_segmentation_mode: int | None = Field(
        default=6,
        description="Tesseract page segmentation mode (6 = single uniform block of text)"
    )
    ocr_preserve_interword_spaces: bool = Field(
        default=True,
        description="Preserve runs of spaces between words in OCR output"
    )
    ocr_extra_parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional engine parameters, passed through unchanged"
    )
    ocr_with_confidence: bool = Field(
        default=False,
        description="Collect word confidences (extra Tesseract pass)"
    )
    ocr_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-image OCR timeout in seconds"
    )
    tesseract_cmd: str | None = Field(
        default=None,
        description="Path to the tesseract binary if it is not on PATH"
    )

    # Evaluation
    batch_workers: int = Field(
        default=1,
        ge=1,
        description="Independent pipeline instances used by the batch harness"
    )
    ground_truth_path: Path = Field(
        default=Path("data/ground_truth.json"),
        description="Ground truth file (JSON or CSV) for evaluation runs"
    )
    images_dir: Path | None = Field(
        default=None,
        description="Base directory for relative image paths in the ground truth"
    )

    # Server
    cors_origins: list[str] = Field(
        default=["http://192.168.1.2:5000"],
        description="Origins allowed to call the upload endpoint"
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest accepted upload in bytes"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with detailed error messages"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once at startup and cached for subsequent calls.
    This ensures consistent configuration across the application lifecycle.
    """
    return Settings()
