from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

KEY_COLUMN = "key"

DEFAULT_LOCALES: Dict[str, str] = {
    "fr": "fr_FR",
    "en": "en_EN",
    "es": "es_ES",
    "de": "de_DE",
    "pt": "pt_PT",
    "nl": "nl_NL",
    "it": "it_IT",
}

# Positions inside the extracted header, not absolute sheet columns.
DEFAULT_LANGUAGE_COLUMNS: Dict[str, int] = {
    "fr": 0,
    KEY_COLUMN: 1,
    "en": 2,
    "es": 3,
    "de": 4,
    "pt": 5,
    "nl": 6,
    "it": 7,
}


class WorkbookConfig(BaseModel):
    sheet_name: str = Field("Mobile", description="Exact name of the sheet holding translations")
    header_begin_row: int = Field(
        2,
        ge=0,
        description="0-based row index of the header; data starts on the next row",
    )
    header_begin_col: int = Field(
        2,
        ge=0,
        description="0-based column index where header extraction starts",
    )
    language_columns: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_LANGUAGE_COLUMNS),
        description="Language code (or 'key') -> position in the extracted header",
    )
    locales: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_LOCALES),
        description="Language code -> locale tag used in file names and the 'key' entry",
    )

    @field_validator("language_columns")
    @classmethod
    def _validate_positions(cls, value: Dict[str, int]) -> Dict[str, int]:
        if KEY_COLUMN not in value:
            raise ValueError("language_columns must define the 'key' column")
        negative = sorted(code for code, position in value.items() if position < 0)
        if negative:
            raise ValueError(f"language_columns positions must be >= 0: {negative}")
        return value

    @model_validator(mode="after")
    def _ensure_locale_columns(self) -> "WorkbookConfig":
        if not self.locales:
            raise ValueError("At least one locale must be configured")
        missing = sorted(code for code in self.locales if code not in self.language_columns)
        if missing:
            raise ValueError(f"No column configured for languages: {', '.join(missing)}")
        return self


class StorageConfig(BaseModel):
    credentials_file: Path = Field(
        Path("service_account.json"),
        description="Path to the Google service account JSON credentials",
    )
    credentials_file_env: Optional[str] = Field(
        "GOOGLE_APPLICATION_CREDENTIALS",
        description="Environment variable that overrides credentials_file when set",
    )
    bucket_name: str = Field("test_translation_bucket1", description="Target GCS bucket")
    folder_prefix: Optional[str] = Field(
        None,
        description="Optional folder inside the bucket; objects are listed and written below it",
    )
    connectivity_host: str = Field(
        "google.com",
        description="Public host resolved to check internet reachability before publishing",
    )
    max_attempts: int = Field(
        1,
        ge=1,
        le=10,
        description="Attempts per storage request (1 = no retry)",
    )

    @field_validator("credentials_file")
    @classmethod
    def _expand_credentials_path(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def normalized_prefix(self) -> str:
        if not self.folder_prefix:
            return ""
        return self.folder_prefix if self.folder_prefix.endswith("/") else f"{self.folder_prefix}/"

    @property
    def scope_label(self) -> str:
        return f"{self.bucket_name}/{self.folder_prefix or ''}"

    def resolved_credentials_file(self) -> Path:
        if self.credentials_file_env:
            from_env = os.getenv(self.credentials_file_env)
            if from_env:
                return Path(from_env).expanduser()
        return self.credentials_file


class NotificationConfig(BaseModel):
    """Cloud Function that bumps the remote-config language version."""

    enabled: bool = Field(False, description="Call the Cloud Function after a successful upload")
    project_id: str = Field("", description="Google Cloud project hosting the function")
    region: str = Field("", description="Region of the function, e.g. europe-west1")
    function_name: str = Field("", description="Name of the deployed function")
    request_timeout: int = Field(30, gt=0, description="Timeout in seconds for the POST request")

    @model_validator(mode="after")
    def _ensure_target(self) -> "NotificationConfig":
        if self.enabled and not (self.project_id and self.region and self.function_name):
            raise ValueError(
                "Notification requires 'project_id', 'region' and 'function_name' when enabled"
            )
        return self

    @property
    def endpoint(self) -> str:
        return f"https://{self.region}-{self.project_id}.cloudfunctions.net/{self.function_name}"


class AppConfig(BaseModel):
    workbook: WorkbookConfig = Field(default_factory=WorkbookConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    output_dir: Path = Field(
        Path("."),
        description="Directory where JSON files are written and purged",
    )

    @classmethod
    def defaults(cls) -> "AppConfig":
        return cls()


def load_config(path: str | Path) -> AppConfig:
    """Load configuration from a YAML file and return a validated object."""

    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if data is None:
        msg = f"Configuration file is empty: {config_path}"
        raise ValueError(msg)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
