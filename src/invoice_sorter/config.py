"""Configuration via environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SEARCH_QUERY = "from:-me has:attachment newer_than:35d"
DEFAULT_ROOT_FOLDER_NAME = "Invoices"
DEFAULT_PROCESSED_LABEL = "Processed-Invoice"
DEFAULT_MODEL = "gemini-3-pro-preview"


@dataclass(frozen=True)
class ImapConfig:
    """IMAP connection configuration."""

    host: str
    username: str
    password: str
    port: int = 993
    folder: str = "INBOX"


@dataclass(frozen=True)
class Settings:
    """Pipeline settings, loaded once at process start.

    ``processed_label`` of ``None`` disables thread labelling.
    """

    search_query: str = DEFAULT_SEARCH_QUERY
    root_folder_name: str = DEFAULT_ROOT_FOLDER_NAME
    processed_label: str | None = DEFAULT_PROCESSED_LABEL
    model: str = DEFAULT_MODEL
    max_pdf_pages: int = 10
    temperature: float = 0.1
    max_output_tokens: int = 2048
    max_retries: int = 5
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000


def load_settings() -> Settings:
    """Build Settings from environment variables, falling back to defaults.

    PROCESSED_LABEL set to an empty string or "null" disables labelling.
    """
    settings = Settings(
        search_query=os.environ.get("SEARCH_QUERY", DEFAULT_SEARCH_QUERY),
        root_folder_name=os.environ.get("ROOT_FOLDER_NAME", DEFAULT_ROOT_FOLDER_NAME),
        processed_label=_get_optional("PROCESSED_LABEL", DEFAULT_PROCESSED_LABEL),
        model=os.environ.get("GEMINI_MODEL", DEFAULT_MODEL),
        max_pdf_pages=_get_int("MAX_PDF_PAGES", 10),
        temperature=_get_float("TEMPERATURE", 0.1),
        max_output_tokens=_get_int("MAX_OUTPUT_TOKENS", 2048),
        max_retries=_get_int("MAX_RETRIES", 5),
        initial_delay_ms=_get_int("INITIAL_DELAY_MS", 1000),
        max_delay_ms=_get_int("MAX_DELAY_MS", 30000),
    )

    if settings.max_pdf_pages < 1:
        msg = "MAX_PDF_PAGES must be at least 1"
        raise ValueError(msg)
    for name, value in (
        ("MAX_RETRIES", settings.max_retries),
        ("INITIAL_DELAY_MS", settings.initial_delay_ms),
        ("MAX_DELAY_MS", settings.max_delay_ms),
    ):
        if value < 0:
            msg = f"{name} must not be negative"
            raise ValueError(msg)

    return settings


def get_gemini_api_key() -> str:
    """Return the GEMINI_API_KEY from the environment."""
    key = os.environ.get("GEMINI_API_KEY")
    if not key:
        msg = "GEMINI_API_KEY environment variable is required"
        raise ValueError(msg)
    return key


def get_store_path() -> Path:
    """Return the INVOICE_STORE_PATH, defaulting to ./data.

    Always resolves to an absolute path to avoid issues if the
    working directory changes during execution.
    """
    return Path(os.environ.get("INVOICE_STORE_PATH", "./data")).resolve()


def get_imap_config() -> ImapConfig:
    """Build IMAP configuration from environment variables.

    Required: IMAP_HOST, IMAP_USERNAME, IMAP_PASSWORD
    Optional: IMAP_PORT (default 993), IMAP_FOLDER (default INBOX)
    """
    host = os.environ.get("IMAP_HOST")
    username = os.environ.get("IMAP_USERNAME")
    password = os.environ.get("IMAP_PASSWORD")

    missing = []
    if not host:
        missing.append("IMAP_HOST")
    if not username:
        missing.append("IMAP_USERNAME")
    if not password:
        missing.append("IMAP_PASSWORD")

    if missing:
        msg = f"Required environment variables not set: {', '.join(missing)}"
        raise ValueError(msg)

    return ImapConfig(
        host=host,  # type: ignore[arg-type]
        username=username,  # type: ignore[arg-type]
        password=password,  # type: ignore[arg-type]
        port=_get_int("IMAP_PORT", 993),
        folder=os.environ.get("IMAP_FOLDER", "INBOX"),
    )


def _get_optional(name: str, default: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return default
    if value.strip() == "" or value.strip().lower() == "null":
        return None
    return value


def _get_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        msg = f"{name} must be an integer, got {value!r}"
        raise ValueError(msg) from None


def _get_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        msg = f"{name} must be a number, got {value!r}"
        raise ValueError(msg) from None
