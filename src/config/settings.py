import logging
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Upstream API
    api_base_url: str = Field(
        "https://data.sihf.ch/Statistic/api/cms/cache300",
        description="Base URL of the statistics endpoint (list and detail).",
    )
    list_params: Dict[str, str] = Field(
        default_factory=lambda: {
            "alias": "results",
            "filterQuery": "2026/123/all/all/06.09.2025-29.03.2026/all/105957/all",
            "searchQuery": "1,10,11/2015-2099/…125",
            "orderBy": "date",
            "orderByDescending": "false",
            "take": "20",
            "filterBy": "season,league,region,phase,date,deferredState,team1,team2",
            "callback": "externalStatisticsCallback",
            "language": "de",
        },
        description="Query parameters for the results list request.",
    )
    detail_params: Dict[str, str] = Field(
        default_factory=lambda: {
            "alias": "gameDetail",
            "searchQuery": "{game_id}",
            "language": "de",
        },
        description="Query parameters for a detail request. '{game_id}' is substituted.",
    )
    request_headers: Dict[str, str] = Field(
        default_factory=lambda: {
            "Accept": "*/*",
            "User-Agent": "Mozilla/5.0",
            "Accept-Language": "de-CH,de;q=0.9",
            "Referer": "https://www.sihf.ch/",
        }
    )

    # Transport
    request_timeout: float = Field(
        30.0, gt=0, description="Timeout in seconds for a single HTTP attempt."
    )
    doh_endpoint: str = Field(
        "https://cloudflare-dns.com/dns-query",
        description="DNS-over-HTTPS JSON endpoint used by the fallback strategy.",
    )
    curl_binary: str = Field("curl", description="curl executable for the fallback.")

    # Enrichment
    enrich_max_count: int = Field(
        25, ge=0, description="Maximum number of detail requests per run."
    )
    detail_delay_seconds: float = Field(
        0.25, ge=0, description="Pause before each detail request."
    )

    # Aggregation
    text_filters: List[str] = Field(
        default_factory=list,
        description="Keep only records whose text contains one of these strings.",
    )

    # Output
    output_dir: str = Field("public", description="Directory for output artifacts.")
    results_artifact: str = "results.json"
    raw_artifact: str = "raw-results.json"
    status_artifact: str = "debug.txt"

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()
