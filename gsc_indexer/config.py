# gsc_indexer/config.py
import logging
import logging.handlers
import os
import sys
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Remote endpoints ===
    SITEMAP_URL: str = Field(
        default="https://www.yourwebsite.com/sitemap.xml", alias="SITEMAP_URL"
    )
    SITE_URL: str = Field(default="https://www.yourwebsite.com/", alias="SITE_URL")
    URL_PATH_FILTER: str = Field(default="/buy-used-cars/", alias="URL_PATH_FILTER")
    KEY_FILE: str = Field(default="./service-account-key.json", alias="KEY_FILE")

    # === Local files ===
    URLS_FILE: str = Field(default="./urls-to-index.txt", alias="URLS_FILE")
    LAST_RUN_FILE: str = Field(default="./last-run.txt", alias="LAST_RUN_FILE")
    REPORT_FILE: str = Field(default="./indexing_report.csv", alias="REPORT_FILE")
    SUCCESS_LOG_FILE: str = Field(default="./submission.log", alias="SUCCESS_LOG_FILE")
    ERROR_LOG_FILE: str = Field(default="./error.log", alias="ERROR_LOG_FILE")
    LOG_DIR: str = Field(default="./logs", alias="LOG_DIR")

    # === Submission pacing ===
    BATCH_SIZE: int = Field(default=100, alias="BATCH_SIZE")
    ITEM_DELAY: float = Field(default=1.0, alias="ITEM_DELAY")
    BATCH_DELAY: float = Field(default=5.0, alias="BATCH_DELAY")
    FAILURE_POLICY: Literal["fail_fast", "continue"] = Field(
        default="fail_fast", alias="FAILURE_POLICY"
    )

    # === Sitemap sync ===
    SITEMAP_TIMEOUT: float = Field(default=10.0, alias="SITEMAP_TIMEOUT")
    LOOKBACK_HOURS: int = Field(default=24, alias="LOOKBACK_HOURS")

    class Config:
        env_file = ("./creds/.env",)
        extra = "forbid"


settings = Settings()  # type: ignore


USER_AGENT: str = "GoogleIndexingBot/1.0"

INDEXING_SCOPES = ["https://www.googleapis.com/auth/indexing"]
INSPECTION_SCOPES = ["https://www.googleapis.com/auth/webmasters"]

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)


def configure_logging(log_name: str, log_dir: str | None = None) -> None:
    """Send records to stdout and to a rotating file named after the pipeline."""
    log_dir = log_dir or settings.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.handlers.RotatingFileHandler(
                os.path.join(log_dir, f"{log_name}.log"),
                maxBytes=50_000_000,
                backupCount=5,
            ),
        ],
    )
