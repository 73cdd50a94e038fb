"""
Configuration for the backup store.

Values come from the environment (a `.env` file is honoured). Explicit
constructor arguments win over the environment so tests and embedding
applications can inject their own settings.
"""

import os
from typing import List, Optional

from loguru import logger
import dotenv

dotenv.load_dotenv()

DEFAULT_AUTH_KEY = "your-secret-key-here"
DEFAULT_MAX_BACKUPS = 100


class BackupConfig:
    """Configuration for the backup service and its HTTP wrapper"""

    def __init__(
        self,
        auth_key: Optional[str] = None,
        max_backups: Optional[int] = None,
        store_backend: Optional[str] = None,
        azure_connection_string: Optional[str] = None,
        container_name: Optional[str] = None,
        cors_origins: Optional[List[str]] = None,
        log_level: Optional[str] = None
    ):
        self.auth_key = auth_key if auth_key is not None else os.getenv(
            "BACKUP_AUTH_KEY", DEFAULT_AUTH_KEY
        )

        # Historical revisions kept per logical document
        self.max_backups = int(
            max_backups if max_backups is not None
            else os.getenv("MAX_BACKUPS", str(DEFAULT_MAX_BACKUPS))
        )
        if self.max_backups < 1:
            raise ValueError(f"MAX_BACKUPS must be at least 1, got {self.max_backups}")

        # Object store selection: "memory" or "azure"
        self.store_backend = store_backend or os.getenv("BACKUP_STORE", "memory")
        self.azure_connection_string = (
            azure_connection_string or os.getenv("AZURE_STORAGE_CONNECTION_STRING")
        )
        self.container_name = container_name or os.getenv(
            "AZURE_BLOB_CONTAINER", "config-backups"
        )

        if cors_origins is None:
            cors_origins = [
                origin.strip()
                for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
                if origin.strip()
            ]
        self.cors_origins = cors_origins

        self.log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

        if self.auth_key == DEFAULT_AUTH_KEY:
            logger.warning("⚠️  BACKUP_AUTH_KEY not set, using the default shared secret")

        logger.info(
            f"Backup config: store={self.store_backend}, max_backups={self.max_backups}"
        )
