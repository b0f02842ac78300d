"""
Configuration management.
"""

import os
from dataclasses import dataclass, field


def _split_origins(value: str) -> list[str]:
    return [o.strip() for o in value.split(",") if o.strip()]


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    allowed_origins: list[str] = field(
        default_factory=lambda: _split_origins(
            os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
        )
    )

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    applications_file: str = field(
        default_factory=lambda: os.getenv("APPLICATIONS_FILE", "./data/applications.json")
    )

    # Documents
    document_root: str = field(
        default_factory=lambda: os.getenv("DOCUMENT_ROOT", "./data/documents")
    )
    document_base_url: str = field(
        default_factory=lambda: os.getenv("DOCUMENT_BASE_URL", "/files")
    )
    max_upload_mb: int = field(default_factory=lambda: int(os.getenv("MAX_UPLOAD_MB", "10")))

    # Payment
    default_deposit: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_DEPOSIT", "1000"))
    )
    currency: str = field(default_factory=lambda: os.getenv("CURRENCY", "MYR"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "allowed_origins": self.allowed_origins,
            "data_dir": self.data_dir,
            "applications_file": self.applications_file,
            "document_root": self.document_root,
            "document_base_url": self.document_base_url,
            "max_upload_mb": self.max_upload_mb,
            "default_deposit": self.default_deposit,
            "currency": self.currency,
            "log_level": self.log_level,
        }
