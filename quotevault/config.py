import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Application
    app_name: str = os.getenv("APP_NAME", "QuoteVault")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")

    # Storage
    data_file: str = os.getenv("QUOTEVAULT_DB_FILE", "quotevault.db")
    namespace: str = os.getenv("QUOTEVAULT_NAMESPACE", "quotevault")
    # When True, failed saves are raised to the caller instead of only logged
    strict_persistence: bool = _env_flag("QUOTEVAULT_STRICT_PERSISTENCE")

    # Logging
    log_level: str = os.getenv("QUOTEVAULT_LOG_LEVEL", "WARNING").upper()


settings = Settings()
