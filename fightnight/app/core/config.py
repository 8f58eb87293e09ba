import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

PACKAGE_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./fightnight.db"


class Settings(BaseModel):
    """Runtime configuration, read once from the environment (and .env)."""
    database_url: str = DEFAULT_DATABASE_URL
    db_pool_size: int = 20
    db_max_overflow: int = 20

    # Narrative collaborator
    commentary_model: str = "gpt-5.1"
    commentary_temperature: float = 0.9
    models_config_path: str = str(PACKAGE_ROOT / "config" / "models.yaml")
    catalog_config_path: str = str(PACKAGE_ROOT / "config" / "catalog.yaml")

    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("DATABASE_URL"),
            "db_pool_size": os.getenv("DB_POOL_SIZE"),
            "db_max_overflow": os.getenv("DB_MAX_OVERFLOW"),
            "commentary_model": os.getenv("COMMENTARY_MODEL"),
            "commentary_temperature": os.getenv("COMMENTARY_TEMPERATURE"),
            "models_config_path": os.getenv("MODELS_CONFIG_PATH"),
            "catalog_config_path": os.getenv("CATALOG_CONFIG_PATH"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        origins = os.getenv("CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
        # Unset variables fall back to the field defaults
        return cls(**{k: v for k, v in values.items() if v is not None})


settings = Settings.from_env()
