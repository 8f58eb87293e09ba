import logging
import yaml
from pathlib import Path
from pydantic import BaseModel
from typing import Dict, Any, Optional

from fightnight.app.core.config import settings

logger = logging.getLogger(__name__)


class ModelConfig(BaseModel):
    provider: str
    label: str
    model_id: Optional[str] = None  # Optional override of the registry key
    api_config: Optional[Dict[str, Any]] = None  # Optional API-specific config


class ModelRegistry:
    """Chat models available to the commentary booth, loaded from YAML."""

    def __init__(self, config_path: str = settings.models_config_path):
        self.models: Dict[str, ModelConfig] = {}
        self._load(config_path)

    def _load(self, path: str):
        if not Path(path).exists():
            logger.warning("Model registry file %s not found; using provider auto-detection only", path)
            return
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
            for key, val in data.get("models", {}).items():
                self.models[key] = ModelConfig(**val)

    def get(self, model_key: str) -> Optional[ModelConfig]:
        return self.models.get(model_key)

    def list_all(self) -> Dict[str, ModelConfig]:
        return self.models

# Singleton instance
registry = ModelRegistry()
