"""
Configuration Manager - Handle backend settings persistence
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def ensure_trailing_slash(url: str | None) -> str:
    if not url:
        return "/"
    return url if url.endswith("/") else url + "/"


def api_url(base_url: str | None, path: str | None) -> str:
    """Join the upstream base URL and an endpoint path"""
    clean_path = str(path or "").lstrip("/")
    return ensure_trailing_slash(base_url) + clean_path


class ConfigManager:
    """Manage configuration persistence"""

    _instance = None
    _config_file = None

    def __init__(self):
        try:
            # 1. Environment variable
            config_dir = os.environ.get("SOURCE_CHAT_CONFIG_DIR")

            # 2. Home directory ~/.source_chat
            if not config_dir:
                config_dir = os.path.expanduser("~/.source_chat")

            try:
                config_path = Path(config_dir)
                config_path.mkdir(parents=True, exist_ok=True)
                self._config_file = config_path / "config.json"
            except OSError as e:
                print(f"[ConfigManager] Warning: Cannot write to {config_dir}: {e}")
                self._config_file = None

            # 3. Fallback: temp directory
            if not self._config_file:
                tmp_dir = Path(tempfile.gettempdir()) / "source_chat"
                tmp_dir.mkdir(parents=True, exist_ok=True)
                self._config_file = tmp_dir / "config.json"
                print(f"[ConfigManager] Using temporary config path: {self._config_file}")

        except OSError as e:
            print(f"[ConfigManager] Critical Error in init: {e}")
            self._config_file = Path(tempfile.gettempdir()) / "source_chat_config_fallback.json"

        self._config = self._load_config()

    @classmethod
    def get_instance(cls) -> "ConfigManager":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = ConfigManager()
        return cls._instance

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file, layered over the defaults"""
        config = self._default_config()
        if self._config_file.exists():
            try:
                with open(self._config_file) as f:
                    stored = json.load(f)
                for section, values in stored.items():
                    if isinstance(values, dict) and isinstance(config.get(section), dict):
                        config[section] = {**config[section], **values}
                    else:
                        config[section] = values
            except (json.JSONDecodeError, OSError) as e:
                print(f"[ConfigManager] Error loading config: {e}")

        base_url = os.environ.get("SOURCE_CHAT_BACKEND_BASE_URL")
        if base_url:
            config["backend"]["baseUrl"] = base_url
        return config

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration"""
        return {
            "backend": {
                "baseUrl": "http://localhost:4000/",
                "queryPath": "api/search/",
                "connectTimeout": 30,
            },
            "stream": {"idleTimeout": 60},  # Seconds without a chunk before the turn fails; 0 disables
            "server": {"host": "0.0.0.0", "port": 8000},
        }

    def get_config(self) -> dict[str, Any]:
        """Get current configuration"""
        # Reload config from file to ensure we have the latest
        self._config = self._load_config()
        return self._config.copy()

    def save_config(self, config: dict[str, Any]):
        """Save configuration to file"""
        self._config.update(config)

        self._config_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self._config_file, "w") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save config: {e}")

