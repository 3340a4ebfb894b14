"""Simple YAML configuration loader for the Jarvis client."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..errors import ConfigError
from ..models.settings import AdvancedSettings
from .advanced_settings import AdvancedSettingsEditor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "jarvis.yaml"


class JarvisConfig:
    """Jarvis client configuration loader."""
    
    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.
        
        Args:
            config_path: Path to YAML config file. If None, uses jarvis.yaml
                        in the current directory.
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_NAME)
        
        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        
        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()
    
    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file: {e}") from e
        
        if not config:
            raise ConfigError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigError("Configuration file must contain a mapping")
        
        self._resolve_paths(config)
        
        logger.info("Configuration loaded successfully")
        return config
    
    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent
        
        for section, key in (('speech', 'credentials_path'),
                             ('storage', 'data_directory'),
                             ('logging', 'file_path')):
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)
    
    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'server.url').
        
        Args:
            key_path: Dot-separated key path
            default: Default value if key not found
            
        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config
        
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        
        return value
    
    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
    
    def get_credentials_path(self) -> Optional[str]:
        """Get the speech service credentials path, if one is configured."""
        creds_path = self.get('speech.credentials_path')
        if not creds_path:
            return None
        
        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Speech credentials file not found: {creds_path}")
        
        return str(creds_file.absolute())
    
    def advanced_settings_editor(self) -> AdvancedSettingsEditor:
        """Build an editor seeded from the 'advanced' section."""
        return AdvancedSettingsEditor(AdvancedSettings(
            native_audio=bool(self.get('advanced.native_audio', False)),
            speech_timeout=int(self.get('advanced.speech_timeout', 0)),
            request_timeout=int(self.get('advanced.request_timeout', 5)),
            pause_threshold=float(self.get('advanced.pause_threshold', 1.5)),
            non_speaking_duration=float(self.get('advanced.non_speaking_duration', 3.0)),
        ))


__all__ = [
    "JarvisConfig",
    "AdvancedSettingsEditor",
]
