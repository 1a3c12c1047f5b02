"""
Configuration Loader for OSD Sign-Off

Provides centralized access to settings.yaml configuration and the
environment variables it points at.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

# Project root holds config/ and the optional .env file
PROJECT_ROOT = Path(__file__).resolve().parents[2]

load_dotenv(dotenv_path=PROJECT_ROOT / ".env")


class Config:
    """
    Singleton configuration loader.
    Loads settings.yaml once and provides access throughout the application.
    """
    
    _instance = None
    _config_data = None
    
    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance
    
    def __init__(self):
        if self._config_data is None:
            self._load_config()
    
    def _load_config(self):
        """Load configuration from settings.yaml (or $OSD_SIGNOFF_CONFIG)"""
        override = os.getenv("OSD_SIGNOFF_CONFIG")
        if override:
            config_file = Path(override)
        else:
            config_file = PROJECT_ROOT / "config" / "settings.yaml"
        
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        
        with open(config_file, 'r') as f:
            self._config_data = yaml.safe_load(f) or {}
    
    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.
        
        Args:
            key_path: Dot-separated path to config value (e.g., 'mail.transport')
            default: Default value if key not found
            
        Returns:
            Configuration value or default
            
        Examples:
            >>> config = Config()
            >>> config.get('document.photos.max_photos')
            12
            >>> config.get('mail.attachment_name')
            'osd-signoff.pdf'
        """
        keys = key_path.split('.')
        value = self._config_data
        
        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default
    
    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get entire configuration section.
        
        Args:
            section: Top-level section name (e.g., 'document', 'mail')
            
        Returns:
            Dictionary containing the section's configuration
        """
        return self._config_data.get(section, {}) or {}
    
    def get_env(self, key_path: str, default: Optional[str] = None) -> Optional[str]:
        """
        Resolve an environment variable whose *name* is stored in the config.
        
        Args:
            key_path: Dot path to the variable name (e.g., 'mail.smtp.host_env')
            default: Returned when the name or the variable is missing/empty
            
        Returns:
            The variable's value or default
        """
        env_name = self.get(key_path)
        if not env_name:
            return default
        return os.getenv(env_name) or default
    
    @property
    def all(self) -> Dict[str, Any]:
        """Get entire configuration dictionary"""
        return self._config_data


# Create a global instance for easy importing
config = Config()
