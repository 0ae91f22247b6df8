"""
RDF Web Store Client Configuration Loader

This module provides functionality to load and validate the web store client
configuration from YAML files.
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ...rdf.rdf_utils import SERIALIZER_MEDIA_TYPES, parse_media_type

logger = logging.getLogger(__name__)


class ClientConfigurationError(Exception):
    """Raised when there are client configuration loading or validation errors."""
    pass


DEFAULT_CONFIG: Dict[str, Any] = {
    'client': {
        'timeout': 30,
        'follow_redirects': True,
        'user_agent': 'RDF-Web-Store/1.0',
        'serializer_media_type': 'application/n-triples',
        'high_water_mark': 64,
    }
}


class WebStoreClientConfig:
    """
    Web store client configuration loader and manager.

    Loads configuration from YAML files and provides access to the settings
    used by the HTTP transport and the quad streams.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the client configuration loader.

        Args:
            config_path: Path to configuration file. If None, uses default locations or built-in defaults.
        """
        self.config_data: Dict[str, Any] = {}
        self.config_path: Optional[str] = None

        if config_path is not None:
            self.load_config(config_path)
        else:
            self._load_default_config()

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> "WebStoreClientConfig":
        """Create a configuration from an in-memory dictionary."""
        config = cls.__new__(cls)
        config.config_data = copy.deepcopy(config_data)
        config.config_path = "<dict>"
        return config

    def load_config(self, config_path: str) -> None:
        """
        Load configuration from a specific file path.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ClientConfigurationError: If the file cannot be loaded or parsed
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise ClientConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                self.config_data = yaml.safe_load(f) or {}

            self.config_path = str(config_file.absolute())
            logger.info(f"Loaded client configuration from: {self.config_path}")

        except yaml.YAMLError as e:
            raise ClientConfigurationError(f"Error parsing YAML configuration: {e}")
        except Exception as e:
            raise ClientConfigurationError(f"Error loading configuration file: {e}")

    def _load_default_config(self) -> None:
        """
        Load default configuration by searching standard locations or using built-in defaults.
        """
        default_paths = [
            "rdfwebstore-config.yaml",
            os.path.expanduser("~/.rdfwebstore/rdfwebstore-config.yaml"),
            "/etc/rdfwebstore/rdfwebstore-config.yaml"
        ]

        for path in default_paths:
            if os.path.exists(path):
                try:
                    self.load_config(path)
                    logger.info(f"Found and loaded default config from: {path}")
                    return
                except ClientConfigurationError:
                    continue

        self.config_data = copy.deepcopy(DEFAULT_CONFIG)
        self.config_path = "<built-in defaults>"
        logger.debug("Using built-in default configuration")

    def get_client_config(self) -> Dict[str, Any]:
        """
        Get client configuration section.

        Returns:
            Dictionary containing client configuration
        """
        return self.config_data.get('client', {})

    def _get(self, key: str) -> Any:
        return self.get_client_config().get(key, DEFAULT_CONFIG['client'][key])

    def get_timeout(self) -> float:
        """Request timeout in seconds."""
        return self._get('timeout')

    def get_follow_redirects(self) -> bool:
        return self._get('follow_redirects')

    def get_user_agent(self) -> str:
        return self._get('user_agent')

    def get_serializer_media_type(self) -> str:
        """Media type used to serialize request bodies."""
        return self._get('serializer_media_type')

    def get_high_water_mark(self) -> int:
        """Number of quads a stream buffers before producers wait."""
        return self._get('high_water_mark')

    def validate_config(self) -> None:
        """
        Validate the loaded configuration.

        Raises:
            ClientConfigurationError: If configuration is invalid
        """
        timeout = self.get_timeout()
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ClientConfigurationError("Timeout must be a positive number")

        if not isinstance(self.get_follow_redirects(), bool):
            raise ClientConfigurationError("follow_redirects must be a boolean value")

        user_agent = self.get_user_agent()
        if not user_agent or not isinstance(user_agent, str):
            raise ClientConfigurationError("user_agent must be a non-empty string")

        media_type = self.get_serializer_media_type()
        if not isinstance(media_type, str) or parse_media_type(media_type) not in SERIALIZER_MEDIA_TYPES:
            raise ClientConfigurationError(
                f"serializer_media_type must be one of: {', '.join(SERIALIZER_MEDIA_TYPES)}"
            )

        high_water_mark = self.get_high_water_mark()
        if isinstance(high_water_mark, bool) or not isinstance(high_water_mark, int) or high_water_mark <= 0:
            raise ClientConfigurationError("high_water_mark must be a positive integer")

        logger.debug("Client configuration validation passed")

    def __str__(self) -> str:
        """String representation of the configuration."""
        return f"WebStoreClientConfig(path={self.config_path})"
