"""
Configuration management for exprmath.

This module provides functionality for managing configuration,
including loading from environment variables, files and default values.
"""

import os
import json
import logging
import threading
from typing import Any, Dict, List, Optional
from copy import deepcopy
import yaml

# Set up logging
logger = logging.getLogger(__name__)


def to_int(value: Any) -> Optional[int]:
    """
    Convert a value to an integer.

    Args:
        value: Value to convert

    Returns:
        Integer value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def to_float(value: Any) -> Optional[float]:
    """
    Convert a value to a float.

    Args:
        value: Value to convert

    Returns:
        Float value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def to_bool(value: Any) -> Optional[bool]:
    """
    Convert a value to a boolean.

    Args:
        value: Value to convert

    Returns:
        Boolean value, or None if conversion failed
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.lower().strip()
        if value in ('true', 'yes', 'y', '1', 't'):
            return True
        if value in ('false', 'no', 'n', '0', 'f'):
            return False

    return None


def to_list(value: Any, separator: str = ',') -> Optional[List[str]]:
    """
    Convert a value to a list.

    Args:
        value: Value to convert
        separator: Separator for string values

    Returns:
        List value, or None if conversion failed
    """
    if value is None:
        return None

    if isinstance(value, list):
        return value

    if isinstance(value, str):
        return [item.strip() for item in value.split(separator) if item.strip()]

    return None


def _env(name: str, default: Any, convert) -> Any:
    """Read and convert an environment variable, keeping the default on failure."""
    if name not in os.environ:
        return default

    converted = convert(os.environ[name])
    if converted is None:
        logger.warning(f"Ignoring invalid value for {name}: {os.environ[name]!r}")
        return default
    return converted


class Config:
    """
    Configuration manager for exprmath.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Optional configuration overrides
        """
        self._lock = threading.RLock()
        self._config = {}
        self._initialized = False

        # Load configuration
        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Load configuration from all sources.

        Args:
            overrides: Optional configuration overrides
        """
        with self._lock:
            # Start with default configuration
            config = self._get_defaults()

            # Apply environment variables
            config = self._apply_env_vars(config)

            # Apply overrides
            if overrides:
                config = self._apply_overrides(config, overrides)

            # Apply inferred values
            config = self._apply_inferred_values(config)

            # Store configuration
            self._config = config
            self._initialized = True

            logger.debug("Configuration loaded")

    def _get_defaults(self) -> Dict[str, Any]:
        """
        Get default configuration values.

        Returns:
            Default configuration
        """
        return {
            # Standardization before distance-based clustering
            'standardize': {
                'scale': True
            },

            # Principal components
            'pca': {
                'scale': True,
                'n-score-vectors': 5    # score columns used for clustering on PCs
            },

            # Hierarchical clustering
            'hclust': {
                'method': 'complete',
                'methods': ['complete', 'average', 'single'],
                'k': 4
            },

            # K-means
            'kmeans': {
                'k': 4,
                'nstart': 20,
                'max-iters': 100,
                'seed': 2,
                'init': 'k-means++',
                'n-jobs': 1
            },

            # Linear SVM
            'svm': {
                'cost': 10.0,
                'scale': True
            },

            # Logging
            'logging': {
                'level': 'warn'
            }
        }

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variables to configuration.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # Standardization and PCA
        config['standardize']['scale'] = _env('STANDARDIZE_SCALE', config['standardize']['scale'], to_bool)
        config['pca']['scale'] = _env('PCA_SCALE', config['pca']['scale'], to_bool)
        config['pca']['n-score-vectors'] = _env('PCA_N_SCORE_VECTORS', config['pca']['n-score-vectors'], to_int)

        # Hierarchical clustering
        config['hclust']['method'] = os.environ.get('HCLUST_METHOD', config['hclust']['method']).lower()
        config['hclust']['methods'] = _env('HCLUST_METHODS', config['hclust']['methods'], to_list)
        config['hclust']['k'] = _env('HCLUST_K', config['hclust']['k'], to_int)

        # K-means
        config['kmeans']['k'] = _env('KMEANS_K', config['kmeans']['k'], to_int)
        config['kmeans']['nstart'] = _env('KMEANS_NSTART', config['kmeans']['nstart'], to_int)
        config['kmeans']['max-iters'] = _env('KMEANS_MAX_ITERS', config['kmeans']['max-iters'], to_int)
        config['kmeans']['seed'] = _env('KMEANS_SEED', config['kmeans']['seed'], to_int)
        config['kmeans']['init'] = os.environ.get('KMEANS_INIT', config['kmeans']['init']).lower()
        config['kmeans']['n-jobs'] = _env('KMEANS_N_JOBS', config['kmeans']['n-jobs'], to_int)

        # Linear SVM
        config['svm']['cost'] = _env('SVM_COST', config['svm']['cost'], to_float)
        config['svm']['scale'] = _env('SVM_SCALE', config['svm']['scale'], to_bool)

        # Logging
        config['logging']['level'] = os.environ.get('LOG_LEVEL', config['logging']['level']).lower()

        return config

    def _apply_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply configuration overrides.

        Args:
            config: Current configuration
            overrides: Configuration overrides

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # Helper function for deep update
        def deep_update(d, u):
            for k, v in u.items():
                if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                    d[k] = deep_update(d[k], v)
                else:
                    d[k] = v
            return d

        # Apply overrides
        return deep_update(config, deepcopy(overrides))

    def _apply_inferred_values(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply inferred configuration values.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        # Make a copy
        config = deepcopy(config)

        # The primary linkage is always among those compared
        methods = list(config['hclust']['methods'])
        if config['hclust']['method'] not in methods:
            methods.insert(0, config['hclust']['method'])
        config['hclust']['methods'] = methods

        return config

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            path: Configuration path (dot-separated)
            default: Default value if not found

        Returns:
            Configuration value, or default if not found
        """
        if not self._initialized:
            self.load_config()

        # Split path into components
        components = path.split('.')

        # Start with full configuration
        value = self._config

        # Traverse path
        for component in components:
            if isinstance(value, dict) and component in value:
                value = value[component]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            path: Configuration path (dot-separated)
            value: Configuration value
        """
        with self._lock:
            if not self._initialized:
                self.load_config()

            # Split path into components
            components = path.split('.')

            # Start with full configuration
            config = self._config

            # Traverse path
            for component in components[:-1]:
                if component not in config:
                    config[component] = {}

                config = config[component]

            # Set value
            config[components[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary.

        Returns:
            Configuration dictionary
        """
        if not self._initialized:
            self.load_config()

        return deepcopy(self._config)

    def save_to_file(self, filepath: str) -> None:
        """
        Save configuration to a file.

        Args:
            filepath: Path to save configuration
        """
        if not self._initialized:
            self.load_config()

        # Determine file format from extension
        if filepath.endswith('.json'):
            with open(filepath, 'w') as f:
                json.dump(self._config, f, indent=2)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'w') as f:
                yaml.dump(self._config, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

    def load_from_file(self, filepath: str) -> None:
        """
        Load configuration from a file.

        Args:
            filepath: Path to load configuration from
        """
        self.load_config(load_config_file(filepath))


def load_config_file(filepath: str) -> Dict[str, Any]:
    """
    Load configuration overrides from a JSON or YAML file.

    Args:
        filepath: Path to configuration file

    Returns:
        Configuration dictionary
    """
    if filepath.endswith('.json'):
        with open(filepath, 'r') as f:
            return json.load(f)
    elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
        with open(filepath, 'r') as f:
            return yaml.safe_load(f) or {}
    else:
        raise ValueError(f"Unsupported configuration file format: {filepath}")


class ConfigManager:
    """
    Singleton manager for configuration.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the configuration instance.

        Args:
            overrides: Optional configuration overrides

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared configuration instance."""
        with cls._lock:
            cls._instance = None
