"""
Tests for the configuration module.
"""

import pytest
import json
import sys
import os

import yaml

# Add the parent directory to the path to import the module
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from exprmath.components.config import (
    Config, ConfigManager, load_config_file, to_bool, to_float, to_int, to_list
)

ENV_VARS = [
    'STANDARDIZE_SCALE', 'PCA_SCALE', 'PCA_N_SCORE_VECTORS',
    'HCLUST_METHOD', 'HCLUST_METHODS', 'HCLUST_K', 'KMEANS_K', 'KMEANS_NSTART',
    'KMEANS_MAX_ITERS', 'KMEANS_SEED', 'KMEANS_INIT', 'KMEANS_N_JOBS', 'SVM_COST', 'SVM_SCALE',
    'LOG_LEVEL',
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()


class TestConverters:
    """Tests for the value converters."""

    def test_to_int(self):
        assert to_int('12') == 12
        assert to_int('twelve') is None
        assert to_int(None) is None

    def test_to_float(self):
        assert to_float('2.5') == 2.5
        assert to_float('x') is None

    def test_to_bool(self):
        assert to_bool('yes') is True
        assert to_bool('F') is False
        assert to_bool(0) is False
        assert to_bool('maybe') is None

    def test_to_list(self):
        assert to_list('complete, single,') == ['complete', 'single']
        assert to_list(['a']) == ['a']
        assert to_list(3) is None


class TestConfig:
    """Tests for the Config class."""

    def test_defaults(self):
        """Test the default values."""
        config = Config()

        assert config.get('logging.level') == 'warn'
        assert config.get('pca.scale') is True
        assert config.get('hclust.method') == 'complete'
        assert config.get('hclust.methods') == ['complete', 'average', 'single']
        assert config.get('kmeans.k') == 4
        assert config.get('kmeans.nstart') == 20
        assert config.get('kmeans.seed') == 2
        assert config.get('kmeans.init') == 'k-means++'
        assert config.get('svm.cost') == 10.0
        assert config.get('svm.scale') is True

    def test_missing_path(self):
        """Test the default for unknown paths."""
        config = Config()
        assert config.get('nope.nothing') is None
        assert config.get('kmeans.nothing', 7) == 7

    def test_env_vars(self, monkeypatch):
        """Test reading values from the environment."""
        monkeypatch.setenv('KMEANS_K', '6')
        monkeypatch.setenv('KMEANS_INIT', 'Forgy')
        monkeypatch.setenv('PCA_SCALE', 'false')
        monkeypatch.setenv('HCLUST_METHODS', 'average,single')
        monkeypatch.setenv('SVM_COST', '0.5')
        monkeypatch.setenv('SVM_SCALE', 'no')
        monkeypatch.setenv('LOG_LEVEL', 'DEBUG')

        config = Config()

        assert config.get('kmeans.k') == 6
        assert config.get('kmeans.init') == 'forgy'
        assert config.get('pca.scale') is False
        assert config.get('svm.cost') == 0.5
        assert config.get('svm.scale') is False
        assert config.get('logging.level') == 'debug'
        # The primary method is added back to the compared ones
        assert config.get('hclust.methods') == ['complete', 'average', 'single']

    def test_invalid_env_values_ignored(self, monkeypatch):
        """Test that unparseable environment values keep the default."""
        monkeypatch.setenv('KMEANS_NSTART', 'lots')
        monkeypatch.setenv('STANDARDIZE_SCALE', 'perhaps')

        config = Config()

        assert config.get('kmeans.nstart') == 20
        assert config.get('standardize.scale') is True

    def test_overrides(self, monkeypatch):
        """Test that overrides win over the environment and merge deeply."""
        monkeypatch.setenv('KMEANS_K', '6')
        config = Config({'kmeans': {'k': 3}, 'hclust': {'method': 'average', 'methods': ['single']}})

        assert config.get('kmeans.k') == 3
        assert config.get('kmeans.nstart') == 20
        assert config.get('hclust.methods') == ['average', 'single']

    def test_set(self):
        """Test setting values by path."""
        config = Config()
        config.set('kmeans.k', 9)
        config.set('extra.nested.value', 'x')

        assert config.get('kmeans.k') == 9
        assert config.get('extra.nested.value') == 'x'
        assert config.to_dict()['extra'] == {'nested': {'value': 'x'}}

    def test_to_dict_is_copy(self):
        """Test that the dictionary is detached from the config."""
        config = Config()
        d = config.to_dict()
        d['kmeans']['k'] = 100
        assert config.get('kmeans.k') == 4

    @pytest.mark.parametrize('name', ['config.yaml', 'config.json'])
    def test_save_and_load(self, tmp_path, name):
        """Test writing a config file and reading it back."""
        path = str(tmp_path / name)
        config = Config({'kmeans': {'k': 5}})
        config.save_to_file(path)

        other = Config()
        other.load_from_file(path)
        assert other.get('kmeans.k') == 5

    def test_unsupported_format(self, tmp_path):
        """Test that unknown file extensions are rejected."""
        config = Config()
        with pytest.raises(ValueError):
            config.save_to_file(str(tmp_path / 'config.ini'))
        with pytest.raises(ValueError):
            load_config_file(str(tmp_path / 'config.ini'))


class TestLoadConfigFile:
    """Tests for reading override files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / 'overrides.yml'
        path.write_text(yaml.safe_dump({'hclust': {'k': 2}}))
        assert load_config_file(str(path)) == {'hclust': {'k': 2}}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')
        assert load_config_file(str(path)) == {}

    def test_json(self, tmp_path):
        path = tmp_path / 'overrides.json'
        path.write_text(json.dumps({'svm': {'cost': 1.0}}))
        assert load_config_file(str(path)) == {'svm': {'cost': 1.0}}


class TestConfigManager:
    """Tests for the shared configuration."""

    def test_singleton(self):
        """Test that the same instance is returned."""
        assert ConfigManager.get_config() is ConfigManager.get_config()

    def test_overrides_reload(self):
        """Test that overrides reload the shared instance."""
        config = ConfigManager.get_config()
        ConfigManager.get_config({'kmeans': {'k': 7}})
        assert config.get('kmeans.k') == 7

    def test_reset(self):
        """Test dropping the shared instance."""
        first = ConfigManager.get_config({'kmeans': {'k': 7}})
        ConfigManager.reset()
        second = ConfigManager.get_config()

        assert first is not second
        assert second.get('kmeans.k') == 4
