"""
Unit tests for configuration loading and validation.

Tests defaults, strict key validation and API key resolution.
"""

import os
import tempfile

import pytest
import yaml

from prd_forge.config.loader import (
    AppConfig,
    GeneratorConfig,
    LimitsConfig,
    NotionConfig,
    load_config,
)


class TestConfigLoading:
    """Test configuration loading and validation."""
    
    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
    
    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)
    
    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path
    
    def test_defaults_without_file(self):
        """Test that no path gives the built-in defaults."""
        config = load_config(environ={})
        
        assert isinstance(config, AppConfig)
        assert config.generator.model == "claude-3-5-sonnet-20241022"
        assert config.generator.api_key is None
        assert config.generator.max_tokens_for("prd") == 4000
        assert config.limits.limits == {"user_story": 5, "prd": 3}
        assert config.limits.warnings == {"user_story": (3, 4), "prd": (2, 3)}
        assert config.notion.request_delay_seconds == 0.35
        assert config.storage.db_path == ".prd-forge.db"
    
    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_path = self._write_config({
            "generator": {
                "model": "claude-test",
                "api_key_env": "TEST_KEY",
                "max_tokens": {"user_story": 1500},
            },
            "limits": {"user_story": 10},
            "warnings": {"user_story": [8, 9]},
            "notion": {"request_delay_seconds": 0.5},
            "storage": {"db_path": "/tmp/shared.db"},
        })
        
        config = load_config(config_path, environ={"TEST_KEY": "sk-test"})
        
        assert config.generator.model == "claude-test"
        assert config.generator.api_key == "sk-test"
        assert config.generator.max_tokens_for("user_story") == 1500
        assert config.generator.max_tokens_for("prd") == 4000
        assert config.limits.limits == {"user_story": 10, "prd": 3}
        assert config.limits.warnings["user_story"] == (8, 9)
        assert config.notion.request_delay_seconds == 0.5
        assert config.storage.db_path == "/tmp/shared.db"
        assert config.storage.local_path == ".prd-forge-local.db"
    
    def test_api_key_from_default_env(self):
        config = load_config(environ={"ANTHROPIC_API_KEY": "sk-env"})
        assert config.generator.api_key == "sk-env"
    
    def test_empty_file_gives_defaults(self):
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        open(config_path, 'w').close()
        assert load_config(config_path, environ={}) == load_config(environ={})
    
    def test_missing_file_raises(self):
        """Test that an explicit missing file is an error."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(os.path.join(self.temp_dir, "nope.yaml"))
    
    def test_invalid_yaml_raises(self):
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("generator: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_config(config_path)
    
    def test_unknown_top_level_key_raises(self):
        """Test strict validation of top-level keys."""
        config_path = self._write_config({"budget": {"daily": 1}})
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_config(config_path, environ={})
    
    def test_unknown_section_key_raises(self):
        config_path = self._write_config({"notion": {"token": "secret"}})
        with pytest.raises(ValueError, match="Unknown keys in notion"):
            load_config(config_path, environ={})
    
    def test_non_mapping_config_raises(self):
        config_path = self._write_config(["a", "b"])
        with pytest.raises(ValueError, match="must be a mapping"):
            load_config(config_path, environ={})
    
    def test_non_integer_limit_raises(self):
        config_path = self._write_config({"limits": {"prd": "three"}})
        with pytest.raises(ValueError, match="must be an integer"):
            load_config(config_path, environ={})
    
    def test_unknown_generation_type_in_limits_raises(self):
        """Test a misspelled type does not silently keep the default limit."""
        config_path = self._write_config({"limits": {"user_stroy": 5}})
        with pytest.raises(ValueError, match="Unknown keys in limits"):
            load_config(config_path, environ={})
    
    def test_unknown_generation_type_in_warnings_raises(self):
        config_path = self._write_config({"warnings": {"prds": [1]}})
        with pytest.raises(ValueError, match="Unknown keys in warnings"):
            load_config(config_path, environ={})
    
    def test_workflow_limit_is_accepted(self):
        config_path = self._write_config({"limits": {"user_story_workflow": 10}})
        assert load_config(config_path, environ={}).limits.limits["user_story_workflow"] == 10
    
    def test_warnings_must_be_list(self):
        config_path = self._write_config({"warnings": {"prd": 2}})
        with pytest.raises(ValueError, match="must be a list"):
            load_config(config_path, environ={})
    
    def test_blank_model_raises(self):
        config_path = self._write_config({"generator": {"model": ""}})
        with pytest.raises(ValueError, match="non-empty string"):
            load_config(config_path, environ={})


class TestConfigValidation:
    """Test dataclass validation."""
    
    def test_non_positive_limit(self):
        with pytest.raises(ValueError, match="must be > 0"):
            LimitsConfig(limits={"prd": 0})
    
    def test_non_positive_max_tokens(self):
        with pytest.raises(ValueError, match="must be > 0"):
            GeneratorConfig(max_tokens={"prd": -1})
    
    def test_negative_delay(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            NotionConfig(request_delay_seconds=-1)
