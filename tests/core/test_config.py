"""Tests for configuration models and loading."""

from pathlib import Path

import pytest

from taxokey.core import config as config_module
from taxokey.core.config import (
    CONFIG_FILENAME,
    DEFAULT_PLACEHOLDER_DOMAINS,
    Config,
    MergeConfig,
    find_config_file,
    get_config,
    load_config,
)
from taxokey.core.exceptions import ConfigError, TaxokeyError


class TestMergeConfig:
    """Tests for MergeConfig model."""

    def test_defaults(self) -> None:
        config = MergeConfig()
        assert config.description_min_length == 20
        assert config.placeholder_domains == DEFAULT_PLACEHOLDER_DOMAINS

    def test_domains_normalized(self) -> None:
        config = MergeConfig(placeholder_domains=[" Picsum.Photos ", "", "cdn.fake.io"])
        assert config.placeholder_domains == ("picsum.photos", "cdn.fake.io")

    def test_single_domain_string(self) -> None:
        assert MergeConfig(placeholder_domains="placehold.co").placeholder_domains == (
            "placehold.co",
        )

    def test_none_domains_means_empty(self) -> None:
        assert MergeConfig(placeholder_domains=None).placeholder_domains == ()

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ValueError):
            MergeConfig(description_min_length=-1)

    def test_frozen(self) -> None:
        config = MergeConfig()
        with pytest.raises(ValueError):
            config.description_min_length = 5


class TestConfig:
    """Tests for root Config model."""

    def test_defaults(self) -> None:
        config = Config()
        assert config.merge == MergeConfig()
        assert config.log_level == "WARNING"

    def test_empty_merge_section(self) -> None:
        assert Config.model_validate({"merge": None}).merge == MergeConfig()

    def test_log_level_normalized(self) -> None:
        assert Config(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            Config(log_level="LOUD")


class TestLoadConfig:
    """Tests for load_config()."""

    def test_from_dict(self) -> None:
        config = load_config({"merge": {"description_min_length": 50}, "log_level": "info"})

        assert config.merge.description_min_length == 50
        assert config.log_level == "INFO"
        assert get_config() is config

    def test_from_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("merge:\n  placeholder_domains:\n    - img.test\nlog_level: ERROR\n")

        config = load_config(path)

        assert config.merge.placeholder_domains == ("img.test",)
        assert config.log_level == "ERROR"

    def test_path_as_string(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("log_level: DEBUG\n")
        assert load_config(str(path)).log_level == "DEBUG"

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("")
        assert load_config(path) == Config()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("merge: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_root_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(path)

    def test_validation_error(self) -> None:
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config({"merge": {"description_min_length": "many"}})

    def test_failed_load_keeps_previous_config(self) -> None:
        previous = load_config({"log_level": "ERROR"})
        with pytest.raises(ConfigError):
            load_config({"log_level": "LOUD"})
        assert get_config() is previous

    def test_config_error_is_taxokey_error(self) -> None:
        assert issubclass(ConfigError, TaxokeyError)


@pytest.mark.no_auto_config
class TestGetConfig:
    """Tests for lazy defaults."""

    def test_defaults_when_nothing_loaded(self) -> None:
        assert config_module._config is None
        assert get_config() == Config()

    def test_reset(self) -> None:
        load_config({"log_level": "ERROR"})
        config_module._reset_config()
        assert get_config().log_level == "WARNING"


class TestFindConfigFile:
    """Tests for find_config_file()."""

    def test_found(self, tmp_path: Path) -> None:
        path = tmp_path / CONFIG_FILENAME
        path.write_text("{}\n")
        assert find_config_file(tmp_path) == path

    def test_absent(self, tmp_path: Path) -> None:
        assert find_config_file(tmp_path) is None

    def test_directory_with_config_name_ignored(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).mkdir()
        assert find_config_file(tmp_path) is None
