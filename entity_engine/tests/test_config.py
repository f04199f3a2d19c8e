"""
Tests for settings, provider selection and AppConfig loading.
"""

import pytest

from entity_engine.core.config import AppConfig, EntityMetadata, Settings, build_provider, load_app_config
from entity_engine.core.errors import ConfigError
from entity_engine.providers.file_store import FileProvider
from entity_engine.providers.memory import InMemoryProvider

NOT_A_CONFIG = 42


def test_settings_defaults():
    settings = Settings.from_env({})

    assert settings.provider == "file"
    assert settings.data_dir == "./entity-data"
    assert settings.s3_prefix == "entities"
    assert settings.metrics_enabled is False
    assert settings.metrics_port == 8080


def test_settings_from_env():
    settings = Settings.from_env(
        {
            "ENTITY_ENGINE_PROVIDER": "S3",
            "ENTITY_ENGINE_S3_BUCKET": "snapshots",
            "ENTITY_ENGINE_S3_ENDPOINT": "http://localhost:9000",
            "METRICS_ENABLED": "true",
            "METRICS_PORT": "9100",
        }
    )

    assert settings.provider == "s3"
    assert settings.s3_bucket == "snapshots"
    assert settings.s3_endpoint == "http://localhost:9000"
    assert settings.metrics_enabled is True
    assert settings.metrics_port == 9100


def test_unknown_provider_rejected():
    with pytest.raises(ConfigError) as exc_info:
        Settings.from_env({"ENTITY_ENGINE_PROVIDER": "redis"})

    assert exc_info.value.key == "ENTITY_ENGINE_PROVIDER"


def test_s3_requires_bucket():
    with pytest.raises(ConfigError) as exc_info:
        Settings.from_env({"ENTITY_ENGINE_PROVIDER": "s3"})

    assert exc_info.value.key == "ENTITY_ENGINE_S3_BUCKET"


@pytest.mark.parametrize("port", ["abc", "0", "-1"])
def test_bad_metrics_port_rejected(port):
    with pytest.raises(ConfigError):
        Settings.from_env({"METRICS_PORT": port})


def test_build_memory_provider():
    assert isinstance(build_provider(Settings(provider="memory")), InMemoryProvider)


def test_build_file_provider(tmp_path):
    provider = build_provider(Settings(provider="file", data_dir=str(tmp_path / "data")))

    assert isinstance(provider, FileProvider)
    assert (tmp_path / "data").is_dir()


def test_load_app_config_from_factory():
    config = load_app_config("entity_engine.tests.sample_domain:app_config")

    assert isinstance(config, AppConfig)
    assert config.current_version_for("Counter") == 3


def test_load_app_config_rejects_other_objects():
    with pytest.raises(ConfigError):
        load_app_config("entity_engine.tests.test_config:NOT_A_CONFIG")


def test_load_app_config_bad_path():
    with pytest.raises(ConfigError):
        load_app_config("entity_engine.tests.sample_domain")
    with pytest.raises(ConfigError):
        load_app_config("no_such_module:config")


def test_undeclared_entity_version_defaults_to_one():
    config = AppConfig(entities={"Cart": EntityMetadata(version=4)})

    assert config.current_version_for("Cart") == 4
    assert config.current_version_for("Order") == 1
