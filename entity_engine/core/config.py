"""
Application metadata and runtime settings.

AppConfig is what the owning application declares: which reducer folds which
event type, and the current schema version of each entity type.

Settings is read from the environment:
    ENTITY_ENGINE_PROVIDER: memory, file, s3 - default: file
    ENTITY_ENGINE_DATA_DIR: directory for the file provider - default: ./entity-data
    ENTITY_ENGINE_S3_BUCKET: bucket for the s3 provider (required for s3)
    ENTITY_ENGINE_S3_PREFIX: key prefix - default: entities
    ENTITY_ENGINE_S3_ENDPOINT: endpoint URL (MinIO, localstack)
    ENTITY_ENGINE_S3_REGION: region - default: us-east-1
    METRICS_ENABLED: start Prometheus endpoint (true/false) - default: false
    METRICS_PORT: metrics port - default: 8080
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from .errors import ConfigError
from .registry import ReducerSpec, import_object

PROVIDERS = ("memory", "file", "s3")


@dataclass(frozen=True)
class EntityMetadata:
    """Declared entity type metadata."""
    version: int = 1


@dataclass
class AppConfig:
    """
    Application-level metadata consumed by the engine.

    Fields:
        reducers: Event type name -> reducer callable or ReducerReference
        entities: Entity type name -> EntityMetadata
        events: Declared event type names (validated against reducers at startup)
    """
    reducers: Dict[str, ReducerSpec] = field(default_factory=dict)
    entities: Dict[str, EntityMetadata] = field(default_factory=dict)
    events: Sequence[str] = ()

    def current_version_for(self, entity_type_name: str) -> int:
        """Current schema version of an entity type (1 when undeclared)."""
        meta = self.entities.get(entity_type_name)
        return meta.version if meta is not None else 1


def load_app_config(path: str) -> AppConfig:
    """
    Load AppConfig from a "package.module:factory" path.

    The target may be an AppConfig instance or a zero-argument callable
    returning one.

    Raises:
        ConfigError: If the path cannot be imported or yields something else
    """
    try:
        target = import_object(path)
    except (ImportError, AttributeError, ValueError) as ex:
        raise ConfigError(f"cannot import config {path!r}: {ex}") from ex

    config = target() if callable(target) and not isinstance(target, AppConfig) else target
    if not isinstance(config, AppConfig):
        raise ConfigError(f"{path!r} did not produce an AppConfig (got {type(config).__name__})")
    return config


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    val = env.get(key)
    if val is None or val == "":
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    val = env.get(key)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError as ex:
        raise ConfigError(f"{key} must be an integer, got {val!r}", key=key) from ex
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive, got {parsed}", key=key)
    return parsed


@dataclass(frozen=True)
class Settings:
    """Runtime settings (provider selection, metrics)."""
    provider: str = "file"
    data_dir: str = "./entity-data"
    s3_bucket: Optional[str] = None
    s3_prefix: str = "entities"
    s3_endpoint: Optional[str] = None
    s3_region: str = "us-east-1"
    metrics_enabled: bool = False
    metrics_port: int = 8080

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Read settings from environment variables.

        Raises:
            ConfigError: On unknown provider, missing bucket or bad integers
        """
        env = os.environ if env is None else env

        provider = env.get("ENTITY_ENGINE_PROVIDER", "file").strip().lower()
        if provider not in PROVIDERS:
            raise ConfigError(
                f"ENTITY_ENGINE_PROVIDER must be one of {', '.join(PROVIDERS)}, got {provider!r}",
                key="ENTITY_ENGINE_PROVIDER",
            )

        bucket = env.get("ENTITY_ENGINE_S3_BUCKET") or None
        if provider == "s3" and not bucket:
            raise ConfigError(
                "ENTITY_ENGINE_S3_BUCKET is required for the s3 provider",
                key="ENTITY_ENGINE_S3_BUCKET",
            )

        return cls(
            provider=provider,
            data_dir=env.get("ENTITY_ENGINE_DATA_DIR", "./entity-data"),
            s3_bucket=bucket,
            s3_prefix=env.get("ENTITY_ENGINE_S3_PREFIX", "entities"),
            s3_endpoint=env.get("ENTITY_ENGINE_S3_ENDPOINT") or None,
            s3_region=env.get("ENTITY_ENGINE_S3_REGION", "us-east-1"),
            metrics_enabled=_env_bool(env, "METRICS_ENABLED", False),
            metrics_port=_env_int(env, "METRICS_PORT", 8080),
        )


def build_provider(settings: Settings) -> Any:
    """Construct the provider selected by settings."""
    # Imported here so core does not depend on provider modules (boto3).
    if settings.provider == "memory":
        from ..providers.memory import InMemoryProvider

        return InMemoryProvider()
    if settings.provider == "s3":
        from ..providers.s3_store import S3Provider

        return S3Provider(
            bucket=settings.s3_bucket or "",
            prefix=settings.s3_prefix,
            endpoint_url=settings.s3_endpoint,
            region=settings.s3_region,
        )
    from ..providers.file_store import FileProvider

    return FileProvider(settings.data_dir)
