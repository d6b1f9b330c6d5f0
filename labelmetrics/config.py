"""Configuration models using Pydantic for validation, and process-wide settings."""
from typing import Any, Dict, List, Literal, Optional
import logging
import os

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from labelmetrics.data_stores import DataStore, DirectFileStore, SingleThreadedStore, SynchronizedStore

logger = logging.getLogger(__name__)


class DataStoreConfig(BaseModel):
    """Selects the process-wide value store backend."""
    backend: Literal["synchronized", "single_threaded", "direct_file"] = "synchronized"
    dir: Optional[str] = None  # Required by direct_file

    @model_validator(mode='after')
    def validate_dir(self):
        if self.backend == "direct_file" and not self.dir:
            raise ValueError("The direct_file backend requires 'dir'")
        return self


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"


class MetricConfig(BaseModel):
    """Declarative definition of a single metric."""
    name: str
    type: Literal["counter", "gauge", "histogram", "summary"]
    docstring: str
    labels: List[str] = Field(default_factory=list)
    preset_labels: Dict[str, str] = Field(default_factory=dict)
    store_settings: Dict[str, Any] = Field(default_factory=dict)

    # Histogram
    buckets: Optional[List[float]] = None

    @model_validator(mode='after')
    def validate_buckets(self):
        if self.buckets is not None and self.type != "histogram":
            raise ValueError(f"Metric '{self.name}' is a {self.type}, only histograms take buckets")
        return self


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    data_store: DataStoreConfig = Field(default_factory=DataStoreConfig)
    metrics: List[MetricConfig] = Field(default_factory=list)

    @field_validator('metrics')
    @classmethod
    def validate_metrics(cls, v):
        """Validate metric configurations."""
        names = [m.name for m in v]
        if len(names) != len(set(names)):
            raise ValueError("Metric names must be unique")

        return v


class Settings:
    """
    Process-wide client settings.

    The data store must be chosen before metrics are created: each metric
    binds its store handle at construction. Swapping the store while other
    threads are recording is not supported.
    """

    def __init__(self):
        self._data_store: DataStore = SynchronizedStore()

    @property
    def data_store(self) -> DataStore:
        return self._data_store

    @data_store.setter
    def data_store(self, store: DataStore):
        if not isinstance(store, DataStore):
            raise TypeError(f"Expected a DataStore, got {type(store).__name__}")
        self._data_store = store
        logger.debug(f"Data store set to {type(store).__name__}")


settings = Settings()


def build_data_store(config: DataStoreConfig) -> DataStore:
    """Instantiate the backend described by ``config``."""
    if config.backend == "synchronized":
        return SynchronizedStore()
    elif config.backend == "single_threaded":
        return SingleThreadedStore()
    elif config.backend == "direct_file":
        return DirectFileStore(config.dir)
    else:
        raise ValueError(f"Unknown data store backend: {config.backend}")


def configure(config: Config) -> Dict[str, Any]:
    """
    Apply ``config`` to the process.

    Sets up logging, installs the configured data store, then creates
    every declared metric.

    Returns:
        Metrics keyed by name
    """
    from labelmetrics.metrics import create_metric

    setup_logging(config.global_.log_level)
    settings.data_store = build_data_store(config.data_store)
    logger.info(f"Using {config.data_store.backend} data store")

    metrics = {}
    for metric_config in config.metrics:
        metrics[metric_config.name] = create_metric(metric_config)

    logger.info(f"Created {len(metrics)} metrics from configuration")
    return metrics


def setup_logging(log_level: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_backend := os.getenv('LABELMETRICS_DATA_STORE'):
        raw_config.setdefault('data_store', {})['backend'] = env_backend

    if env_dir := os.getenv('LABELMETRICS_STORE_DIR'):
        raw_config.setdefault('data_store', {})['dir'] = env_dir

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    try:
        return Config(**raw_config)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed: {e}") from e
