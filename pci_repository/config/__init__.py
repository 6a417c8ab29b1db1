from .loader import load_config
from .models import (
    IngestConfig,
    RepositoryConfig,
    ScheduleConfig,
    SourceConfig,
    StoreConfig,
)

__all__ = [
    "IngestConfig",
    "RepositoryConfig",
    "ScheduleConfig",
    "SourceConfig",
    "StoreConfig",
    "load_config",
]
