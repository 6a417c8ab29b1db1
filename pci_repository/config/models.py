from pydantic import BaseModel, Field
from typing import Literal

DEFAULT_REGISTRY_URL = "https://pci-ids.ucw.cz/v2.2/pci.ids"


class SourceConfig(BaseModel):
    url: str = DEFAULT_REGISTRY_URL
    timeout: float = Field(default=30.0, gt=0)
    # Index of the version marker among the non-empty header lines
    version_line: int = Field(default=3, ge=0)


class StoreConfig(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str = ".pci_repository/repository.db"
    lock_ttl: int = Field(default=6 * 3600, gt=0)


class IngestConfig(BaseModel):
    validation: Literal["strict", "warn"] = "strict"
    hash_mode: Literal["compat", "strict"] = "compat"


class ScheduleConfig(BaseModel):
    interval_seconds: int = Field(default=24 * 3600, gt=0)
    run_on_startup: bool = True
    run_timeout: float | None = Field(default=None, gt=0)


class RepositoryConfig(BaseModel):
    source: SourceConfig = Field(default_factory=SourceConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
