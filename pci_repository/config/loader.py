"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RepositoryConfig

CONFIG_ENV_VAR = "PCI_REPOSITORY_CONFIG"

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _candidate_paths(cli_path: str | None) -> list[Path]:
    paths = []
    if cli_path:
        paths.append(Path(cli_path))
    if os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(os.environ[CONFIG_ENV_VAR]))
    paths.append(Path("pci_repository.yaml"))
    paths.append(Path.home() / ".pci_repository" / "config.yaml")
    return paths


def load_config(cli_path: str | None = None) -> RepositoryConfig:
    """Load config from the first existing candidate file, else defaults.

    Resolution order: CLI path, $PCI_REPOSITORY_CONFIG, project-local,
    user-global. An empty file is skipped in favour of the next candidate.
    """
    for path in _candidate_paths(cli_path):
        if not path.is_file():
            continue
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if raw is None:
            continue
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config in {path}: top level must be a mapping")
        try:
            return RepositoryConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e

    return RepositoryConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ``${VAR}`` and ``${VAR:-fallback}`` in strings.

    Unset variables without a fallback expand to an empty string.
    """
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `pci-repository config init`
DEFAULT_CONFIG_TEMPLATE = """\
# pci_repository.yaml

# Registry source
source:
  url: "https://pci-ids.ucw.cz/v2.2/pci.ids"   # http(s)://, file:// or a local path
  timeout: 30
  version_line: 3              # index of "#\\tVersion: ..." among non-empty header lines

# Aggregate store
store:
  backend: "sqlite"            # sqlite | memory
  path: ".pci_repository/repository.db"
  lock_ttl: 21600              # seconds before a held run lock counts as stale

# Ingestion
ingest:
  validation: "strict"         # strict (abort on first bad line) | warn (drop and log)
  hash_mode: "compat"          # compat | strict (also hashes child names and subvendor ids)

# Scheduled runs
schedule:
  interval_seconds: 86400
  run_on_startup: true
  # run_timeout: 600

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
