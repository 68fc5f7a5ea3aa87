"""Locate, read and validate gatehouse.yaml."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import GatehouseConfig

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def config_search_path(cli_path: str | None = None) -> list[Path]:
    """Candidate config files, highest priority first.

    Explicit ``--config`` path, then ``$GATEHOUSE_CONFIG``, then
    ``./gatehouse.yaml``, then ``~/.gatehouse/config.yaml``.
    """
    candidates = []
    if cli_path:
        candidates.append(Path(cli_path))
    if env_path := os.environ.get("GATEHOUSE_CONFIG"):
        candidates.append(Path(env_path))
    candidates.append(Path("gatehouse.yaml"))
    candidates.append(Path.home() / ".gatehouse" / "config.yaml")
    return candidates


def load_config(cli_path: str | None = None) -> GatehouseConfig:
    """Build the config from the first non-empty file on the search path.

    Falls back to defaults when no file exists. Malformed YAML and invalid
    values are reported as ``ValueError`` naming the offending file.
    """
    for path in config_search_path(cli_path):
        if not path.is_file():
            continue
        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if not raw:
            continue
        try:
            return GatehouseConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e

    return GatehouseConfig()


def _expand_env_vars(obj: object) -> object:
    """Substitute ${VAR} / ${VAR:-fallback} in every string of a YAML tree."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    if not isinstance(obj, str):
        return obj
    return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), obj)


# Written by `gatehouse config init`
DEFAULT_CONFIG_TEMPLATE = """\
# gatehouse.yaml

store:
  provider: sqlite             # sqlite | memory | any name under the gatehouse.stores entry point group
  options:                     # passed to the store class as keyword arguments
    db_path: "${GATEHOUSE_DB:-.gatehouse/acl.db}"

# Physical bucket names. Changing them orphans data already written.
buckets:
  meta: meta
  parents: parents
  resources: resources
  roles: roles
  users: users
  allows_prefix: allows_

engine:
  use_unions: true             # batched allowed_permissions when the store has unions()
  reserved_keys: [key]         # identifiers mutations refuse to write

log_level: info                # debug | info | warn | error
log_format: text               # text | json
"""
