"""Loading ``SiteConfig`` from ``.plfa/config.yml`` and the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

from plfa_site.core.config import SiteConfig
from plfa_site.core.exceptions import ConfigLoadError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLFA_SITE_"
CONFIG_PATH = Path(".plfa") / "config.yml"

ConfigPath = tuple[str, ...]


def env_override_paths(keys: Iterable[str]) -> set[ConfigPath]:
    """Config paths set through ``PLFA_SITE_SECTION__KEY`` variables.

    >>> sorted(env_override_paths(["PLFA_SITE_AGDA__EXECUTABLE", "HOME"]))
    [('agda', 'executable')]
    """
    paths: set[ConfigPath] = set()
    for key in keys:
        if key.startswith(ENV_PREFIX):
            parts = tuple(part.lower() for part in key[len(ENV_PREFIX) :].split("__") if part)
            if parts:
                paths.add(parts)
    return paths


def merge_file_values(
    defaults: Mapping[str, Any],
    file_values: Mapping[str, Any],
    skip: set[ConfigPath],
    prefix: ConfigPath = (),
) -> dict[str, Any]:
    """Overlay file values on the defaults, leaving paths in ``skip`` alone."""
    merged = deepcopy(dict(defaults))
    for key, value in file_values.items():
        path = (*prefix, str(key).lower())
        if path in skip:
            continue
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_file_values(current, value, skip, path)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads and validates the configuration of one site.

    Precedence, highest first: environment variables, the config file under
    the site root, built-in defaults. ``paths.site_root`` always comes from the
    loader, never from the file.
    """

    def __init__(self, site_root: Path | None = None):
        self.site_root = site_root if site_root is not None else Path.cwd()

    @property
    def config_path(self) -> Path:
        return self.site_root / CONFIG_PATH

    def load(self) -> SiteConfig:
        file_values = self._read_file()
        paths = file_values.get("paths") or {}
        if not isinstance(paths, Mapping):
            raise ConfigLoadError(str(self.config_path), f"'paths' must be a mapping, got {type(paths).__name__}")
        file_values["paths"] = {key: value for key, value in paths.items() if key != "site_root"}

        # SiteConfig() already carries the environment overrides.
        merged = merge_file_values(
            SiteConfig().model_dump(mode="json"),
            file_values,
            skip=env_override_paths(os.environ),
        )
        merged["paths"]["site_root"] = self.site_root
        return SiteConfig.model_validate(merged)

    def _read_file(self) -> dict[str, Any]:
        path = self.config_path
        if not path.is_file():
            logger.debug("No config file at %s, using defaults", path)
            return {}
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigLoadError(str(path), f"invalid YAML: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(str(path), f"configuration root must be a mapping, got {type(data).__name__}")
        logger.debug("Loaded config from %s", path)
        return data
