"""
overlaykit configuration management (layered YAML + environment).
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from overlaykit.core.exceptions import ConfigError
from overlaykit.core.utils.io import read_yaml
from overlaykit.core.utils.merge import deep_merge as _deep_merge
from overlaykit.core.utils.paths import (
    get_project_config_dir,
    get_user_config_dir,
    resolve_project_root,
)
from overlaykit.data import get_data_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "OVERLAYKIT_"

# Environment variables with this prefix that are not config keys.
_RESERVED_ENV_KEYS = {"PROJECT_ROOT", "USER_CONFIG_DIR"}


class ConfigManager:
    """Load, merge, and validate overlaykit configuration.

    Configuration sources (highest to lowest priority):
    1. Environment variables: OVERLAYKIT_<SECTION>__<KEY>
    2. Project config: <repo_root>/.overlaykit/config.yaml
    3. User config: ~/.overlaykit/config.yaml
    4. Bundled defaults: overlaykit.data/config/defaults.yaml
    """

    def __init__(self, repo_root: Optional[Path] = None) -> None:
        self.repo_root = Path(repo_root).resolve() if repo_root else resolve_project_root()

        self.core_config_path = get_data_path("config", "defaults.yaml")
        self.user_config_path = get_user_config_dir() / "config.yaml"
        self.project_config_path = get_project_config_dir(self.repo_root) / "config.yaml"

        self._cache: Optional[Dict[str, Any]] = None

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge dictionaries. Delegates to shared implementation."""
        return _deep_merge(base, override)

    def load_yaml(self, path: Path) -> Dict[str, Any]:
        # Fail closed: configuration must never silently ignore invalid YAML.
        if not path.exists():
            return {}
        try:
            data = read_yaml(path, default={}, raise_on_error=True)
        except Exception as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}", context={"path": str(path)}) from exc
        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration file {path} must hold a mapping, got {type(data).__name__}",
                context={"path": str(path)},
            )
        return data

    def validate_schema(self, config: Dict[str, Any]) -> None:
        from overlaykit.core.exceptions import SchemaValidationError
        from overlaykit.core.schemas import validate_payload

        try:
            validate_payload(config, "config", source="configuration")
        except SchemaValidationError as exc:
            raise ConfigError(str(exc), context=exc.context) from exc

    # ========== Environment overrides ==========

    def _as_bool(self, v: str) -> Optional[bool]:
        low = v.strip().lower()
        if low in {"true", "false"}:
            return low == "true"
        return None

    def _as_int(self, v: str) -> Optional[int]:
        if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
            return int(v)
        return None

    def _as_float(self, v: str) -> Optional[float]:
        s = v.strip()
        if re.fullmatch(r"[-+]?\d*\.\d+", s) or re.fullmatch(r"[-+]?\d+\.\d*", s):
            return float(s)
        return None

    def _as_json(self, v: str) -> Optional[Any]:
        s = v.strip()
        if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
            try:
                return json.loads(s)
            except json.JSONDecodeError:
                return None
        return None

    def _coerce_type(self, value: str) -> Any:
        if value.strip().lower() in {"null", "none", "~"}:
            return None
        for caster in (self._as_bool, self._as_int, self._as_float, self._as_json):
            result = caster(value)
            if result is not None:
                return result
        return value.strip()

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX):]
            if not raw or raw in _RESERVED_ENV_KEYS:
                continue
            segs = raw.split("__")
            if any(not s for s in segs):
                raise ConfigError(f"Malformed {ENV_PREFIX}* key: empty segment in '{key}'", context={"key": key})
            yield [s.lower() for s in segs], self._coerce_type(os.environ[key])

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, value in self._iter_env_overrides():
            cur = cfg
            for part in path[:-1]:
                nxt = cur.get(part)
                if not isinstance(nxt, dict):
                    nxt = {}
                    cur[part] = nxt
                cur = nxt
            cur[path[-1]] = value
            logger.debug("config override from environment: %s", ".".join(path))

    # ========== Loading ==========

    def _normalize(self, cfg: Dict[str, Any]) -> None:
        log_cfg = cfg.get("logging")
        if isinstance(log_cfg, dict) and isinstance(log_cfg.get("level"), str):
            log_cfg["level"] = log_cfg["level"].upper()

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """Load and merge configuration from every layer.

        The merged result is cached per manager; treat it as immutable.
        """
        if self._cache is not None:
            return self._cache

        cfg: Dict[str, Any] = {}
        for layer in (self.core_config_path, self.user_config_path, self.project_config_path):
            layer_cfg = self.load_yaml(layer)
            if layer_cfg:
                logger.debug("merging config layer %s", layer)
            cfg = self.deep_merge(cfg, layer_cfg)

        self.apply_env_overrides(cfg)
        self._normalize(cfg)

        if validate:
            self.validate_schema(cfg)

        self._cache = cfg
        return cfg

    # ========== Accessor Methods ==========

    def get_all(self) -> Dict[str, Any]:
        return self.load_config()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-notation key.

        Example:
            >>> manager.get('build.reorder')
            'legacy'
            >>> manager.get('nonexistent.key', 'fallback')
            'fallback'
        """
        current: Any = self.load_config()
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current


__all__ = ["ConfigManager", "ENV_PREFIX"]
