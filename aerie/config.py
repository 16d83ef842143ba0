"""
Config system - Layered typed configuration for MVC bindings.

Sources, merged in order (later overrides earlier):
1. JSON config files
2. ``.env`` file (python-dotenv)
3. Environment variables (``AERIE_*`` prefix, ``__`` nests)
4. Manual overrides

``ConfigLoader.mvc_config()`` turns the merged data into an ``MvcConfig``.
"""

import json
import logging
import os
from dataclasses import MISSING, dataclass, field, fields, is_dataclass, replace
from glob import glob
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Type, get_args, get_origin

from dotenv import dotenv_values

from .cache import DEVELOPMENT_TTL
from .faults import ConfigFault

logger = logging.getLogger("aerie.config")

DEVELOPMENT = "development"
PRODUCTION = "production"

_MODE_ALIASES = {
    "dev": DEVELOPMENT,
    "develop": DEVELOPMENT,
    "development": DEVELOPMENT,
    "test": DEVELOPMENT,
    "prod": PRODUCTION,
    "production": PRODUCTION,
}


# ============================================================================
# Environment
# ============================================================================

@dataclass(frozen=True)
class Environment:
    """
    Deployment mode, read once at startup.

    Controls the template cache TTL, expanded-vs-minified asset lists and
    which block of a route config file applies.
    """

    mode: str = DEVELOPMENT

    @classmethod
    def parse(cls, value: Optional[str]) -> "Environment":
        if not value:
            return cls()
        mode = _MODE_ALIASES.get(value.strip().lower())
        if mode is None:
            raise ConfigFault("mode", f"unknown deployment mode {value!r}")
        return cls(mode)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Environment":
        environ = os.environ if environ is None else environ
        return cls.parse(environ.get("AERIE_ENV"))

    @property
    def development(self) -> bool:
        return self.mode == DEVELOPMENT

    @property
    def production(self) -> bool:
        return self.mode == PRODUCTION

    def __str__(self) -> str:
        return self.mode


# ============================================================================
# MvcConfig
# ============================================================================

@dataclass
class MvcConfig:
    """
    Options of one ``bind_mvc`` call.

    Attributes:
        directory: Project root scanned for controllers and apis
        statics: URL prefix served straight from ``directory`` (e.g. ``/assets/``)
        other_statics: Extra directories served under ``/__/<dir>/``
        vendor_dir: Directory served under ``/__/vendor/``
        filter: Hostname regex/string, or predicate over the exchange
        mode: ``development`` or ``production``
        cache_ttl: Template cache TTL; derived from ``mode`` when None
        partials_dir / layouts_dir / errors_dir: Sub-directory names under ``directory``
        extra_partials / extra_layouts: Additional search directories
        helpers: Extra Jinja2 globals
        middleware: Callables installed ahead of the binding's routes
        not_found: Bind a catch-all 404 after every route
        name / version / description: Sent as ``x-app-*`` headers
        expose_model: Bind ``<context>/model.json``; defaults to development mode
        max_body_size: Request body limit in bytes
    """

    directory: str = "."
    statics: Optional[str] = None
    other_statics: List[str] = field(default_factory=list)
    vendor_dir: Optional[str] = "vendor"
    filter: Any = None
    mode: str = DEVELOPMENT
    cache_ttl: Optional[float] = None
    partials_dir: str = "partials"
    layouts_dir: str = "layouts"
    errors_dir: str = "errors"
    extra_partials: List[str] = field(default_factory=list)
    extra_layouts: List[str] = field(default_factory=list)
    helpers: Dict[str, Any] = field(default_factory=dict)
    middleware: List[Any] = field(default_factory=list)
    not_found: bool = False
    name: str = "aerie"
    version: str = "0.0.0"
    description: str = ""
    expose_model: Optional[bool] = None
    max_body_size: int = 10_485_760

    def __post_init__(self):
        self.mode = Environment.parse(self.mode).mode
        if self.cache_ttl is not None and self.cache_ttl < 0:
            raise ConfigFault("cache_ttl", "must be >= 0")

    @property
    def environment(self) -> Environment:
        return Environment(self.mode)

    @property
    def root(self) -> Path:
        return Path(self.directory).resolve()

    @property
    def template_ttl(self) -> Optional[float]:
        if self.cache_ttl is not None:
            return self.cache_ttl
        return DEVELOPMENT_TTL if self.environment.development else None

    @property
    def model_json(self) -> bool:
        if self.expose_model is None:
            return self.environment.development
        return self.expose_model

    def with_options(self, **options: Any) -> "MvcConfig":
        """Copy with ``options`` applied; unknown keys raise ConfigFault."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigFault(unknown[0], "unknown MVC option")
        return replace(self, **options)


# ============================================================================
# ConfigLoader
# ============================================================================

class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "AERIE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        self._raw_values: Dict[str, str] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        env_prefix: str = "AERIE_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Args:
            paths: JSON config file paths (glob patterns supported)
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            env_prefix: Prefix for environment variables
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env(os.environ if environ is None else environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_from_files(self, pattern: str):
        matches = sorted(glob(pattern))
        if not matches:
            logger.debug(f"No config files match {pattern}")
        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            else:
                logger.warning(f"Ignoring config file with unsupported type: {path}")

    def _load_json_file(self, path: Path):
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFault(str(path), f"invalid JSON: {e}")
        if not isinstance(data, dict):
            raise ConfigFault(str(path), "top-level JSON value must be an object")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        if not Path(path).exists():
            logger.debug(f".env file not found: {path}")
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self, environ: Mapping[str, str]):
        for key, value in environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert AERIE_HELPERS__SITE_NAME to nested dict."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)
        if len(parts) == 1:
            self._raw_values[parts[0]] = value

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: Mapping):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, Mapping):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current: Any = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def mvc_config(self, **overrides: Any) -> MvcConfig:
        """
        Build an MvcConfig from the merged data.

        ``env`` (from ``AERIE_ENV``) is accepted as an alias of ``mode``.
        """
        data = dict(self.config_data)
        if "mode" not in data and "env" in data:
            data["mode"] = data["env"]
        data.update(overrides)
        return self._instantiate_dataclass(MvcConfig, data)

    def _instantiate_dataclass(self, config_class: Type, data: dict):
        """Instantiate dataclass config with validation."""
        if not is_dataclass(config_class):
            raise TypeError(f"{config_class!r} is not a dataclass")

        kwargs = {}
        for field_info in fields(config_class):
            field_name = field_info.name
            if field_name in data:
                value = self._as_declared(field_name, data[field_name], field_info.type)
                if not self._check_type(value, field_info.type):
                    raise ConfigFault(
                        field_name,
                        f"expected {field_info.type}, got {type(value).__name__}",
                    )
                kwargs[field_name] = value
            elif field_info.default is not MISSING:
                kwargs[field_name] = field_info.default
            elif field_info.default_factory is not MISSING:
                kwargs[field_name] = field_info.default_factory()

        return config_class(**kwargs)

    def _as_declared(self, name: str, value: Any, expected_type: Any) -> Any:
        """Numbers parsed from environment strings go back to text for ``str`` fields."""
        if expected_type not in (str, Optional[str]):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            raw = self._raw_values.get(name)
            if raw is not None and self._parse_value(raw) == value:
                return raw
            return str(value)
        return value

    def _check_type(self, value: Any, expected_type: Any) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if str(origin) == "typing.Union":
            if value is None:
                return True
            args = [a for a in get_args(expected_type) if a is not type(None)]
            return any(self._check_type(value, a) for a in args)

        if origin:
            return isinstance(value, origin)

        if expected_type is float:
            return isinstance(value, (int, float)) and not isinstance(value, bool)

        try:
            return isinstance(value, expected_type)
        except TypeError:
            return True

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()
