"""The main configuration file and its loading."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import yaml

from mosdns.mlog import LogConfig

_SEARCH_EXTENSIONS = ("json", "yaml", "yml")
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"", "0", "f", "F", "FALSE", "false", "False"}


@dataclass
class PluginConfig:
    """One plugin. An empty ``tag`` gets a generated one."""

    tag: str = ""
    type: str = ""
    args: Any = None


@dataclass
class APIConfig:
    """The address of the HTTP API server; empty disables it."""

    http: str = ""


def _section(value: Any, name: str, known: Iterable[str]) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{name}' expected a map, got {type(value).__name__}")
    section = {str(key).lower(): item for key, item in value.items()}
    unknown = sorted(set(section) - set(known))
    if unknown:
        raise ValueError(f"'{name}' has invalid keys: {', '.join(unknown)}")
    return section


def _as_str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"'{name}' expected a string, got {type(value).__name__}")


def _as_bool(value: Any, name: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
    raise ValueError(f"'{name}' expected a bool, got {value!r}")


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _plugin_from(value: Any, index: int) -> PluginConfig:
    name = f"plugins[{index}]"
    section = _section(value, name, ("tag", "type", "args"))
    return PluginConfig(
        tag=_as_str(section.get("tag"), f"{name}.tag"),
        type=_as_str(section.get("type"), f"{name}.type"),
        args=section.get("args"),
    )


@dataclass
class Config:
    """The top-level configuration."""

    log: LogConfig = field(default_factory=LogConfig)
    include: List[str] = field(default_factory=list)
    plugins: List[PluginConfig] = field(default_factory=list)
    api: APIConfig = field(default_factory=APIConfig)

    @classmethod
    def from_dict(cls, data: Any) -> Config:
        """Build a config from parsed data; unknown keys raise ValueError.

        Scalars are converted loosely: "true" is accepted for a bool, a
        number for a string, and a single value for a list.
        """
        top = _section(data, "config", ("log", "include", "plugins", "api"))
        log = _section(top.get("log"), "log", ("level", "file", "production"))
        api = _section(top.get("api"), "api", ("http",))
        return cls(
            log=LogConfig(
                level=_as_str(log.get("level"), "log.level"),
                file=_as_str(log.get("file"), "log.file"),
                production=_as_bool(log.get("production"), "log.production"),
            ),
            include=[
                _as_str(item, f"include[{i}]")
                for i, item in enumerate(_as_list(top.get("include")))
            ],
            plugins=[
                _plugin_from(item, i) for i, item in enumerate(_as_list(top.get("plugins")))
            ],
            api=APIConfig(http=_as_str(api.get("http"), "api.http")),
        )


def _find_default_config() -> Path:
    for ext in _SEARCH_EXTENSIONS:
        candidate = Path(f"config.{ext}")
        if candidate.is_file():
            return candidate
    raise FileNotFoundError('config file "config" not found in "."')


def _read(path: Path) -> Any:
    ext = path.suffix.lstrip(".").lower()
    if ext not in _SEARCH_EXTENSIONS:
        raise ValueError(f"unsupported config type {ext!r}")
    with path.open(encoding="utf-8") as fh:
        try:
            if ext == "json":
                return json.load(fh)
            return yaml.safe_load(fh)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ValueError(f"failed to read config: {exc}") from exc


def load_config(path: str = "") -> Tuple[Config, str]:
    """Load a config file and return it with the path used.

    With an empty ``path``, a file named "config" with a json, yaml or yml
    extension is searched in the current directory.
    """
    file_path = Path(path) if path else _find_default_config()
    data = _read(file_path)
    try:
        config = Config.from_dict({} if data is None else data)
    except ValueError as exc:
        raise ValueError(f"failed to unmarshal config: {exc}") from exc
    return config, str(file_path)