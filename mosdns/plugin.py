"""Registries of plugin types and preset plugins, and the plugin base."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from mosdns.core import Mosdns

NewArgsFunc = Callable[[], Any]
NewPluginFunc = Callable[["BP", Any], Any]
NewPresetPluginFunc = Callable[["BP"], Any]


@dataclass(frozen=True)
class PluginTypeInfo:
    """How to build a plugin of one type and its arguments object."""

    new_plugin: NewPluginFunc
    new_args: Optional[NewArgsFunc] = None


_types_lock = threading.RLock()
_types: Dict[str, PluginTypeInfo] = {}

_presets_lock = threading.Lock()
_presets: Dict[str, NewPresetPluginFunc] = {}


def reg_new_plugin_func(
    typ: str, init_func: NewPluginFunc, new_args: Optional[NewArgsFunc] = None
) -> None:
    """Register a plugin type. Raises ValueError if it already exists."""
    with _types_lock:
        if typ in _types:
            raise ValueError(f"duplicate plugin type [{typ}]")
        _types[typ] = PluginTypeInfo(new_plugin=init_func, new_args=new_args)


def del_plugin_type(typ: str) -> None:
    """Remove a plugin type; unknown types are ignored."""
    with _types_lock:
        _types.pop(typ, None)


def get_plugin_type(typ: str) -> Optional[PluginTypeInfo]:
    """Return the registered type, or None."""
    with _types_lock:
        return _types.get(typ)


def get_all_plugin_types() -> List[str]:
    """All registered plugin types."""
    with _types_lock:
        return list(_types)


def reg_new_preset_plugin_func(tag: str, func: NewPresetPluginFunc) -> None:
    """Register a plugin created for every instance. Raises ValueError on duplicates."""
    with _presets_lock:
        if tag in _presets:
            raise ValueError(f"preset plugin {tag} has already been registered")
        _presets[tag] = func


def load_new_preset_plugin_funcs() -> Dict[str, NewPresetPluginFunc]:
    """A copy of the preset plugin registry."""
    with _presets_lock:
        return dict(_presets)


def _named(parent: logging.Logger, name: str) -> logging.Logger:
    child = logging.Logger(f"{parent.name}.{name}", parent.level)
    for handler in parent.handlers:
        child.addHandler(handler)
    child.propagate = False
    child.disabled = parent.disabled
    return child


class BP:
    """What every plugin gets: its tag, a named logger and the instance."""

    def __init__(self, tag: str, mosdns: Mosdns) -> None:
        self._tag = tag
        self._mosdns = mosdns
        self._logger = _named(mosdns.logger, tag)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def mosdns(self) -> Mosdns:
        return self._mosdns

    @property
    def tag(self) -> str:
        """The plugin tag, unique within an instance."""
        return self._tag

    def reg_api(self, handler: Callable) -> None:
        """Mount a WSGI application under /plugins/<tag>. Call at most once."""
        self._mosdns.reg_plugin_api(self._tag, handler)