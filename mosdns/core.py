"""A running instance: its logger, plugins, API router and shutdown control."""

from __future__ import annotations

import dataclasses
import logging
import socket
import threading
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from mosdns.config import Config, PluginConfig, load_config
from mosdns.mlog import new_logger, nop
from mosdns.plugin import BP, get_plugin_type, load_new_preset_plugin_funcs
from mosdns.safe_close import SafeClose

_MAX_INCLUDE_DEPTH = 8


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:
        pass


class _WSGIServerV6(WSGIServer):
    address_family = socket.AF_INET6


def _split_host_port(addr: str) -> Tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr}")
    try:
        port_num = int(port)
    except ValueError as exc:
        raise ValueError(f"invalid port in address {addr}") from exc
    return host.strip("[]"), port_num


def _decode_args(raw: Any, target: Any) -> Any:
    if raw is None:
        return target
    if target is None or type(raw) is type(target):
        return raw
    if isinstance(raw, Mapping):
        if dataclasses.is_dataclass(target) and not isinstance(target, type):
            names = {f.name for f in dataclasses.fields(target) if f.init}
            unknown = sorted(set(raw) - names)
            if unknown:
                raise ValueError(f"unable to decode plugin args: invalid keys: {', '.join(unknown)}")
            return dataclasses.replace(target, **raw)
        if isinstance(target, dict):
            merged = dict(target)
            merged.update(raw)
            return merged
    raise ValueError(
        f"unable to decode plugin args: cannot convert {type(raw).__name__} "
        f"to {type(target).__name__}"
    )


class Mosdns:
    """Loads the plugins of a config and serves the HTTP API.

    The instance is itself a WSGI application routing to the plugin APIs.
    """

    def __init__(self, config: Config) -> None:
        try:
            lg = new_logger(config.log)
        except (ValueError, OSError) as exc:
            raise RuntimeError(f"failed to init logger: {exc}") from exc
        self._setup(lg, {})

        if config.api.http:
            addr = config.api.http
            self._sc.attach(lambda done, signal: self._serve_api(addr, done, signal))

        self._sc.attach(self._close_plugins)

        try:
            self._load_preset_plugins()
            self.load_plugins_from_config(config, 0)
        except Exception as exc:
            self._sc.send_close_signal(exc)
            try:
                self._sc.wait_closed()
            except Exception:
                pass
            raise
        self._logger.info("all plugins are loaded")

    def _setup(self, lg: logging.Logger, plugins: Dict[str, Any]) -> None:
        self._logger = lg
        self._plugins = plugins
        self._routes: Dict[str, Callable] = {}
        self._routes_lock = threading.Lock()
        self._sc = SafeClose()

    @classmethod
    def with_plugins(cls, plugins: Dict[str, Any]) -> Mosdns:
        """An instance holding ``plugins`` and a silent logger, for tests."""
        instance = cls.__new__(cls)
        instance._setup(nop(), plugins)
        return instance

    @property
    def safe_close(self) -> SafeClose:
        return self._sc

    def close_with_err(self, err: Optional[BaseException]) -> None:
        """Send the close signal with ``err``."""
        self._sc.send_close_signal(err)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def get_plugin(self, tag: str) -> Any:
        """Return the plugin with ``tag``, or None."""
        return self._plugins.get(tag)

    def api_routes(self) -> Dict[str, Callable]:
        """The mounted API prefixes and their WSGI applications."""
        with self._routes_lock:
            return dict(self._routes)

    def reg_plugin_api(self, tag: str, handler: Callable) -> None:
        """Mount a WSGI application under /plugins/<tag>."""
        prefix = "/plugins/" + tag
        with self._routes_lock:
            if prefix in self._routes:
                raise ValueError(f"api path {prefix} is already mounted")
            self._routes[prefix] = handler

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO", "") or "/"
        for prefix, app in self.api_routes().items():
            if path == prefix or path.startswith(prefix + "/"):
                sub = dict(environ)
                sub["SCRIPT_NAME"] = environ.get("SCRIPT_NAME", "") + prefix
                sub["PATH_INFO"] = path[len(prefix):]
                return app(sub, start_response)
        return self._invalid_request(environ, start_response)

    def _invalid_request(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        uri = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
        if environ.get("QUERY_STRING"):
            uri += "?" + environ["QUERY_STRING"]
        lines = [
            f"Invalid request {environ.get('REQUEST_METHOD', 'GET')} {uri}\n\n",
            "Available api urls:\n",
        ]
        lines.extend(f"* {prefix}/*\n" for prefix in self.api_routes())
        body = "".join(lines).encode()
        start_response(
            "200 OK",
            [("Content-Type", "text/plain; charset=utf-8"), ("Content-Length", str(len(body)))],
        )
        return [body]

    def _serve_api(self, addr: str, done: Callable[[], None], close_signal: threading.Event) -> None:
        try:
            host, port = _split_host_port(addr)
            server_class = _WSGIServerV6 if ":" in host else WSGIServer
            server = make_server(
                host, port, self, server_class=server_class, handler_class=_QuietHandler
            )
        except (OSError, ValueError) as exc:
            self._sc.send_close_signal(exc)
            done()
            return

        def serve() -> None:
            try:
                server.serve_forever()
            except Exception as exc:
                self._sc.send_close_signal(exc)

        self._logger.info("starting api http server addr=%s", addr)
        threading.Thread(target=serve, daemon=True).start()
        close_signal.wait()
        server.shutdown()
        server.server_close()
        done()

    def _close_plugins(self, done: Callable[[], None], close_signal: threading.Event) -> None:
        try:
            close_signal.wait()
            self._logger.info("starting shutdown sequences")
            for tag, plugin in list(self._plugins.items()):
                close = getattr(plugin, "close", None)
                if callable(close):
                    self._logger.info("closing plugin tag=%s", tag)
                    try:
                        close()
                    except Exception:
                        self._logger.exception("failed to close plugin tag=%s", tag)
            self._logger.info("all plugins were closed")
        finally:
            done()

    def _load_preset_plugins(self) -> None:
        for tag, func in load_new_preset_plugin_funcs().items():
            try:
                plugin = func(BP(tag, self))
            except Exception as exc:
                raise RuntimeError(f"failed to init preset plugin {tag}, {exc}") from exc
            self._plugins[tag] = plugin

    def new_plugin(self, config: PluginConfig) -> Any:
        """Create the plugin described by ``config``, add it and return it."""
        tag = config.tag or f"anonymouse_{config.type}_{len(self._plugins)}"
        if tag in self._plugins:
            raise ValueError(f"duplicated plugin tag {tag}")
        info = get_plugin_type(config.type)
        if info is None:
            raise ValueError(f"plugin type {config.type} not defined")
        target = info.new_args() if info.new_args is not None else None
        args = _decode_args(config.args, target)

        self._logger.info("loading plugin tag=%s type=%s", tag, config.type)
        try:
            plugin = info.new_plugin(BP(tag, self), args)
        except Exception as exc:
            raise RuntimeError(f"failed to init plugin: {exc}") from exc
        self._plugins[tag] = plugin
        return plugin

    def load_plugins_from_config(self, config: Config, include_depth: int = 0) -> None:
        """Load the included configs first, then the plugins of ``config``."""
        if include_depth > _MAX_INCLUDE_DEPTH:
            raise ValueError("maximum include depth reached")
        include_depth += 1

        for path in config.include:
            try:
                sub_config, used = load_config(path)
            except (OSError, ValueError) as exc:
                raise RuntimeError(f"failed to read config from {path}, {exc}") from exc
            self._logger.info("load config file=%s", used)
            try:
                self.load_plugins_from_config(sub_config, include_depth)
            except Exception as exc:
                raise RuntimeError(f"failed to load config from {path}, {exc}") from exc

        for index, plugin_config in enumerate(config.plugins):
            try:
                self.new_plugin(plugin_config)
            except Exception as exc:
                raise RuntimeError(
                    f"failed to init plugin #{index} {plugin_config.tag}, {exc}"
                ) from exc