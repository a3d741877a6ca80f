import pytest

from mosdns.config import APIConfig, Config, PluginConfig, load_config
from mosdns.mlog import LogConfig


def test_from_dict_full():
    cfg = Config.from_dict(
        {
            "log": {"level": "debug", "file": "x.log", "production": True},
            "include": ["a.yaml"],
            "plugins": [{"tag": "t", "type": "forward", "args": {"k": 1}}],
            "api": {"http": "127.0.0.1:8080"},
        }
    )
    assert cfg.log == LogConfig("debug", "x.log", True)
    assert cfg.include == ["a.yaml"]
    assert cfg.plugins == [PluginConfig(tag="t", type="forward", args={"k": 1})]
    assert cfg.api == APIConfig(http="127.0.0.1:8080")


def test_from_dict_empty_gives_defaults():
    assert Config.from_dict({}) == Config()


def test_unknown_key_raises():
    with pytest.raises(ValueError, match="invalid keys"):
        Config.from_dict({"logs": {}})
    with pytest.raises(ValueError, match="invalid keys"):
        Config.from_dict({"plugins": [{"type": "x", "name": "y"}]})


def test_weak_typing():
    cfg = Config.from_dict({"log": {"production": "true"}, "include": "one.yaml"})
    assert cfg.log.production is True
    assert cfg.include == ["one.yaml"]


def test_bad_plugin_entry_raises():
    with pytest.raises(ValueError):
        Config.from_dict({"plugins": ["not a map"]})


def test_bad_bool_raises():
    with pytest.raises(ValueError):
        Config.from_dict({"log": {"production": "maybe"}})


def test_load_config_from_file(tmp_path):
    path = tmp_path / "main.yaml"
    path.write_text("log:\n  level: error\nplugins:\n  - type: forward\n", encoding="utf-8")
    cfg, used = load_config(str(path))
    assert used == str(path)
    assert cfg.log.level == "error"
    assert cfg.plugins == [PluginConfig(type="forward")]


def test_load_config_searches_cwd(tmp_path, monkeypatch):
    (tmp_path / "config.yaml").write_text("api:\n  http: ':53'\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    cfg, used = load_config("")
    assert used == "config.yaml"
    assert cfg.api.http == ":53"


def test_load_config_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_config("")


def test_load_config_invalid_content(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("unknown_section: 1\n", encoding="utf-8")
    with pytest.raises(ValueError, match="failed to unmarshal config"):
        load_config(str(path))