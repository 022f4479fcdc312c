"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from cvmd.config import ConfigManager, merge_dicts
from cvmd.exceptions import ConfigError
from cvmd.models import Config, CvmConfig, GatewayConfig


@pytest.fixture(autouse=True)
def no_env(monkeypatch):
    monkeypatch.delenv("CVMD_CONFIG", raising=False)


def _write(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))
    return path


class TestMergeDicts:
    def test_nested(self):
        base = {"cvm": {"cid_start": 10, "max_disk_size": 50}, "log_level": "info"}
        override = {"cvm": {"max_disk_size": 200}}
        assert merge_dicts(base, override) == {
            "cvm": {"cid_start": 10, "max_disk_size": 200},
            "log_level": "info",
        }
        assert base["cvm"]["max_disk_size"] == 50

    def test_scalar_replaces_mapping(self):
        assert merge_dicts({"a": {"b": 1}}, {"a": 2}) == {"a": 2}


class TestConfigManager:
    def test_defaults_without_files(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = ConfigManager(system_config_file=None).load()
        assert config.cvm.cid_start == 1000
        assert config.cvm.cid_end == 2000
        assert config.run_path == (tmp_path / "run" / "vm").resolve()

    def test_relative_paths_follow_config_file(self, tmp_path):
        path = _write(tmp_path / "etc" / "cvmd.yaml", {"image_path": "images", "run_path": "/srv/vm"})
        config = ConfigManager(path, system_config_file=None).load()
        assert config.image_path == (tmp_path / "etc" / "images").resolve()
        assert config.run_path == Path("/srv/vm")
        assert config.supervisor.sock == (tmp_path / "etc" / "run" / "supervisor.sock").resolve()

    def test_leaf_overrides_system(self, tmp_path):
        system = _write(tmp_path / "system.yaml", {"cvm": {"cid_start": 10, "max_disk_size": 50}})
        leaf = _write(tmp_path / "cvmd.yaml", {"cvm": {"max_disk_size": 200}})
        config = ConfigManager(leaf, system_config_file=system).load()
        assert config.cvm.cid_start == 10
        assert config.cvm.max_disk_size == 200

    def test_env_selects_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "custom.yaml", {"log_level": "debug"})
        monkeypatch.setenv("CVMD_CONFIG", str(path))
        manager = ConfigManager(system_config_file=None)
        assert manager.config_file == path
        assert manager.load().log_level == "debug"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            ConfigManager(tmp_path / "missing.yaml", system_config_file=None).load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "cvmd.yaml"
        path.write_text("cvm: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML") as exc_info:
            ConfigManager(path, system_config_file=None).load()
        assert isinstance(exc_info.value.__cause__, yaml.YAMLError)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "cvmd.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            ConfigManager(path, system_config_file=None).load()

    @pytest.mark.parametrize(
        "data",
        [
            {"cvm": {"cid_start": 2}},
            {"log_level": "verbose"},
            {"networking": {"mode": "bridge"}},
            {"gateway": {"enabled": True}},
        ],
    )
    def test_invalid_values(self, tmp_path, data):
        path = _write(tmp_path / "cvmd.yaml", data)
        with pytest.raises(ConfigError, match="Invalid configuration") as exc_info:
            ConfigManager(path, system_config_file=None).load()
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "out" / "cvmd.yaml"
        manager = ConfigManager(path, system_config_file=None)
        manager.save(
            Config(
                image_path=tmp_path / "images",
                run_path=tmp_path / "vm",
                cvm=CvmConfig(cid_start=50, cid_pool_size=10),
                gateway=GatewayConfig(enabled=True, base_domain="example.com"),
            )
        )
        saved = yaml.safe_load(path.read_text())
        assert saved["cvm"]["cid_start"] == 50
        assert "url" not in saved["supervisor"]

        config = ConfigManager(path, system_config_file=None).get()
        assert config.cvm.cid_end == 60
        assert config.gateway.base_domain == "example.com"
        assert config.image_path == tmp_path / "images"
