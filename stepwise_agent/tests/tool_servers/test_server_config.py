# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import pytest

from pydantic import ValidationError

from stepwise_agent.src.config import ServerConfig, Settings, load_server_configs


class TestServerConfig:

    def test_valid(self):
        config = ServerConfig(command="uvx", args=["mcp-server-fetch"], env={"KEY": "v"})
        assert config.command == "uvx"
        assert config.args == ["mcp-server-fetch"]

    @pytest.mark.parametrize("data, message", [
        ({"command": "", "args": ["x"]}, "command must not be empty"),
        ({"command": "   ", "args": ["x"]}, "command must not be empty"),
        ({"command": "uvx", "args": []}, "args must not be empty"),
    ])
    def test_invalid(self, data, message):
        with pytest.raises(ValidationError) as exc_info:
            ServerConfig.model_validate(data)
        assert message in str(exc_info.value)

    def test_args_required(self):
        with pytest.raises(ValidationError):
            ServerConfig(command="uvx")


class TestLoadServerConfigs:

    def test_servers_key(self, tmp_path):
        path = tmp_path / "servers.yaml"
        path.write_text(
            "servers:\n"
            "  fetch:\n"
            "    command: uvx\n"
            "    args: [mcp-server-fetch]\n"
            "  files:\n"
            "    command: npx\n"
            "    args: ['-y', '@modelcontextprotocol/server-filesystem', '/tmp']\n"
            "    env:\n"
            "      DEBUG: '1'\n"
        )
        configs = load_server_configs(path)
        assert list(configs) == ["fetch", "files"]
        assert configs["files"].args[-1] == "/tmp"
        assert configs["files"].env == {"DEBUG": "1"}

    def test_bare_mapping(self, tmp_path):
        path = tmp_path / "servers.yaml"
        path.write_text("fetch:\n  command: uvx\n  args: [mcp-server-fetch]\n")
        assert load_server_configs(path)["fetch"].command == "uvx"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "servers.yaml"
        path.write_text("")
        assert load_server_configs(path) == {}

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "servers.yaml"
        path.write_text("servers:\n  broken:\n    command: uvx\n    args: []\n")
        with pytest.raises(ValidationError):
            load_server_configs(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "servers.yaml"
        path.write_text("servers: [a, b]\n")
        with pytest.raises(ValueError):
            load_server_configs(path)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("STEPWISE_MODEL_TYPE", "ollama")
    monkeypatch.setenv("STEPWISE_MAX_STEPS", "25")
    monkeypatch.setenv("STEPWISE_PLANNING_INTERVAL", "3")
    monkeypatch.delenv("STEPWISE_STEP_LOG", raising=False)

    settings = Settings.from_env()
    assert settings.MODEL_TYPE == "ollama"
    assert settings.MAX_STEPS == 25
    assert settings.PLANNING_INTERVAL == 3
    assert settings.STEP_LOG == "logs.txt"


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("STEPWISE_PLANNING_INTERVAL", raising=False)
    monkeypatch.delenv("STEPWISE_MAX_STEPS", raising=False)
    settings = Settings.from_env()
    assert settings.MAX_STEPS == 10
    assert settings.PLANNING_INTERVAL is None
