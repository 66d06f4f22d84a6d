"""
Configuration Tests
===================

YAML loading, environment overrides and backend selection.
"""

import pytest
import yaml
from pydantic import ValidationError

from file_server.auth import HttpAuthenticator, MockAuthenticator
from file_server.config import Settings, load_config
from file_server.main import create_authenticator, create_upload_server


ENV_VARS = [
    "FILE_SERVER_HOST",
    "FILE_SERVER_PORT",
    "FILE_SERVER_BUFFER_SIZE",
    "FILE_SERVER_DATA_DIR",
    "FILE_SERVER_AUTH_URL",
    "FILE_SERVER_AUTH_BACKEND",
    "FILE_SERVER_LOG_LEVEL",
    "PORT",
    "FILE_SERVER_CONFIG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "server": {"port": 11500, "buffer_size": 65536},
        "storage": {"data_dir": str(tmp_path / "files")},
        "auth": {"backend": "mock"},
    }))
    return path


class TestLoadConfig:
    """Source precedence."""

    def test_defaults(self):
        settings = Settings()
        assert settings.server.port == 11000
        assert settings.server.buffer_size == 1048576
        assert settings.protocol.require_mask is True
        assert settings.storage.mime_types["image/png"] == "png"
        assert "kube-probe" in settings.protocol.health_check_user_agents

    def test_yaml_values(self, config_file, tmp_path):
        settings = load_config(str(config_file))
        assert settings.server.port == 11500
        assert settings.server.buffer_size == 65536
        assert settings.storage.data_dir == str(tmp_path / "files")
        assert settings.auth.backend == "mock"
        # untouched sections keep their defaults
        assert settings.ops.port == 8080

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("FILE_SERVER_PORT", "12000")
        monkeypatch.setenv("FILE_SERVER_DATA_DIR", "/srv/uploads")
        monkeypatch.setenv("FILE_SERVER_AUTH_URL", "https://attachments.example.com")
        monkeypatch.setenv("PORT", "9090")

        settings = load_config(str(config_file))

        assert settings.server.port == 12000
        assert settings.storage.data_dir == "/srv/uploads"
        assert settings.auth.base_url == "https://attachments.example.com"
        assert settings.ops.port == 9090

    def test_config_path_from_env(self, config_file, monkeypatch):
        monkeypatch.setenv("FILE_SERVER_CONFIG", str(config_file))
        assert load_config().server.port == 11500

    def test_missing_file_uses_defaults(self, tmp_path):
        settings = load_config(str(tmp_path / "absent.yaml"))
        assert settings.server.port == 11000

    def test_invalid_buffer_size(self, monkeypatch, config_file):
        monkeypatch.setenv("FILE_SERVER_BUFFER_SIZE", "16")
        with pytest.raises(ValidationError):
            load_config(str(config_file))


class TestFactories:
    """Components built from settings."""

    def test_mock_backend(self):
        settings = Settings.model_validate({"auth": {"backend": "mock"}})
        assert isinstance(create_authenticator(settings), MockAuthenticator)

    def test_http_backend(self):
        settings = Settings.model_validate({"auth": {"base_url": "http://auth:5000/"}})
        authenticator = create_authenticator(settings)
        assert isinstance(authenticator, HttpAuthenticator)
        assert authenticator.base_url == "http://auth:5000"
        authenticator.close()

    def test_unknown_backend(self):
        settings = Settings.model_validate({"auth": {"backend": "ldap"}})
        with pytest.raises(ValueError):
            create_authenticator(settings)

    def test_upload_server(self, tmp_path):
        settings = Settings.model_validate({
            "server": {"port": 0, "buffer_size": 4096},
            "storage": {"data_dir": str(tmp_path), "mime_types": {"image/gif": "gif"}},
            "protocol": {"max_frame_size": 1000},
        })
        server = create_upload_server(settings, MockAuthenticator())

        assert server.buffer_size == 4096
        assert server.max_frame_size == 1000
        assert server.store.mime_types == {"image/gif": "gif"}
        assert not server.is_serving
