"""
Tests for protopack.core.config
=================================

These tests verify that the configuration system works correctly:
    - ProtopackSettings defaults and PROTOPACK_* overrides
    - ArtifactoryConfig url normalisation
    - Config.load() / Config.write() against files in tmp_path

All tests are unit tests — no keyring, no network.
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from protopack.core.config import (
    ArtifactoryConfig,
    Config,
    ProtopackSettings,
    write_text_atomic,
)
from protopack.core.exceptions import ConfigurationError, StoreError


# =============================================================================
# Test: Process Settings
# =============================================================================
class TestProtopackSettings:
    """Tests for default values and environment overrides."""

    def test_defaults(self) -> None:
        settings = ProtopackSettings()
        assert settings.manifest_path == Path("Proto.yaml")
        assert settings.proto_dir == Path("proto")
        assert settings.store_dir == Path("proto/vendor")
        assert settings.config_path.name == "config.yaml"
        assert settings.config_path.parent.name == ".protopack"
        assert settings.log_level == "INFO"
        assert settings.local_registry is None

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("PROTOPACK_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("PROTOPACK_STORE_DIR", str(tmp_path / "store"))
        monkeypatch.setenv("PROTOPACK_MAX_CONCURRENT_TRANSFERS", "2")
        monkeypatch.setenv("PROTOPACK_LOCAL_REGISTRY", str(tmp_path / "registry"))

        settings = ProtopackSettings()
        assert settings.log_level == "DEBUG"
        assert settings.store_dir == tmp_path / "store"
        assert settings.max_concurrent_transfers == 2
        assert settings.local_registry == tmp_path / "registry"

    def test_env_prefix_is_case_insensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("protopack_log_level", "WARNING")
        assert ProtopackSettings().log_level == "WARNING"

    @pytest.mark.parametrize("value", [0, 65])
    def test_transfer_bounds(self, value: int) -> None:
        with pytest.raises(PydanticValidationError):
            ProtopackSettings(max_concurrent_transfers=value)

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(PydanticValidationError):
            ProtopackSettings(request_timeout_seconds=0)


# =============================================================================
# Test: Registry Connection
# =============================================================================
class TestArtifactoryConfig:
    """Tests for url validation."""

    def test_strips_trailing_slash(self) -> None:
        config = ArtifactoryConfig(url=" https://example.com/artifactory/ ", username="me")
        assert config.url == "https://example.com/artifactory"

    @pytest.mark.parametrize(
        "url",
        ["example.com", "ftp://example.com", "", "https://", "https:// not a host/x"],
    )
    def test_rejects_non_http(self, url: str) -> None:
        with pytest.raises(PydanticValidationError):
            ArtifactoryConfig(url=url, username="me")

    def test_keeps_host_and_path(self) -> None:
        config = ArtifactoryConfig(url="http://127.0.0.1:8081/artifactory", username="me")
        assert config.url == "http://127.0.0.1:8081/artifactory"

    def test_bare_host_has_no_trailing_slash(self) -> None:
        assert ArtifactoryConfig(url="https://a.example", username="me").url == "https://a.example"

    def test_requires_username(self) -> None:
        with pytest.raises(PydanticValidationError):
            ArtifactoryConfig(url="https://example.com", username="")


# =============================================================================
# Test: Persisted Config
# =============================================================================
class TestConfigFile:
    """Tests for Config.load() and Config.write()."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert Config.load(tmp_path / "absent.yaml") == Config()

    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.yaml"
        config = Config(artifactory=ArtifactoryConfig(url="https://a.example/artifactory", username="me"))
        config.write(path)

        assert Config.load(path) == config
        data = yaml.safe_load(path.read_text())
        assert data == {"artifactory": {"url": "https://a.example/artifactory", "username": "me"}}

    def test_empty_config_writes_empty_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        Config().write(path)
        assert yaml.safe_load(path.read_text()) == {}
        assert Config.load(path).artifactory is None

    def test_no_secret_is_persisted(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        Config(artifactory=ArtifactoryConfig(url="https://a.example", username="me")).write(path)
        assert "token" not in path.read_text()
        assert "password" not in path.read_text()

    def test_non_mapping_document_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        assert Config.load(path) == Config()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("artifactory: [oops")
        with pytest.raises(ConfigurationError) as exc_info:
            Config.load(path)
        assert exc_info.value.error_code == "CONFIG_ERROR"

    def test_not_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_bytes(b"artifactory:\n  url: \xff\n")
        with pytest.raises(ConfigurationError, match="Failed to read configuration"):
            Config.load(path)

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("artifactory:\n  url: not-a-url\n  username: me\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            Config.load(path)


class TestWriteTextAtomic:
    """Tests for the atomic write helper."""

    def test_replaces_content(self, tmp_path: Path) -> None:
        path = tmp_path / "file.txt"
        write_text_atomic(path, "one")
        write_text_atomic(path, "two")
        assert path.read_text() == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    def test_failure_raises_store_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(StoreError) as exc_info:
            write_text_atomic(blocker / "child.txt", "x")
        assert exc_info.value.details["path"] == str(blocker / "child.txt")
