"""Tests for the validated value objects."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tracker_deployer.domain.errors import ErrorKind
from tracker_deployer.domain.values import (
    EnvironmentName,
    EnvironmentNameError,
    HetznerConfig,
    InstanceName,
    InvalidValueError,
    LxdConfig,
    ProfileName,
    Provider,
    SshCredentials,
    SshKeyNotFoundError,
    Username,
    provider_of,
)


class TestEnvironmentName:
    """Environment names are DNS-safe labels."""

    @pytest.mark.parametrize("name", ["dev", "staging", "e2e-full", "release-v1-2", "a" * 63])
    def test_accepts_valid_names(self, name: str) -> None:
        """Lowercase letters, digits and single inner dashes are accepted."""
        assert EnvironmentName(name) == name

    @pytest.mark.parametrize(
        ("name", "reason"),
        [
            ("", "empty"),
            ("Dev", "uppercase"),
            ("1dev", "starts with a number"),
            ("-dev", "starts with dash"),
            ("dev-", "ends with dash"),
            ("dev--one", "consecutive dashes"),
            ("dev_one", "invalid characters"),
            ("a" * 64, "longer than 63"),
        ],
    )
    def test_rejects_invalid_names(self, name: str, reason: str) -> None:
        """Each rule has its own message and the error lists valid examples."""
        with pytest.raises(EnvironmentNameError) as exc_info:
            EnvironmentName(name)

        assert reason in str(exc_info.value)
        assert "e2e-full" in str(exc_info.value)
        assert exc_info.value.attempted == name

    def test_is_a_configuration_error(self) -> None:
        with pytest.raises(InvalidValueError) as exc_info:
            EnvironmentName("BAD")

        assert exc_info.value.error_kind() == ErrorKind.CONFIGURATION
        assert isinstance(exc_info.value, ValueError)

    def test_behaves_as_plain_string(self) -> None:
        name = EnvironmentName("dev")
        assert isinstance(name, str)
        assert f"data/{name}" == "data/dev"


class TestDerivedNames:
    def test_instance_name_default(self) -> None:
        assert InstanceName.for_environment(EnvironmentName("e2e")) == "torrust-tracker-vm-e2e"

    def test_profile_name_default(self) -> None:
        assert ProfileName.for_environment(EnvironmentName("e2e")) == "torrust-profile-e2e"

    def test_instance_name_validation(self) -> None:
        with pytest.raises(InvalidValueError, match="instance name"):
            InstanceName("Bad_Name")


class TestUsername:
    @pytest.mark.parametrize("value", ["torrust", "_svc", "deploy-user", "ubuntu2"])
    def test_valid(self, value: str) -> None:
        assert Username(value) == value

    @pytest.mark.parametrize("value", ["", "Root", "9user", "user name", "u" * 33])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidValueError):
            Username(value)


class TestSshCredentials:
    """SSH credentials defaults and key checks."""

    def test_defaults(self, tmp_path: Path) -> None:
        credentials = SshCredentials(
            private_key_path=tmp_path / "id", public_key_path=tmp_path / "id.pub"
        )
        assert credentials.username == "torrust"
        assert credentials.port == 22

    @pytest.mark.parametrize("port", [0, 65536])
    def test_port_range(self, tmp_path: Path, port: int) -> None:
        with pytest.raises(ValidationError):
            SshCredentials(private_key_path=tmp_path / "id", public_key_path=tmp_path / "id.pub", port=port)

    def test_missing_key_is_reported_with_path(self, tmp_path: Path) -> None:
        """Keys are only checked when explicitly requested."""
        credentials = SshCredentials(
            private_key_path=tmp_path / "missing", public_key_path=tmp_path / "missing.pub"
        )

        with pytest.raises(SshKeyNotFoundError) as exc_info:
            credentials.ensure_keys_exist()

        assert exc_info.value.path == tmp_path / "missing"
        assert exc_info.value.key_type == "private"

    def test_read_public_key(self, ssh_keys: tuple[Path, Path]) -> None:
        private_key, public_key = ssh_keys
        credentials = SshCredentials(private_key_path=private_key, public_key_path=public_key)

        assert credentials.read_public_key().startswith("ssh-rsa ")


class TestProviders:
    def test_provider_of(self) -> None:
        assert provider_of(LxdConfig(profile_name=ProfileName("p"))) is Provider.LXD
        assert provider_of(HetznerConfig(api_token="secret")) is Provider.HETZNER

    def test_display_names(self) -> None:
        assert Provider.LXD.display_name == "LXD"
        assert Provider.HETZNER.display_name == "Hetzner Cloud"

    def test_hetzner_defaults(self) -> None:
        config = HetznerConfig(api_token="secret")
        assert (config.server_type, config.location, config.image) == ("cx22", "nbg1", "ubuntu-24.04")

    def test_hetzner_requires_token(self) -> None:
        with pytest.raises(ValidationError):
            HetznerConfig(api_token="")
