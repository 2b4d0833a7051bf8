"""Tests for did_registry.config — RegistryConfig."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from did_registry.config import ZERO_ADDRESS, RegistryConfig


class TestDefaults:
    def test_defaults(self) -> None:
        config = RegistryConfig()
        assert config.did_method == "ethr"
        assert config.network == "codemtn"
        assert config.ledger_timeout_seconds == 30.0
        assert config.profile_service_url == "https://codemtn.com/profile/"
        assert config.key_fragment == "keys-1"
        assert config.operator_address == ZERO_ADDRESS
        assert config.signing_key_hex is None
        assert config.audit_log_path is None

    def test_segments_are_lowercased(self) -> None:
        assert RegistryConfig(network="MainNet").network == "mainnet"

    def test_invalid_segment_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegistryConfig(did_method="e:thr")

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            RegistryConfig(ledger_timeout_seconds=0)

    def test_timeout_may_be_disabled(self) -> None:
        assert RegistryConfig(ledger_timeout_seconds=None).ledger_timeout_seconds is None

    def test_is_frozen(self) -> None:
        with pytest.raises(ValidationError):
            RegistryConfig().network = "other"  # type: ignore[misc]


class TestFromEnv:
    def test_reads_environment_mapping(self) -> None:
        config = RegistryConfig.from_env(
            {
                "DID_METHOD": "web",
                "DID_NETWORK": "testnet",
                "LEDGER_TIMEOUT": "2.5",
                "PROFILE_SERVICE_URL": "https://p.example/",
                "OPERATOR_ADDRESS": "0xAAA",
                "SIGNING_KEY_HEX": "00" * 32,
                "AUDIT_LOG_PATH": "/tmp/audit.jsonl",
            }
        )
        assert config.did_method == "web"
        assert config.network == "testnet"
        assert config.ledger_timeout_seconds == 2.5
        assert config.profile_service_url == "https://p.example/"
        assert config.operator_address == "0xAAA"
        assert config.signing_key_hex == "00" * 32
        assert config.audit_log_path == Path("/tmp/audit.jsonl")

    def test_empty_values_fall_back_to_defaults(self) -> None:
        assert RegistryConfig.from_env({"DID_NETWORK": ""}).network == "codemtn"

    def test_overrides_win_and_none_is_ignored(self) -> None:
        config = RegistryConfig.from_env({"DID_NETWORK": "env"}, network="flag", did_method=None)
        assert config.network == "flag"
        assert config.did_method == "ethr"

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DID_NETWORK", "fromenv")
        assert RegistryConfig.from_env().network == "fromenv"

    def test_bad_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegistryConfig.from_env({"LEDGER_TIMEOUT": "soon"})
