"""RegistryConfig — runtime settings for the registry services.

Settings come from keyword arguments or, via :meth:`RegistryConfig.from_env`,
from environment variables:

=======================  =================================  ==========================
Variable                 Field                              Default
=======================  =================================  ==========================
``DID_METHOD``           ``did_method``                     ``ethr``
``DID_NETWORK``          ``network``                        ``codemtn``
``LEDGER_TIMEOUT``       ``ledger_timeout_seconds``         ``30``
``PROFILE_SERVICE_URL``  ``profile_service_url``            ``https://codemtn.com/profile/``
``OPERATOR_ADDRESS``     ``operator_address``               zero address
``SIGNING_KEY_HEX``      ``signing_key_hex``                generated at startup
``AUDIT_LOG_PATH``       ``audit_log_path``                 in-memory buffer
=======================  =================================  ==========================
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

ZERO_ADDRESS: str = "0x0000000000000000000000000000000000000000"

_ENV_FIELDS: dict[str, str] = {
    "DID_METHOD": "did_method",
    "DID_NETWORK": "network",
    "LEDGER_TIMEOUT": "ledger_timeout_seconds",
    "PROFILE_SERVICE_URL": "profile_service_url",
    "OPERATOR_ADDRESS": "operator_address",
    "SIGNING_KEY_HEX": "signing_key_hex",
    "AUDIT_LOG_PATH": "audit_log_path",
}


class RegistryConfig(BaseModel):
    """Settings shared by the registry, document store, and credential engine.

    Parameters
    ----------
    did_method:
        DID method name used for generated DIDs and credential ids.
    network:
        Network segment used for generated DIDs and credential ids.
    ledger_timeout_seconds:
        How long to wait for a ledger commitment before raising
        :class:`~did_registry.errors.LedgerTimeoutError`. ``None`` waits
        forever.
    profile_service_url:
        Base URL for the profile service in default DID documents.
    key_fragment:
        Fragment of the default verification method (``#keys-1``).
    operator_address:
        Caller address the HTTP surface uses when a request names none.
    signing_key_hex:
        Hex-encoded Ed25519 seed for the operator signer.
    audit_log_path:
        JSONL audit file. ``None`` keeps events in memory.
    """

    model_config = {"frozen": True}

    did_method: str = "ethr"
    network: str = "codemtn"
    ledger_timeout_seconds: float | None = Field(default=30.0, gt=0)
    profile_service_url: str = "https://codemtn.com/profile/"
    key_fragment: str = "keys-1"
    operator_address: str = ZERO_ADDRESS
    signing_key_hex: str | None = None
    audit_log_path: Path | None = None

    @field_validator("did_method", "network")
    @classmethod
    def validate_segment(cls, value: str) -> str:
        if not value or not value.replace("-", "").replace("_", "").isalnum():
            raise ValueError(f"{value!r} is not a valid DID segment.")
        return value.lower()

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> "RegistryConfig":
        """Build a config from environment variables.

        Parameters
        ----------
        environ:
            Mapping to read instead of :data:`os.environ`.
        **overrides:
            Field values that take precedence over the environment.
            ``None`` values are ignored.
        """
        source = os.environ if environ is None else environ
        values: dict[str, object] = {}
        for variable, field_name in _ENV_FIELDS.items():
            raw = source.get(variable)
            if raw:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)


__all__ = ["RegistryConfig", "ZERO_ADDRESS"]
