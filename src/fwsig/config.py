"""Configuration management for fwsig signing and verification."""

import json
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator

from .keys import PrivateKey, PublicKey
from .manifest import MetadataFormat


class SigningConfig(BaseModel):
    """Signing configuration."""

    # Hex-encoded Ed25519 private key; a transient key is used when unset
    private_key: Optional[str] = None
    app_name: str = ""
    app_version: str = ""
    meta_format: str = "bin"
    detached: bool = False

    @field_validator("meta_format")
    @classmethod
    def _check_meta_format(cls, value: str) -> str:
        MetadataFormat.from_string(value)
        return value

    def signing_key(self) -> Optional[PrivateKey]:
        """Parse the configured private key, if any."""
        if not self.private_key:
            return None
        return PrivateKey.from_hex(self.private_key)


class VerificationConfig(BaseModel):
    """Verification configuration."""

    # Hex-encoded Ed25519 public keys allowed to sign manifests
    allowed_keys: list[str] = []
    require_persistent_key: bool = False
    strict_version: bool = False

    def trusted_keys(self) -> list[PublicKey]:
        """Parse the configured allow-list."""
        return [PublicKey.from_hex(k) for k in self.allowed_keys]


class FwsigConfig(BaseModel):
    """Complete fwsig configuration."""

    signing: SigningConfig = SigningConfig()
    verification: VerificationConfig = VerificationConfig()

    log_level: str = "INFO"


def load_config(config_path: Path) -> FwsigConfig:
    """Load configuration from file.

    Supports YAML and JSON formats.

    Args:
        config_path: Path to configuration file

    Returns:
        FwsigConfig object
    """
    config_path = Path(config_path)
    with open(config_path) as f:
        if config_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif config_path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")

    return FwsigConfig(**(data or {}))


def save_config(config: FwsigConfig, config_path: Path) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Output path
    """
    config_path = Path(config_path)
    data = config.model_dump()

    with open(config_path, "w") as f:
        if config_path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        elif config_path.suffix == ".json":
            json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")


def generate_default_config(format: str = "yaml") -> str:
    """Generate default configuration content.

    Args:
        format: Output format ("yaml" or "json")

    Returns:
        Configuration file content as string
    """
    data = FwsigConfig().model_dump()

    if format == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif format == "json":
        return json.dumps(data, indent=2)
    else:
        raise ValueError(f"Unsupported format: {format}")
