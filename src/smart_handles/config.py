"""
Configuration management for the smart handles tooling.

Supports configuration via environment variables and .env files. The core
and endpoints never read it; only the CLI and the provider adapters do.
"""

from enum import Enum
from typing import Optional

from pycardano import Network
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NetworkType(str, Enum):
    """Cardano network types."""
    MAINNET = "mainnet"
    PREPROD = "preprod"
    PREVIEW = "preview"


class ScriptTarget(str, Enum):
    """Which smart handles script a command operates on."""
    SINGLE = "single"
    BATCH = "batch"


class SmartHandlesConfig(BaseSettings):
    """
    Configuration settings for the smart handles tooling.

    All settings can be configured via environment variables with the
    SMART_HANDLES_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMART_HANDLES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    network: NetworkType = Field(
        default=NetworkType.PREPROD,
        description="Cardano network to connect to"
    )

    # Blockfrost settings
    blockfrost_project_id: Optional[str] = Field(
        default=None,
        description="Blockfrost project ID for API access"
    )
    blockfrost_base_url: Optional[str] = Field(
        default=None,
        description="Custom Blockfrost base URL (optional)"
    )

    # Wallet settings
    wallet_signing_key_path: Optional[str] = Field(
        default=None,
        description="Path to the wallet's payment signing key file"
    )
    wallet_signing_key_cbor: Optional[str] = Field(
        default=None,
        description="CBOR-encoded signing key (alternative to file path)"
    )

    # Script settings
    script_cbor: Optional[str] = Field(
        default=None,
        description="Compiled smart handles validator (hex)"
    )
    script_target: ScriptTarget = Field(
        default=ScriptTarget.SINGLE,
        description="Whether script_cbor is the single or the batch validator"
    )
    route_address: Optional[str] = Field(
        default=None,
        description="Bech32 address routed requests are paid to"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @property
    def blockfrost_url(self) -> str:
        """Get the appropriate Blockfrost URL based on network."""
        if self.blockfrost_base_url:
            return self.blockfrost_base_url

        network_urls = {
            NetworkType.MAINNET: "https://cardano-mainnet.blockfrost.io/api/v0",
            NetworkType.PREPROD: "https://cardano-preprod.blockfrost.io/api/v0",
            NetworkType.PREVIEW: "https://cardano-preview.blockfrost.io/api/v0",
        }
        return network_urls[self.network]

    @property
    def pycardano_network(self) -> Network:
        if self.network == NetworkType.MAINNET:
            return Network.MAINNET
        return Network.TESTNET


# Global config instance
_config: Optional[SmartHandlesConfig] = None


def get_config() -> SmartHandlesConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = SmartHandlesConfig()
    return _config


def set_config(config: SmartHandlesConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
