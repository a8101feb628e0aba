"""
Configuration management for the fleet-operations ledger.

Handles loading and accessing:
- Business rules (config.yaml)
- Environment variables (FMCSA credentials, log level)
"""

from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerRules(BaseModel):
    """Typed view of the business rules the engines enforce."""

    dispatch_fee_rate: Decimal = Decimal("0.10")
    invoice_number_prefix: str = "INV"
    invoice_due_weekday: int = Field(2, ge=0, le=6)  # Monday = 0
    max_single_driver_hours: float = Field(14.0, gt=0)
    verification_timeout_seconds: float = Field(10.0, gt=0)
    verification_base_url: str = "https://example-fmcsa-api.com/v1/carrier"
    seed_demo_data: bool = False


class EnvironmentSettings(BaseSettings):
    """Environment variables configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # FMCSA authority lookup
    fmcsa_api_key: Optional[str] = Field(None, alias="FMCSA_API_KEY")
    fmcsa_api_base_url: Optional[str] = Field(None, alias="FMCSA_API_BASE_URL")

    # Logging
    log_level: str = Field("INFO", alias="FLEETLEDGER_LOG_LEVEL")


class ConfigManager:
    """
    Central configuration manager for the ledger.

    Loads and provides access to:
    - Business rules from config/config.yaml
    - Environment variables from .env
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_dir: Optional path to config directory. Defaults to project root/config.
        """
        if config_dir is None:
            project_root = Path(__file__).parent.parent.parent
            config_dir = project_root / "config"

        self.config_dir = config_dir
        self._business_config: Optional[dict[str, Any]] = None
        self._env_settings: Optional[EnvironmentSettings] = None

    @property
    def business_config(self) -> dict[str, Any]:
        """Load and return business configuration from config.yaml.

        A missing file yields an empty mapping so the documented defaults apply.
        """
        if self._business_config is None:
            config_path = self.config_dir / "config.yaml"
            if config_path.exists():
                with open(config_path, "r") as f:
                    self._business_config = yaml.safe_load(f) or {}
            else:
                self._business_config = {}
        return self._business_config

    @property
    def env(self) -> EnvironmentSettings:
        """Load and return environment settings."""
        if self._env_settings is None:
            self._env_settings = EnvironmentSettings()
        return self._env_settings

    def get_billing_config(self) -> dict[str, Any]:
        """Get billing configuration from business config."""
        return self.business_config.get("billing", {})

    def get_scheduling_config(self) -> dict[str, Any]:
        """Get scheduling configuration from business config."""
        return self.business_config.get("scheduling", {})

    def get_verification_config(self) -> dict[str, Any]:
        """Get FMCSA verification configuration from business config."""
        return self.business_config.get("verification", {})

    def get_rules(self) -> LedgerRules:
        """
        Build the typed rule set from config.yaml and the environment.

        Returns:
            LedgerRules with defaults filled in for any absent key
        """
        billing = self.get_billing_config()
        scheduling = self.get_scheduling_config()
        verification = self.get_verification_config()
        store = self.business_config.get("store", {})

        values: dict[str, Any] = {}
        if "dispatch_fee_rate" in billing:
            values["dispatch_fee_rate"] = Decimal(str(billing["dispatch_fee_rate"]))
        if "invoice_number_prefix" in billing:
            values["invoice_number_prefix"] = billing["invoice_number_prefix"]
        if "invoice_due_weekday" in billing:
            values["invoice_due_weekday"] = billing["invoice_due_weekday"]
        if "max_single_driver_hours" in scheduling:
            values["max_single_driver_hours"] = scheduling["max_single_driver_hours"]
        if "timeout_seconds" in verification:
            values["verification_timeout_seconds"] = verification["timeout_seconds"]
        if "base_url" in verification:
            values["verification_base_url"] = verification["base_url"]
        if "seed_demo_data" in store:
            values["seed_demo_data"] = store["seed_demo_data"]

        # Environment overrides the checked-in endpoint
        if self.env.fmcsa_api_base_url:
            values["verification_base_url"] = self.env.fmcsa_api_base_url

        return LedgerRules(**values)

    def get_api_key(self, provider: str) -> Optional[str]:
        """
        Get API key for a specific provider.

        Args:
            provider: Provider name ("fmcsa")

        Returns:
            API key or None if not set
        """
        provider_map = {
            "fmcsa": self.env.fmcsa_api_key,
        }
        return provider_map.get(provider.lower())


# Global config instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """
    Get the global configuration manager instance.

    Returns:
        ConfigManager singleton instance
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
