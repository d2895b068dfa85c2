"""
Cosmos DB Configuration
=======================

Configuration keys and the key/value source used by database setup.
Keys are dotted paths (``azure.cosmos.database_name``) that map onto
environment variables (``AZURE_COSMOS_DATABASE_NAME``).
"""

import os
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

from dotenv import load_dotenv

from cosmos_setup.cosmosdb.exceptions import ConfigurationError

T = TypeVar("T")

# ==============================================================================
# CONFIGURATION KEYS
# ==============================================================================

DATABASE_NAME_KEY = "azure.cosmos.database_name"
DATABASE_THROUGHPUT_KEY = "azure.cosmos.database_throughput"
DATABASE_THROUGHPUT_MODE_KEY = "azure.cosmos.database_throughput_mode"
ENDPOINT_KEY = "azure.cosmos.endpoint"
ACCOUNT_KEY_KEY = "azure.cosmos.account_key"
REPLACE_THROUGHPUT_KEY = "azure.cosmos.replace_throughput_on_ensure"

# ==============================================================================
# THROUGHPUT GUIDANCE
# ==============================================================================

# Lowest RU/s Cosmos accepts for manual database throughput
MIN_MANUAL_THROUGHPUT = 400
# Autoscale max throughput is provisioned in steps of 1000 RU/s
AUTOSCALE_THROUGHPUT_STEP = 1000

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def env_var_name(key: str) -> str:
    """Map a dotted configuration key to its environment variable name."""
    return key.replace(".", "_").replace(":", "_").upper()


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    return int(str(value).strip())


class ConfigSource:
    """
    Dotted-path configuration lookups over explicit values and the environment.

    Explicit ``values`` win over environment variables, which makes the
    source easy to pin in tests without touching ``os.environ``.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        *,
        load_env_file: bool = True,
    ):
        if load_env_file:
            load_dotenv(override=False)
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values:
            value = self._values[key]
        else:
            value = os.getenv(env_var_name(key))
        if value is None:
            return default
        if isinstance(value, str) and not value.strip():
            return default
        return value

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get(key)
        return default if value is None else str(value).strip()

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self.get(key)
        if value is None:
            return default
        try:
            return parse_int(value)
        except ValueError as e:
            raise ConfigurationError(
                f"Configuration value '{key}' must be an integer, got {value!r}",
                key=key,
            ) from e

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        try:
            return parse_bool(value)
        except ValueError as e:
            raise ConfigurationError(
                f"Configuration value '{key}' must be a boolean, got {value!r}",
                key=key,
            ) from e

    def get_strict(self, key: str, cast: Callable[[Any], T] = str) -> T:
        """Return the value for ``key`` or raise ConfigurationError if absent or malformed."""
        value = self.get(key)
        if value is None:
            raise ConfigurationError(
                f"Missing required configuration value '{key}' "
                f"(environment variable {env_var_name(key)})",
                key=key,
            )
        try:
            result = cast(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Configuration value '{key}' is malformed: {value!r}", key=key
            ) from e
        if isinstance(result, str):
            result = result.strip()
        return result


# ==============================================================================
# VALIDATION FUNCTIONS
# ==============================================================================


def validate_cosmos_settings(config: Optional[ConfigSource] = None) -> Dict[str, Any]:
    """
    Validate Cosmos setup settings without touching the network.

    Returns:
        Dict containing validation status, issues and warnings
    """
    config = config or ConfigSource()
    issues = []
    warnings = []

    if not config.get_str(DATABASE_NAME_KEY):
        issues.append(f"{env_var_name(DATABASE_NAME_KEY)} is not set")

    if not config.get_str(ENDPOINT_KEY):
        issues.append(f"{env_var_name(ENDPOINT_KEY)} is not set")

    mode = (config.get_str(DATABASE_THROUGHPUT_MODE_KEY) or "").lower()
    if not mode:
        issues.append(f"{env_var_name(DATABASE_THROUGHPUT_MODE_KEY)} is not set")

    units = None
    try:
        units = config.get_int(DATABASE_THROUGHPUT_KEY)
        if units is None:
            issues.append(f"{env_var_name(DATABASE_THROUGHPUT_KEY)} is not set")
    except ConfigurationError as e:
        issues.append(str(e))

    if units is not None and units < 1:
        issues.append(f"Database throughput must be positive, got {units}")
    elif units is not None and mode == "autoscale":
        if units < AUTOSCALE_THROUGHPUT_STEP:
            warnings.append(
                f"Autoscale throughput ({units}) is below the {AUTOSCALE_THROUGHPUT_STEP} RU/s minimum"
            )
        elif units % AUTOSCALE_THROUGHPUT_STEP:
            warnings.append(
                f"Autoscale throughput ({units}) is not a multiple of {AUTOSCALE_THROUGHPUT_STEP}"
            )
    elif units is not None and mode and units < MIN_MANUAL_THROUGHPUT:
        warnings.append(
            f"Manual throughput ({units}) is below the {MIN_MANUAL_THROUGHPUT} RU/s minimum"
        )

    has_endpoint = bool(config.get_str(ENDPOINT_KEY))
    has_key = bool(config.get_str(ACCOUNT_KEY_KEY))
    if has_key and not has_endpoint:
        warnings.append("Account key is set without an endpoint; it will be ignored")
    elif has_endpoint and not has_key:
        warnings.append("No account key set; Azure AD credentials will be used")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "warnings": warnings,
    }
