"""Database throughput settings resolved from configuration."""

from dataclasses import dataclass
from enum import Enum

from azure.cosmos import ThroughputProperties

from cosmos_setup.config.cosmos_config import (
    DATABASE_THROUGHPUT_KEY,
    DATABASE_THROUGHPUT_MODE_KEY,
    ConfigSource,
    parse_int,
)
from cosmos_setup.cosmosdb.exceptions import ConfigurationError


class ThroughputMode(str, Enum):
    AUTOSCALE = "autoscale"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: str) -> "ThroughputMode":
        """``autoscale`` in any letter case selects autoscale; any other non-empty value is manual."""
        text = (value or "").strip()
        if not text:
            raise ConfigurationError(
                "Throughput mode must be a non-empty string",
                key=DATABASE_THROUGHPUT_MODE_KEY,
            )
        if text.lower() == cls.AUTOSCALE.value:
            return cls.AUTOSCALE
        return cls.MANUAL


@dataclass(frozen=True)
class ThroughputSpec:
    """
    Target throughput for a database.

    :param mode: Autoscale (units is the max RU/s) or manual (fixed RU/s).
    :param units: Positive request units per second.
    """

    mode: ThroughputMode
    units: int

    def __post_init__(self) -> None:
        if isinstance(self.units, bool) or not isinstance(self.units, int):
            raise ConfigurationError(
                f"Throughput units must be an integer, got {self.units!r}",
                key=DATABASE_THROUGHPUT_KEY,
            )
        if self.units < 1:
            raise ConfigurationError(
                f"Throughput units must be positive, got {self.units}",
                key=DATABASE_THROUGHPUT_KEY,
            )

    @property
    def is_autoscale(self) -> bool:
        return self.mode is ThroughputMode.AUTOSCALE

    def to_properties(self) -> ThroughputProperties:
        if self.is_autoscale:
            return ThroughputProperties(auto_scale_max_throughput=self.units)
        return ThroughputProperties(offer_throughput=self.units)

    @classmethod
    def from_config(cls, config: ConfigSource) -> "ThroughputSpec":
        units = config.get_strict(DATABASE_THROUGHPUT_KEY, parse_int)
        mode = ThroughputMode.parse(config.get_strict(DATABASE_THROUGHPUT_MODE_KEY))
        return cls(mode=mode, units=units)

    def __str__(self) -> str:
        return f"{self.mode.value}:{self.units} RU/s"
