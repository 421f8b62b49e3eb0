"""
Configuration for the mean-variance normalization layer.
Binds the generic layer parameter record to an immutable operator config.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from mvnorm.errors import ConfigError

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def parse_bool(value: Any, key: str) -> bool:
    """Coerce a record value to bool, rejecting anything ambiguous."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigError(f"Parameter '{key}' must be a boolean, got {value!r}")


def parse_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"Parameter '{key}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Parameter '{key}' must be a number, got {value!r}") from exc


@dataclass
class LayerParams:
    """
    Generic named-parameter record a layer is constructed from.

    Attributes:
        name: Layer instance name (framework metadata)
        type: Layer type name (framework metadata)
        params: Layer-specific values keyed by parameter name
    """
    name: str = ""
    type: str = "MVN"
    params: Dict[str, Any] = field(default_factory=dict)

    def has(self, key: str) -> bool:
        return key in self.params

    def get(self, key: str, default: Any) -> Any:
        """
        Fetch a parameter, coerced to the type of its default.

        Args:
            key: Parameter name
            default: Value returned when the key is absent; its type drives coercion

        Returns:
            The coerced value
        """
        if key not in self.params:
            return default
        value = self.params[key]
        if isinstance(default, bool):
            return parse_bool(value, key)
        if isinstance(default, float):
            return parse_float(value, key)
        return value

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "LayerParams":
        """Build a record from a flat mapping; 'name' and 'type' are lifted out as metadata."""
        values = dict(raw)
        name = str(values.pop("name", ""))
        layer_type = str(values.pop("type", "MVN"))
        return cls(name=name, type=layer_type, params=values)


@dataclass(frozen=True)
class MVNConfig:
    """
    Immutable operator configuration.

    Attributes:
        normalize_variance: Divide by the row standard deviation after centering
        across_channels: Group instance and channel dims into one row (1-dim prefix)
        eps: Added to the standard deviation before division
    """
    normalize_variance: bool = True
    across_channels: bool = False
    eps: float = 1e-9

    def __post_init__(self):
        if not isinstance(self.normalize_variance, bool):
            raise ConfigError(f"normalize_variance must be a bool, got {self.normalize_variance!r}")
        if not isinstance(self.across_channels, bool):
            raise ConfigError(f"across_channels must be a bool, got {self.across_channels!r}")
        object.__setattr__(self, "eps", parse_float(self.eps, "eps"))
        if not math.isfinite(self.eps):
            raise ConfigError(f"eps must be finite, got {self.eps}")
        if self.eps < 0:
            raise ConfigError(f"eps must be non-negative, got {self.eps}")
        if self.eps == 0 and self.normalize_variance:
            logger.warning("eps is 0: constant rows will divide by zero")

    @property
    def split_dim(self) -> int:
        """Number of leading dimensions that index rows."""
        return 1 if self.across_channels else 2

    @classmethod
    def from_params(cls, params: LayerParams) -> "MVNConfig":
        return cls(
            normalize_variance=params.get("normalize_variance", True),
            across_channels=params.get("across_channels", False),
            eps=params.get("eps", 1e-9),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "normalize_variance": self.normalize_variance,
            "across_channels": self.across_channels,
            "eps": self.eps,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "MVNConfig":
        """Create config from dictionary, applying the same coercion as a layer record."""
        return cls.from_params(LayerParams(params=dict(config_dict)))


def _expect_section(raw: Dict[str, Any], section: str) -> Dict[str, Any]:
    if section not in raw:
        raise ConfigError(f"Missing '{section}' section in layer record")
    block = raw[section]
    if not isinstance(block, dict):
        raise ConfigError(f"Expected '{section}' section to be an object, got {type(block)}")
    return block


def load_layer_params(path: Path | str) -> LayerParams:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Layer record not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise ConfigError("Top-level layer record must be a JSON object")

    params_block = _expect_section(raw, "params")
    return LayerParams(
        name=str(raw.get("name", "")),
        type=str(raw.get("type", "MVN")),
        params=dict(params_block),
    )
