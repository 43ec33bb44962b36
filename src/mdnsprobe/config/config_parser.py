"""Configuration parsing helpers for mdnsprobe.

Brief:
  Reads the optional YAML config file, applies CLI overrides and validates
  the result into a typed ProbeConfig.

Inputs:
  - YAML config path (optional) and a mapping of CLI overrides

Outputs:
  - ProbeConfig instance
"""

from __future__ import annotations

import ipaddress
import math
import re
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..transports.multicast import MDNS_ADDR4, MDNS_PORT

DEFAULT_TIMEOUT_SECONDS = 2.0

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: Any) -> float:
    """Brief: Parse a timeout into seconds.

    Inputs:
      - value: int/float seconds, a numeric string, or a duration string made
        of number+unit pairs such as '2s', '500ms', '1m30s'.

    Outputs:
      - float: non-negative number of seconds.

    Example:
      >>> parse_duration("1m30s")
      90.0
      >>> parse_duration(0)
      0.0
    """

    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if not text or pos != len(text):
                raise ValueError(f"invalid duration {value!r}") from None
    if not math.isfinite(seconds):
        raise ValueError(f"duration must be finite, got {value!r}")
    if seconds < 0:
        raise ValueError(f"duration must not be negative, got {value!r}")
    return seconds


class ProbeConfig(BaseModel):
    """Brief: Typed configuration for one discovery run.

    Inputs:
      - timeout: seconds to wait for answers; 0 means wait until stopped.
      - show_addresses: print A/AAAA addresses as an extra column.
      - bind_host: local IPv4 address to bind the query socket to.
      - group: IPv4 multicast group that queries are sent to.
      - port: destination UDP port.
      - logging: mapping passed to init_logging().

    Outputs:
      - ProbeConfig instance.
    """

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, ge=0)
    show_addresses: bool = False
    bind_host: str = "0.0.0.0"
    group: str = MDNS_ADDR4[0]
    port: int = Field(default=MDNS_PORT, ge=1, le=65535)
    logging: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, v):  # type: ignore[no-untyped-def]
        return parse_duration(DEFAULT_TIMEOUT_SECONDS if v is None else v)

    @field_validator("bind_host", "group")
    @classmethod
    def _check_ipv4(cls, v: str) -> str:
        ipaddress.IPv4Address(v)
        return v

    @property
    def destination(self):
        return (self.group, self.port)


def _format_errors(exc: ValidationError, config_path: Optional[str]) -> str:
    where = f" in {config_path}" if config_path else ""
    lines = [f"Invalid configuration{where}:"]
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        lines.append(f"  - {loc}: {err.get('msg')}")
    return "\n".join(lines)


def load_config(
    path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None
) -> ProbeConfig:
    """Brief: Build a ProbeConfig from an optional YAML file plus overrides.

    Inputs:
      - path: YAML file path, or None to start from defaults.
      - overrides: CLI values; keys whose value is None are ignored.

    Outputs:
      - ProbeConfig

    Raises:
      - ValueError: unreadable/invalid YAML or values failing validation.
    """

    raw: Dict[str, Any] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except OSError as e:
            raise ValueError(f"Could not read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ValueError(f"Could not parse config {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config {path} must be a mapping at the top level")
        raw.update(loaded)

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    try:
        return ProbeConfig(**raw)
    except ValidationError as e:
        raise ValueError(_format_errors(e, path)) from e
