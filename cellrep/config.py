"""Cell representative configuration loaded from a JSON file."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Iterable, Optional


class ConfigError(ValueError):
    """Raised when configuration data cannot be decoded."""


_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_NUMBER = re.compile(r"(\d*)(?:\.(\d*))?")
_UNIT = re.compile(r"[^\d.]*")


def parse_duration(value: str) -> float:
    """Parse a duration such as ``"1h30m"`` or ``"1.5s"`` into seconds."""
    if not isinstance(value, str):
        raise ConfigError(f"duration must be a string, not {value!r}")
    invalid = ConfigError(f'time: invalid duration "{value}"')
    text = value
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise invalid

    total = 0
    pos = 0
    while pos < len(text):
        number = _NUMBER.match(text, pos)
        whole, fraction = number.group(1), number.group(2) or ""
        if not whole and not fraction:
            raise invalid
        pos = number.end()
        unit_match = _UNIT.match(text, pos)
        unit = unit_match.group(0)
        pos = unit_match.end()
        if not unit:
            raise ConfigError(f'time: missing unit in duration "{value}"')
        if unit not in _UNIT_NANOSECONDS:
            raise ConfigError(f'time: unknown unit "{unit}" in duration "{value}"')
        scale = _UNIT_NANOSECONDS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)

    return (-total if negative else total) / 1e9


def _decimal(value: int, precision: int) -> str:
    whole, fraction = divmod(value, 10**precision)
    digits = f"{fraction:0{precision}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(seconds: float) -> str:
    """Format seconds the way durations are written in config files."""
    nanoseconds = round(seconds * 1e9)
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    magnitude = abs(nanoseconds)
    if magnitude < 1_000:
        return f"{sign}{magnitude}ns"
    if magnitude < 1_000_000:
        return f"{sign}{_decimal(magnitude, 3)}\u00b5s"
    if magnitude < 1_000_000_000:
        return f"{sign}{_decimal(magnitude, 6)}ms"

    minute = 60 * 1_000_000_000
    text = _decimal(magnitude % minute, 9) + "s"
    minutes = magnitude // minute
    if minutes:
        hours, minutes = divmod(minutes, 60)
        text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return sign + text


@dataclass(frozen=True)
class RootFS:
    name: str
    path: str


class RootFSes(list):
    """Preloaded root filesystems, written in JSON as ``"stack:path"``."""

    @classmethod
    def from_json(cls, values: Optional[Iterable[str]]) -> "RootFSes":
        result = cls()
        if values is None:
            return result
        if not isinstance(values, list):
            raise ConfigError("preloaded RootFS must be a list of strings")
        for value in values:
            if not isinstance(value, str):
                raise ConfigError("preloaded RootFS must be a list of strings")
            parts = value.split(":", 1)
            if len(parts) != 2:
                raise ConfigError(
                    "Invalid preloaded RootFS value: not of the form 'stack-name:path'"
                )
            name, path = parts
            if not name:
                raise ConfigError("Invalid preloaded RootFS value: blank stack")
            if not path:
                raise ConfigError("Invalid preloaded RootFS value: blank path")
            result.append(RootFS(name, path))
        return result

    def names(self) -> list[str]:
        return [root_fs.name for root_fs in self]

    def stack_path_map(self) -> dict[str, str]:
        return {root_fs.name: root_fs.path for root_fs in self}

    def to_json(self) -> list[str]:
        return [f"{root_fs.name}:{root_fs.path}" for root_fs in self]


def _decode_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{key}: expected a string, got {value!r}")
    return value


def _decode_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key}: expected an integer, got {value!r}")
    return value


def _decode_duration(key: str, value: Any) -> float:
    if not isinstance(value, str):
        raise ConfigError(f"{key}: expected a duration string, got {value!r}")
    return parse_duration(value)


def _decode_strings(key: str, value: Any) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key}: expected a list of strings")
    return list(value)


def _decode_root_fses(key: str, value: Any) -> RootFSes:
    return RootFSes.from_json(value)


def _decode_object(key: str, value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{key}: expected an object")
    return dict(value)


_DECODERS: dict[str, Callable[[str, Any], Any]] = {
    "str": _decode_str,
    "int": _decode_int,
    "duration": _decode_duration,
    "strings": _decode_strings,
    "rootfses": _decode_root_fses,
    "object": _decode_object,
}

_ENCODERS: dict[str, Callable[[Any], Any]] = {
    "str": lambda v: v,
    "int": lambda v: v,
    "duration": format_duration,
    "strings": lambda v: None if v is None else list(v),
    "rootfses": lambda v: v.to_json(),
    "object": dict,
}


def _text(omitempty: bool = False) -> Any:
    return field(default="", metadata={"kind": "str", "omitempty": omitempty})


def _int(omitempty: bool = False) -> Any:
    return field(default=0, metadata={"kind": "int", "omitempty": omitempty})


def _duration() -> Any:
    return field(default=0.0, metadata={"kind": "duration", "omitempty": True})


def _strings() -> Any:
    return field(default=None, metadata={"kind": "strings", "omitempty": False})


@dataclass
class RepConfig:
    """Settings of a cell representative; durations are in seconds.

    Keys belonging to the executor, logging, debug-server and lock-service
    sections are kept as they were read in ``extra``.
    """

    advertise_domain: str = _text(omitempty=True)
    bbs_address: str = _text()
    bbs_client_session_cache_size: int = _int(omitempty=True)
    bbs_max_idle_conns_per_host: int = _int(omitempty=True)
    bbs_ca_cert_file: str = _text()
    bbs_client_cert_file: str = _text()
    bbs_client_key_file: str = _text()
    ca_cert_file: str = _text()
    cell_id: str = _text()
    cell_index: int = _int()
    communication_timeout: float = _duration()
    evacuation_polling_interval: float = _duration()
    evacuation_timeout: float = _duration()
    layering_mode: str = _text(omitempty=True)
    listen_addr: str = _text(omitempty=True)
    listen_addr_securable: str = _text(omitempty=True)
    lock_retry_interval: float = _duration()
    lock_ttl: float = _duration()
    optional_placement_tags: Optional[list[str]] = _strings()
    placement_tags: Optional[list[str]] = _strings()
    polling_interval: float = _duration()
    preloaded_root_fs: RootFSes = field(
        default_factory=RootFSes, metadata={"kind": "rootfses", "omitempty": False}
    )
    server_cert_file: str = _text()
    server_key_file: str = _text()
    cert_file: str = _text()
    key_file: str = _text()
    session_name: str = _text(omitempty=True)
    supported_providers: Optional[list[str]] = _strings()
    zone: str = _text()
    report_interval: float = _duration()
    loggregator: dict[str, Any] = field(
        default_factory=dict, metadata={"kind": "object", "omitempty": False}
    )
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "RepConfig":
        if not isinstance(data, dict):
            raise ConfigError("configuration must be a JSON object")
        remaining = dict(data)
        values: dict[str, Any] = {}
        for spec in fields(cls):
            if "kind" not in spec.metadata or spec.name not in remaining:
                continue
            raw = remaining.pop(spec.name)
            if raw is None:
                continue
            values[spec.name] = _DECODERS[spec.metadata["kind"]](spec.name, raw)
        return cls(**values, extra=remaining)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for spec in fields(self):
            if "kind" not in spec.metadata:
                continue
            value = getattr(self, spec.name)
            if spec.metadata["omitempty"] and not value:
                continue
            out[spec.name] = _ENCODERS[spec.metadata["kind"]](value)
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    @classmethod
    def load(cls, path: str) -> "RepConfig":
        """Read the first JSON document in ``path`` as a configuration."""
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
        try:
            data, _ = json.JSONDecoder().raw_decode(text.lstrip())
        except json.JSONDecodeError as exc:
            raise ConfigError(str(exc)) from exc
        return cls.from_dict(data)