"""Build criteria: the configuration store written by ``set`` commands."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from .color import COLOR_TABLE, ColorPool
from .errors import ConfigError, ScriptError, _require

logger = logging.getLogger(__name__)

ValueKind = Literal["number", "int", "color", "array", "hash", "string"]

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_HEX_RE = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")

# script key -> attribute
_ALIASES = {
    "": "maxdepth",
    "maxdepth": "maxdepth",
    "maxobjects": "maxobjects",
    "mo": "maxobjects",
    "minsize": "minsize",
    "min": "minsize",
    "maxsize": "maxsize",
    "max": "maxsize",
    "seed": "seed",
    "s": "seed",
    "background": "background",
    "bg": "background",
    "floor": "floor",
    "sky": "sky",
    "colorpool": "colorpool",
    "cp": "colorpool",
}


# -------------------------
# Value parsing
# -------------------------


def _parse_number(text: str) -> float | None:
    text = text.strip()
    if not _NUMBER_RE.fullmatch(text):
        return None
    return float(text)


def _parse_color(text: str) -> str | None:
    """Name, ``#hex`` or a numeric percentage (gray level) -> ``#hex``."""
    text = text.strip()
    named = COLOR_TABLE.get(text.lower())
    if named is not None:
        return named
    if _HEX_RE.fullmatch(text):
        return text
    n = _parse_number(text)
    if n is None:
        return None
    level = int(min(max(n * 2.56, 0), 255))
    return "#" + f"{level:02x}" * 3


def _parse_array(text: str) -> list[str]:
    return [part.strip() for part in text.strip().strip("[]").split(",")]


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool) and x >= 0,
        f"{path} must be a non-negative integer",
    )
    return int(x)


def _as_size(x: Any, path: str) -> float:
    _require(
        isinstance(x, (int, float)) and not isinstance(x, bool) and x >= 0,
        f"{path} must be a non-negative number",
    )
    return float(x)


# -------------------------
# Criteria
# -------------------------


@dataclass
class Criteria:
    """Limits and settings that govern a build.

    Unknown keys set by a script are kept verbatim in ``extras`` for the
    embedding application; ``get_value`` reads them back with a type.
    Scripts cannot raise ``maxdepth`` or ``maxobjects`` above
    ``depth_ceiling`` and ``object_ceiling``; callers can.
    """

    maxdepth: int = 10000
    maxobjects: int = 100000
    minsize: float = 0.0
    maxsize: float = 10000.0
    seed: int | None = None
    background: str | None = None
    floor: str | None = None
    sky: str | None = None
    pool: ColorPool = field(default_factory=ColorPool, repr=False, compare=False)
    extras: dict[str, str] = field(default_factory=dict)
    depth_ceiling: int = 100000
    object_ceiling: int = 5000000

    @property
    def colorpool(self) -> str:
        return self.pool.scheme

    @colorpool.setter
    def colorpool(self, scheme: str) -> None:
        self.pool.scheme = scheme

    @property
    def min3(self) -> float:
        return self.minsize ** 3

    @property
    def max3(self) -> float:
        return self.maxsize ** 3

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any] | None) -> Criteria:
        """Build a store from keyword overrides (the ``criteria=`` compile argument)."""
        crit = cls()
        if not overrides:
            return crit
        for key, value in overrides.items():
            path = f"criteria.{key}"
            if key in ("maxdepth", "maxobjects", "depth_ceiling", "object_ceiling"):
                setattr(crit, key, _as_int(value, path))
            elif key in ("minsize", "maxsize"):
                setattr(crit, key, _as_size(value, path))
            elif key == "seed":
                crit.seed = None if value is None else _as_int(value, path)
            elif key in ("background", "floor", "sky"):
                if value is None:
                    setattr(crit, key, None)
                else:
                    color = _parse_color(str(value))
                    _require(color is not None, f"{path} must be a colour, got {value!r}")
                    setattr(crit, key, color)
            elif key == "colorpool":
                _require(isinstance(value, str), f"{path} must be a string")
                try:
                    crit.colorpool = value
                except ValueError as e:
                    raise ConfigError(f"{path}: {e}") from e
            else:
                crit.extras[key] = str(value)
        return crit

    def set(self, key: str, value: str) -> None:
        """Apply one ``set <key> <value>`` command."""
        if key == "cp:g":
            key, value = "colorpool", f"grayscale:{value}"
        elif key == "cp:h":
            key, value = "colorpool", f"randomhue:{value}"
        attr = _ALIASES.get(key)
        if attr is None:
            self.extras[key] = value
            return

        if attr in ("maxdepth", "maxobjects", "seed"):
            n = _parse_number(value)
            if n is None:
                raise ScriptError(f"set {key or 'maxdepth'}: expected a number", text=value)
            setattr(self, attr, self._capped(attr, int(n)))
        elif attr in ("minsize", "maxsize"):
            n = _parse_number(value)
            if n is None:
                raise ScriptError(f"set {key}: expected a number", text=value)
            setattr(self, attr, n)
        elif attr == "colorpool":
            try:
                self.colorpool = value
            except ValueError as e:
                raise ScriptError(f"set {key}: {e}", text=value) from e
        else:
            color = _parse_color(value)
            if color is None:
                raise ScriptError(f"set {key}: unrecognised colour", text=value)
            setattr(self, attr, color)

    def _capped(self, attr: str, n: int) -> int:
        ceiling = {"maxdepth": self.depth_ceiling, "maxobjects": self.object_ceiling}.get(attr)
        if ceiling is not None and n > ceiling:
            logger.warning("set %s %d exceeds the limit, using %d", attr, n, ceiling)
            return ceiling
        return n

    def _raw(self, key: str) -> Any:
        attr = _ALIASES.get(key, key)
        if attr in self.extras:
            return self.extras[attr]
        if attr == "colorpool":
            return self.colorpool
        if attr in _ALIASES.values():
            return getattr(self, attr)
        return None

    def get_value(self, key: str, kind: ValueKind = "string") -> Any:
        """Read a setting as ``kind``; None when the key was never set.

        ``hash`` gathers every ``key:<sub>`` entry into ``{sub: value}``.
        """
        if kind == "hash":
            prefix = key + ":"
            found = {
                k[len(prefix):]: v for k, v in self.extras.items() if k.startswith(prefix)
            }
            return found or None

        raw = self._raw(key)
        if raw is None:
            return None
        text = str(raw)
        if kind == "number":
            n = _parse_number(text)
            return 0.0 if n is None else n
        if kind == "int":
            n = _parse_number(text)
            return 0 if n is None else int(n)
        if kind == "color":
            return _parse_color(text) or "#000"
        if kind == "array":
            return _parse_array(text)
        return text

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "maxdepth": self.maxdepth,
            "maxobjects": self.maxobjects,
            "minsize": self.minsize,
            "maxsize": self.maxsize,
            "seed": self.seed,
            "background": self.background,
            "floor": self.floor,
            "sky": self.sky,
            "colorpool": self.colorpool,
        }
        out.update(self.extras)
        return out
