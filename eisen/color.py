"""HSB colours and random colour pools.

Colours are kept as hue (degrees), saturation, brightness and alpha so that
scripts can shift hue and scale saturation/brightness incrementally.  A
``Color`` may be bound to a ``ColorPool``; such a colour has no fixed value
and draws one from the pool every time it is resolved to RGBA.
"""

from __future__ import annotations

import logging
import math
import re
from typing import NamedTuple, Protocol

logger = logging.getLogger(__name__)


class RGBA(NamedTuple):
    r: float
    g: float
    b: float
    a: float


class _Draws(Protocol):
    def next(self) -> float: ...


_HEX_RE = re.compile(r"#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})")


def parse_hex(text: str) -> tuple[float, float, float]:
    """``#rgb`` or ``#rrggbb`` -> (r, g, b) in [0, 1]."""
    m = _HEX_RE.fullmatch(text.strip())
    if m is None:
        raise ValueError(f"invalid hex colour {text!r}")
    digits = m.group(1)
    if len(digits) == 3:
        return tuple(int(ch, 16) / 15 for ch in digits)  # type: ignore[return-value]
    return tuple(  # type: ignore[return-value]
        int(digits[i:i + 2], 16) / 255 for i in (0, 2, 4)
    )


def resolve_color(text: str) -> str:
    """Map a colour name or hex string to a ``#hex`` string."""
    named = COLOR_TABLE.get(text.lower())
    if named is not None:
        return named
    parse_hex(text)
    return text


# -------------------------
# Color
# -------------------------


class Color:
    __slots__ = ("h", "s", "b", "a", "pool")

    def __init__(
        self,
        h: float = 0.0,
        s: float = 0.0,
        b: float = 0.0,
        a: float = 1.0,
        pool: ColorPool | None = None,
    ) -> None:
        self.h = h
        self.s = s
        self.b = b
        self.a = a
        self.pool = pool

    @classmethod
    def from_hex(cls, text: str) -> Color:
        return cls().set_hex(text)

    @classmethod
    def from_pool(cls, pool: ColorPool) -> Color:
        return cls(pool=pool)

    def set(self, h: float, s: float, b: float, a: float) -> Color:
        self.h, self.s, self.b, self.a = h, s, b, a
        self.pool = None
        return self

    def copy(self) -> Color:
        return Color(self.h, self.s, self.b, self.a, self.pool)

    def copy_from(self, other: Color) -> Color:
        self.h, self.s, self.b, self.a = other.h, other.s, other.b, other.a
        self.pool = other.pool
        return self

    def multiply(self, delta: Color) -> Color:
        """Shift hue by ``delta.h``; scale s, b and a by the delta's."""
        self.pool = None
        self.h = (self.h + delta.h) % 360
        self.s *= delta.s
        self.b *= delta.b
        self.a *= delta.a
        return self

    def blend(self, target: Color, ratio: Color) -> Color:
        """Move toward ``target`` by ``ratio`` per channel, weighted by target alpha.

        Hue travels the short way round the colour wheel.  A colour without
        saturation has no meaningful hue and simply takes the target's.
        """
        self.pool = None
        if self.s > 0:
            hdif = 0.0 if target.s == 0 else target.h - self.h
            if hdif <= -180:
                hdif += 360
            elif hdif > 180:
                hdif -= 360
            self.h = (self.h + hdif * ratio.h * target.a) % 360
        else:
            self.h = target.h
        self.s += (target.s - self.s) * ratio.s * target.a
        self.b += (target.b - self.b) * ratio.b * target.a
        return self

    def set_rgb(self, r: float, g: float, b: float) -> Color:
        hi = max(r, g, b)
        lo = min(r, g, b)
        chroma = hi - lo
        self.pool = None
        self.s = chroma / hi if hi else 0.0
        self.b = hi
        if chroma <= 0:
            self.h = 0.0
        elif hi == r:
            self.h = (60 * (g - b) / chroma) % 360
        elif hi == g:
            self.h = 60 * (b - r) / chroma + 120
        else:
            self.h = 60 * (r - g) / chroma + 240
        return self

    def set_hex(self, text: str) -> Color:
        """Set from ``#rgb``/``#rrggbb`` or a colour name; alpha is untouched."""
        return self.set_rgb(*parse_hex(resolve_color(text)))

    def to_rgba(self, rng: _Draws | None = None) -> RGBA:
        if self.pool is not None:
            if rng is None:
                raise ValueError("a pool-bound colour needs a random generator")
            return self.pool.draw(rng)
        return hsb_to_rgba(self.h, self.s, self.b, self.a)

    def skip(self, rng: _Draws) -> None:
        """Consume the draws ``to_rgba`` would, without producing a colour."""
        if self.pool is not None:
            self.pool.skip(rng)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Color):
            return NotImplemented
        return (self.h, self.s, self.b, self.a, self.pool) == (
            other.h, other.s, other.b, other.a, other.pool
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.pool is not None:
            return f"Color(pool={self.pool.scheme!r})"
        return f"Color(h={self.h:g}, s={self.s:g}, b={self.b:g}, a={self.a:g})"


def hsb_to_rgba(h: float, s: float, b: float, a: float = 1.0) -> RGBA:
    hp = (h - math.floor(h / 360) * 360) / 60
    c = b * s
    x = c * (1 - abs(hp % 2 - 1))
    m = b - c
    if hp < 1:
        return RGBA(c + m, x + m, m, a)
    if hp < 2:
        return RGBA(x + m, c + m, m, a)
    if hp < 3:
        return RGBA(m, c + m, x + m, a)
    if hp < 4:
        return RGBA(m, x + m, c + m, a)
    if hp < 5:
        return RGBA(x + m, m, c + m, a)
    return RGBA(c + m, m, x + m, a)


# -------------------------
# ColorPool
# -------------------------

_POOL_SCHEMES = ("randomrgb", "randomhue", "grayscale", "list")


class ColorPool:
    """Random colour source selected by ``set colorpool <scheme>``.

    Schemes:
      - ``randomrgb``: three independent draws for r, g, b
      - ``randomhue``: one draw for hue at full saturation and brightness
      - ``grayscale``: one draw used as luminance
      - ``randomhue:N`` / ``grayscale:N``: one draw picks from an N-step ramp
      - ``[c1,c2,...]`` or ``list:c1,c2,...``: one draw picks a listed colour
    """

    def __init__(self, scheme: str = "randomrgb") -> None:
        self.colors: list[RGBA] | None = None
        self._kind = "randomrgb"
        self._scheme = ""
        self.scheme = scheme

    @property
    def scheme(self) -> str:
        return self._scheme

    @scheme.setter
    def scheme(self, text: str) -> None:
        text = text.strip()
        m = re.fullmatch(r"\[(.*)\]", text)
        if m is not None:
            kind, option = "list", m.group(1)
        else:
            kind, _, option = text.partition(":")
        self.colors = None
        if kind == "list":
            try:
                self.colors = [
                    Color().set_hex(c).to_rgba()
                    for c in re.split(r"\s*,\s*", option.strip())
                ]
            except ValueError as e:
                raise ValueError(f"invalid colour list {text!r}: {e}") from e
        elif kind in ("randomhue", "grayscale"):
            steps = _ramp_steps(option)
            if steps > 0 and kind == "randomhue":
                self.colors = [hsb_to_rgba(i / steps * 360, 1, 1) for i in range(steps)]
            elif steps > 0:
                self.colors = [
                    RGBA(v, v, v, 1.0)
                    for v in (i / max(steps - 1, 1) for i in range(steps))
                ]
        elif kind != "randomrgb":
            logger.warning("unknown colorpool scheme %r, using randomrgb", text)
            kind = "randomrgb"
        self._kind = kind
        self._scheme = text

    def draw(self, rng: _Draws) -> RGBA:
        num = rng.next()
        if self.colors is not None:
            return self.colors[int(num * len(self.colors))]
        if self._kind == "randomhue":
            return hsb_to_rgba(num * 360, 1, 1)
        if self._kind == "grayscale":
            return RGBA(num, num, num, 1.0)
        return RGBA(num, rng.next(), rng.next(), 1.0)

    def skip(self, rng: _Draws) -> None:
        rng.next()
        if self.colors is None and self._kind == "randomrgb":
            rng.next()
            rng.next()

    def __repr__(self) -> str:
        return f"ColorPool({self._scheme!r})"


def _ramp_steps(option: str) -> int:
    try:
        return max(int(float(option)), 0) if option else 0
    except ValueError:
        return 0


# -------------------------
# Named colours (SVG/CSS)
# -------------------------

COLOR_TABLE: dict[str, str] = {
    "black": "#000000", "navy": "#000080", "darkblue": "#00008b",
    "mediumblue": "#0000cd", "blue": "#0000ff", "darkgreen": "#006400",
    "green": "#008000", "teal": "#008080", "darkcyan": "#008b8b",
    "deepskyblue": "#00bfff", "darkturquoise": "#00ced1",
    "mediumspringgreen": "#00fa9a", "lime": "#00ff00", "springgreen": "#00ff7f",
    "cyan": "#00ffff", "aqua": "#00ffff", "midnightblue": "#191970",
    "dodgerblue": "#1e90ff", "lightseagreen": "#20b2aa",
    "forestgreen": "#228b22", "seagreen": "#2e8b57",
    "darkslategray": "#2f4f4f", "darkslategrey": "#2f4f4f",
    "limegreen": "#32cd32", "mediumseagreen": "#3cb371",
    "turquoise": "#40e0d0", "royalblue": "#4169e1", "steelblue": "#4682b4",
    "darkslateblue": "#483d8b", "mediumturquoise": "#48d1cc",
    "indigo": "#4b0082", "darkolivegreen": "#556b2f", "cadetblue": "#5f9ea0",
    "cornflowerblue": "#6495ed", "mediumaquamarine": "#66cdaa",
    "dimgrey": "#696969", "dimgray": "#696969", "slateblue": "#6a5acd",
    "olivedrab": "#6b8e23", "slategrey": "#708090", "slategray": "#708090",
    "lightslategray": "#778899", "lightslategrey": "#778899",
    "mediumslateblue": "#7b68ee", "lawngreen": "#7cfc00",
    "chartreuse": "#7fff00", "aquamarine": "#7fffd4", "maroon": "#800000",
    "purple": "#800080", "olive": "#808000", "gray": "#808080",
    "grey": "#808080", "skyblue": "#87ceeb", "lightskyblue": "#87cefa",
    "blueviolet": "#8a2be2", "darkred": "#8b0000", "darkmagenta": "#8b008b",
    "saddlebrown": "#8b4513", "darkseagreen": "#8fbc8f",
    "lightgreen": "#90ee90", "mediumpurple": "#9370db",
    "darkviolet": "#9400d3", "palegreen": "#98fb98", "darkorchid": "#9932cc",
    "yellowgreen": "#9acd32", "sienna": "#a0522d", "brown": "#a52a2a",
    "darkgray": "#a9a9a9", "darkgrey": "#a9a9a9", "lightblue": "#add8e6",
    "greenyellow": "#adff2f", "paleturquoise": "#afeeee",
    "lightsteelblue": "#b0c4de", "powderblue": "#b0e0e6",
    "firebrick": "#b22222", "darkgoldenrod": "#b8860b",
    "mediumorchid": "#ba55d3", "rosybrown": "#bc8f8f", "darkkhaki": "#bdb76b",
    "silver": "#c0c0c0", "mediumvioletred": "#c71585", "indianred": "#cd5c5c",
    "peru": "#cd853f", "chocolate": "#d2691e", "tan": "#d2b48c",
    "lightgray": "#d3d3d3", "lightgrey": "#d3d3d3", "thistle": "#d8bfd8",
    "orchid": "#da70d6", "goldenrod": "#daa520", "palevioletred": "#db7093",
    "crimson": "#dc143c", "gainsboro": "#dcdcdc", "plum": "#dda0dd",
    "burlywood": "#deb887", "lightcyan": "#e0ffff", "lavender": "#e6e6fa",
    "darksalmon": "#e9967a", "violet": "#ee82ee", "palegoldenrod": "#eee8aa",
    "lightcoral": "#f08080", "khaki": "#f0e68c", "aliceblue": "#f0f8ff",
    "honeydew": "#f0fff0", "azure": "#f0ffff", "sandybrown": "#f4a460",
    "wheat": "#f5deb3", "beige": "#f5f5dc", "whitesmoke": "#f5f5f5",
    "mintcream": "#f5fffa", "ghostwhite": "#f8f8ff", "salmon": "#fa8072",
    "antiquewhite": "#faebd7", "linen": "#faf0e6",
    "lightgoldenrodyellow": "#fafad2", "oldlace": "#fdf5e6", "red": "#ff0000",
    "fuchsia": "#ff00ff", "magenta": "#ff00ff", "deeppink": "#ff1493",
    "orangered": "#ff4500", "tomato": "#ff6347", "hotpink": "#ff69b4",
    "coral": "#ff7f50", "darkorange": "#ff8c00", "lightsalmon": "#ffa07a",
    "orange": "#ffa500", "lightpink": "#ffb6c1", "pink": "#ffc0cb",
    "gold": "#ffd700", "peachpuff": "#ffdab9", "navajowhite": "#ffdead",
    "moccasin": "#ffe4b5", "bisque": "#ffe4c4", "mistyrose": "#ffe4e1",
    "blanchedalmond": "#ffebcd", "papayawhip": "#ffefd5",
    "lavenderblush": "#fff0f5", "seashell": "#fff5ee", "cornsilk": "#fff8dc",
    "lemonchiffon": "#fffacd", "floralwhite": "#fffaf0", "snow": "#fffafa",
    "yellow": "#ffff00", "lightyellow": "#ffffe0", "ivory": "#fffff0",
    "white": "#ffffff",
}
