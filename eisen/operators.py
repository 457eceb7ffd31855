"""Inline operator strings: the contents of a ``{ ... }`` transform block.

An operator string is read left to right.  Geometry commands compose into a
single delta matrix in script order; colour commands record an absolute
colour, a multiplicative HSB delta and/or a blend target.

Geometry:
  x/y/z <d>          translate
  rx/ry/rz <deg>     rotate about an axis (right-handed)
  s <f> | s <x y z>  scale
  fx/fy/fz           mirror one axis
  m <a b c d e f g h i>   arbitrary 3x3 block, row by row

Colour:
  <name> | #hex | color <c>     absolute colour
  random | #? | color random    colour drawn from the colour pool
  hue|h <deg>  sat <f>  brightness|b <f>  alpha|a <f>   HSB delta
  blend <c> <f> | *<c> <f>      blend toward <c> with strength <f>
  *h <hue> <f> | *s <sat> <f> | *b <bri> <f>   single-channel blend

Numbers and colours may come from script variables (``$name``).
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from .color import COLOR_TABLE, Color, ColorPool, resolve_color
from .errors import ScriptError
from .matrix import AffineMatrix

Variables = Mapping[str, str]

_TOKEN_RE = re.compile(
    r"""
    (?P<space>[\s,]+)
    |(?P<word>[A-Za-z_]+|\#\?)
    |(?P<number>-?(?:\d+\.?\d*|\.\d+))
    |(?P<hex>\#[0-9a-fA-F]+)
    |(?P<star>\*)
    |\$(?P<var>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE,
)

COMMANDS = frozenset({
    "x", "y", "z", "rx", "ry", "rz", "s", "m", "fx", "fy", "fz",
    "hue", "h", "sat", "brightness", "b", "alpha", "a",
    "blend", "color", "random", "#?",
})

_AXIS = {"x": 0, "y": 1, "z": 2}


@dataclass
class OperatorDelta:
    """Everything one transform block does to the running state."""

    matrix: AffineMatrix = field(default_factory=AffineMatrix)
    color: Color | None = None
    dcolor: Color | None = None
    blend: Color = field(default_factory=lambda: Color(0, 1, 1, 0))
    ratio: Color = field(default_factory=lambda: Color(0, 0, 0, 0))
    uses_variables: bool = False

    @property
    def blends(self) -> bool:
        return self.blend.a != 0

    def apply(self, matrix: AffineMatrix, color: Color) -> None:
        """Advance ``matrix`` and ``color`` by one repetition of this delta."""
        matrix.multiply(self.matrix)
        if self.color is not None:
            color.copy_from(self.color)
        if self.dcolor is not None:
            color.multiply(self.dcolor)
        if self.blends:
            color.blend(self.blend, self.ratio)


class _Reader:
    def __init__(self, text: str, variables: Variables) -> None:
        self.text = text
        self.variables = variables
        self.uses_variables = False
        self.tokens: list[tuple[str, str]] = []
        pos = 0
        while pos < len(text):
            m = _TOKEN_RE.match(text, pos)
            if m is None:
                raise ScriptError(
                    f"cannot parse operator {text!r} at {text[pos:]!r}", text=text
                )
            pos = m.end()
            kind = m.lastgroup
            assert kind is not None
            if kind != "space":
                self.tokens.append((kind, m.group(kind)))
        self.index = 0

    def error(self, msg: str) -> ScriptError:
        return ScriptError(f"{msg} in operator {self.text!r}", text=self.text)

    def peek(self) -> tuple[str, str] | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def take(self) -> tuple[str, str] | None:
        tok = self.peek()
        if tok is not None:
            self.index += 1
        return tok

    def _variable(self, tok: tuple[str, str]) -> str | None:
        kind, value = tok
        if kind == "var":
            if value not in self.variables:
                raise self.error(f"undefined variable ${value}")
        elif not (kind == "word" and value in self.variables and value not in COMMANDS):
            return None
        self.uses_variables = True
        return self.variables[value]

    def number(self, command: str, optional: bool = False) -> float | None:
        tok = self.peek()
        if tok is not None:
            if tok[0] == "number":
                self.index += 1
                return float(tok[1])
            value = self._variable(tok)
            if value is not None:
                self.index += 1
                try:
                    return float(value)
                except ValueError:
                    raise self.error(
                        f"variable {tok[1]!r} is not a number ({value!r})"
                    ) from None
        if optional:
            return None
        raise self.error(f"'{command}' expects a number")

    def numbers(self, command: str, count: int) -> list[float]:
        return [self.number(command) for _ in range(count)]  # type: ignore[misc]

    def color(self, command: str, optional: bool = False) -> str | None:
        tok = self.peek()
        if tok is not None:
            kind, value = tok
            text = self._variable(tok)
            if text is None and kind == "hex":
                text = value
            elif text is None and kind == "word" and value.lower() in COLOR_TABLE:
                text = value
            if text is not None:
                self.index += 1
                try:
                    return resolve_color(text)
                except ValueError as e:
                    raise self.error(str(e)) from e
        if optional:
            return None
        raise self.error(f"'{command}' expects a colour")


def parse_operator(
    text: str,
    variables: Variables | None = None,
    pool: ColorPool | None = None,
) -> OperatorDelta:
    """Parse one operator string into an ``OperatorDelta``.

    ``pool`` is the colour pool bound by ``random``/``#?``; a fresh
    ``randomrgb`` pool is used when none is given.
    """
    r = _Reader(text, variables or {})
    delta = OperatorDelta()

    def hsb_delta() -> Color:
        if delta.dcolor is None:
            delta.dcolor = Color(0, 1, 1, 1)
        return delta.dcolor

    def random_color() -> Color:
        return Color.from_pool(pool if pool is not None else ColorPool())

    while (tok := r.take()) is not None:
        kind, word = tok
        if kind == "hex":
            delta.color = _absolute(r, word)
            continue
        if kind == "star":
            target = r.color("*", optional=True)
            if target is not None:
                delta.blend.set_hex(target)
                delta.blend.a = r.number("*")  # type: ignore[assignment]
                delta.ratio.set(1, 1, 1, 1)
                continue
            channel = r.take()
            if channel is None or channel[1] not in ("h", "s", "b"):
                raise r.error("'*' expects a colour or one of h, s, b")
            ch = channel[1]
            delta.blend.a = 1
            setattr(delta.blend, ch, r.number("*" + ch))
            setattr(delta.ratio, ch, r.number("*" + ch))
            continue
        if kind != "word":
            raise r.error(f"unexpected {word!r}")

        if word not in COMMANDS and word.lower() in COLOR_TABLE:
            delta.color = _absolute(r, word)
        elif word in ("x", "y", "z"):
            offset = [0.0, 0.0, 0.0]
            offset[_AXIS[word]] = r.number(word)  # type: ignore[assignment]
            delta.matrix.multiply(AffineMatrix.translation(*offset))
        elif word in ("rx", "ry", "rz"):
            theta = math.radians(r.number(word))  # type: ignore[arg-type]
            rotate = getattr(AffineMatrix, f"rotation_{word[1]}")
            delta.matrix.multiply(rotate(theta))
        elif word == "s":
            sx = r.number("s")
            sy = r.number("s", optional=True)
            if sy is None:
                delta.matrix.multiply(AffineMatrix.scale(sx, sx, sx))  # type: ignore[arg-type]
            else:
                sz = r.number("s")
                delta.matrix.multiply(AffineMatrix.scale(sx, sy, sz))  # type: ignore[arg-type]
        elif word in ("fx", "fy", "fz"):
            factors = [1.0, 1.0, 1.0]
            factors[_AXIS[word[1]]] = -1.0
            delta.matrix.multiply(AffineMatrix.scale(*factors))
        elif word == "m":
            delta.matrix.multiply(AffineMatrix.linear(r.numbers("m", 9)))
        elif word in ("hue", "h"):
            hsb_delta().h = r.number(word)  # type: ignore[assignment]
        elif word == "sat":
            hsb_delta().s = r.number(word)  # type: ignore[assignment]
        elif word in ("brightness", "b"):
            hsb_delta().b = r.number(word)  # type: ignore[assignment]
        elif word in ("alpha", "a"):
            hsb_delta().a = r.number(word)  # type: ignore[assignment]
        elif word == "blend":
            delta.blend.set_hex(r.color("blend"))  # type: ignore[arg-type]
            delta.blend.a = r.number("blend")  # type: ignore[assignment]
            delta.ratio.set(1, 1, 1, 1)
        elif word == "color":
            target = r.color("color", optional=True)
            if target is not None:
                delta.color = Color.from_hex(target)
            else:
                nxt = r.take()
                if nxt is None or nxt[1] not in ("random", "#?"):
                    raise r.error("'color' expects a colour or 'random'")
                delta.color = random_color()
        elif word in ("random", "#?"):
            delta.color = random_color()
        else:
            raise r.error(f"unknown command {word!r}")

    delta.uses_variables = r.uses_variables
    return delta


def _absolute(r: _Reader, text: str) -> Color:
    try:
        return Color.from_hex(text)
    except ValueError as e:
        raise r.error(str(e)) from e
