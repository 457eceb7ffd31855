"""4x4 homogeneous transforms.

Elements are stored row-major: ``elements[row * 4 + col]``, translation in
the last column.  Composition is ``a.multiply(b)`` == ``a @ b``, i.e. ``b`` is
applied to points first.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

Vector3 = tuple[float, float, float]

_IDENTITY = (
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
)


class AffineMatrix:
    __slots__ = ("elements",)

    def __init__(self, elements: Iterable[float] | None = None) -> None:
        if elements is None:
            self.elements = list(_IDENTITY)
        else:
            self.elements = [float(v) for v in elements]
            if len(self.elements) != 16:
                raise ValueError(
                    f"AffineMatrix needs 16 elements, got {len(self.elements)}"
                )

    # -------------------------
    # Constructors
    # -------------------------

    @classmethod
    def identity(cls) -> AffineMatrix:
        return cls()

    @classmethod
    def translation(cls, x: float, y: float, z: float) -> AffineMatrix:
        return cls((
            1, 0, 0, x,
            0, 1, 0, y,
            0, 0, 1, z,
            0, 0, 0, 1,
        ))

    @classmethod
    def scale(cls, x: float, y: float, z: float) -> AffineMatrix:
        return cls((
            x, 0, 0, 0,
            0, y, 0, 0,
            0, 0, z, 0,
            0, 0, 0, 1,
        ))

    @classmethod
    def rotation_x(cls, theta: float) -> AffineMatrix:
        c, s = math.cos(theta), math.sin(theta)
        return cls((
            1, 0, 0, 0,
            0, c, -s, 0,
            0, s, c, 0,
            0, 0, 0, 1,
        ))

    @classmethod
    def rotation_y(cls, theta: float) -> AffineMatrix:
        c, s = math.cos(theta), math.sin(theta)
        return cls((
            c, 0, s, 0,
            0, 1, 0, 0,
            -s, 0, c, 0,
            0, 0, 0, 1,
        ))

    @classmethod
    def rotation_z(cls, theta: float) -> AffineMatrix:
        c, s = math.cos(theta), math.sin(theta)
        return cls((
            c, -s, 0, 0,
            s, c, 0, 0,
            0, 0, 1, 0,
            0, 0, 0, 1,
        ))

    @classmethod
    def linear(cls, values: Iterable[float]) -> AffineMatrix:
        """3x3 block given row by row, no translation."""
        a, b, c, d, e, f, g, h, i = values
        return cls((
            a, b, c, 0,
            d, e, f, 0,
            g, h, i, 0,
            0, 0, 0, 1,
        ))

    # -------------------------
    # Algebra
    # -------------------------

    def copy(self) -> AffineMatrix:
        m = AffineMatrix.__new__(AffineMatrix)
        m.elements = self.elements[:]
        return m

    def copy_from(self, other: AffineMatrix) -> AffineMatrix:
        self.elements[:] = other.elements
        return self

    def multiply(self, other: AffineMatrix) -> AffineMatrix:
        """Right-multiply in place: ``self = self @ other``."""
        a = self.elements
        b = other.elements
        out = [0.0] * 16
        for r in range(4):
            a0, a1, a2, a3 = a[r * 4], a[r * 4 + 1], a[r * 4 + 2], a[r * 4 + 3]
            for c in range(4):
                out[r * 4 + c] = (
                    a0 * b[c] + a1 * b[4 + c] + a2 * b[8 + c] + a3 * b[12 + c]
                )
        self.elements = out
        return self

    def premultiply(self, other: AffineMatrix) -> AffineMatrix:
        """Left-multiply in place: ``self = other @ self``."""
        self.elements = (other @ self).elements
        return self

    def __matmul__(self, other: AffineMatrix) -> AffineMatrix:
        return self.copy().multiply(other)

    def signed_det3(self) -> float:
        """Determinant of the upper-left 3x3 block."""
        e = self.elements
        return (
            e[0] * (e[5] * e[10] - e[6] * e[9])
            - e[1] * (e[4] * e[10] - e[6] * e[8])
            + e[2] * (e[4] * e[9] - e[5] * e[8])
        )

    def det3(self) -> float:
        """Volume scale of the transform; used for size filtering."""
        return abs(self.signed_det3())

    # -------------------------
    # Accessors
    # -------------------------

    @property
    def translation_part(self) -> Vector3:
        e = self.elements
        return (e[3], e[7], e[11])

    def apply_to_point(self, point: Vector3) -> Vector3:
        x, y, z = point
        e = self.elements
        w = e[12] * x + e[13] * y + e[14] * z + e[15]
        return (
            (e[0] * x + e[1] * y + e[2] * z + e[3]) / w,
            (e[4] * x + e[5] * y + e[6] * z + e[7]) / w,
            (e[8] * x + e[9] * y + e[10] * z + e[11]) / w,
        )

    def rows(self) -> list[list[float]]:
        e = self.elements
        return [e[r * 4:r * 4 + 4] for r in range(4)]

    def to_list(self) -> list[float]:
        return self.elements[:]

    def to_column_major(self) -> list[float]:
        """Element order expected by OpenGL-style consumers."""
        e = self.elements
        return [e[r * 4 + c] for c in range(4) for r in range(4)]

    def is_close(self, other: AffineMatrix, tol: float = 1e-9) -> bool:
        return all(
            math.isclose(a, b, rel_tol=tol, abs_tol=tol)
            for a, b in zip(self.elements, other.elements)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AffineMatrix):
            return NotImplemented
        return self.elements == other.elements

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        rows = "; ".join(" ".join(f"{v:g}" for v in row) for row in self.rows())
        return f"AffineMatrix([{rows}])"
