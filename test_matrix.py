#!/usr/bin/env python3
import math

import pytest

from eisen.matrix import AffineMatrix


class TestConstructors:
    def test_identity(self) -> None:
        m = AffineMatrix.identity()
        assert m.elements == [
            1, 0, 0, 0,
            0, 1, 0, 0,
            0, 0, 1, 0,
            0, 0, 0, 1,
        ]
        assert m == AffineMatrix()

    def test_wrong_element_count(self) -> None:
        with pytest.raises(ValueError):
            AffineMatrix([1.0, 2.0, 3.0])

    def test_translation(self) -> None:
        m = AffineMatrix.translation(1, 2, 3)
        assert m.translation_part == (1, 2, 3)
        assert m.apply_to_point((1, 1, 1)) == (2, 3, 4)

    def test_rotation_z_is_right_handed(self) -> None:
        p = AffineMatrix.rotation_z(math.pi / 2).apply_to_point((1, 0, 0))
        assert p == pytest.approx((0, 1, 0), abs=1e-12)

    def test_rotation_x_and_y(self) -> None:
        py = AffineMatrix.rotation_x(math.pi / 2).apply_to_point((0, 1, 0))
        assert py == pytest.approx((0, 0, 1), abs=1e-12)
        pz = AffineMatrix.rotation_y(math.pi / 2).apply_to_point((0, 0, 1))
        assert pz == pytest.approx((1, 0, 0), abs=1e-12)

    def test_linear_is_row_major(self) -> None:
        m = AffineMatrix.linear([1, 2, 3, 4, 5, 6, 7, 8, 9])
        assert m.rows()[0] == [1, 2, 3, 0]
        assert m.rows()[1] == [4, 5, 6, 0]
        assert m.rows()[2] == [7, 8, 9, 0]
        assert m.translation_part == (0, 0, 0)


class TestAlgebra:
    def test_multiply_applies_right_operand_first(self) -> None:
        # translate then rotate, in script order
        m = AffineMatrix.translation(1, 0, 0).multiply(AffineMatrix.rotation_z(math.pi / 2))
        assert m.apply_to_point((1, 0, 0)) == pytest.approx((1, 1, 0), abs=1e-12)

        n = AffineMatrix.rotation_z(math.pi / 2).multiply(AffineMatrix.translation(1, 0, 0))
        assert n.apply_to_point((0, 0, 0)) == pytest.approx((0, 1, 0), abs=1e-12)

    def test_matmul_does_not_mutate(self) -> None:
        a = AffineMatrix.translation(1, 0, 0)
        b = AffineMatrix.scale(2, 2, 2)
        c = a @ b
        assert a == AffineMatrix.translation(1, 0, 0)
        assert c.apply_to_point((1, 1, 1)) == (3, 2, 2)

    def test_premultiply(self) -> None:
        m = AffineMatrix.translation(1, 0, 0)
        m.premultiply(AffineMatrix.scale(2, 2, 2))
        assert m.translation_part == (2, 0, 0)

    def test_copy_is_independent(self) -> None:
        a = AffineMatrix.translation(1, 2, 3)
        b = a.copy()
        b.multiply(AffineMatrix.translation(1, 1, 1))
        assert a.translation_part == (1, 2, 3)
        assert b.translation_part == (2, 3, 4)
        a.copy_from(b)
        assert a == b

    def test_det3(self) -> None:
        assert AffineMatrix.scale(2, 3, 4).det3() == pytest.approx(24)
        assert AffineMatrix.translation(5, 5, 5).det3() == pytest.approx(1)
        assert AffineMatrix.rotation_x(0.7).det3() == pytest.approx(1)

    def test_signed_det3_of_mirror(self) -> None:
        m = AffineMatrix.scale(-1, 1, 1)
        assert m.signed_det3() == pytest.approx(-1)
        assert m.det3() == pytest.approx(1)


class TestAccessors:
    def test_column_major(self) -> None:
        m = AffineMatrix.translation(1, 2, 3)
        cm = m.to_column_major()
        assert cm[12:15] == [1, 2, 3]
        assert len(cm) == 16

    def test_to_list_is_a_copy(self) -> None:
        m = AffineMatrix()
        values = m.to_list()
        values[0] = 5
        assert m.elements[0] == 1

    def test_is_close(self) -> None:
        a = AffineMatrix.rotation_z(2 * math.pi)
        assert a.is_close(AffineMatrix(), tol=1e-9)
        assert not a.is_close(AffineMatrix.scale(2, 2, 2))

    def test_repr(self) -> None:
        assert repr(AffineMatrix()).startswith("AffineMatrix([1 0 0 0;")
