#!/usr/bin/env python3
import pytest

from eisen.color import Color, ColorPool
from eisen.errors import ScriptError
from eisen.matrix import AffineMatrix
from eisen.operators import parse_operator


def _origin(ops: str) -> tuple[float, float, float]:
    return parse_operator(ops).matrix.apply_to_point((0, 0, 0))


class TestGeometry:
    def test_translations(self) -> None:
        assert parse_operator("x 1 y 2 z 3").matrix.translation_part == (1, 2, 3)
        assert parse_operator("x1y-2z.5").matrix.translation_part == (1, -2, 0.5)

    def test_order_matters(self) -> None:
        assert _origin("x 1 rz 90") == pytest.approx((1, 0, 0), abs=1e-12)
        assert _origin("rz 90 x 1") == pytest.approx((0, 1, 0), abs=1e-12)

    def test_scale(self) -> None:
        assert parse_operator("s 2").matrix.det3() == pytest.approx(8)
        assert parse_operator("s 1 2 3").matrix.det3() == pytest.approx(6)
        assert parse_operator("s 0.5 x 1").matrix.translation_part == (0.5, 0, 0)

    def test_scale_needs_one_or_three(self) -> None:
        with pytest.raises(ScriptError):
            parse_operator("s 1 2")

    def test_mirror(self) -> None:
        assert parse_operator("fx").matrix.signed_det3() == pytest.approx(-1)
        assert parse_operator("fx fy").matrix.signed_det3() == pytest.approx(1)
        assert parse_operator("fz").matrix.apply_to_point((1, 1, 1)) == (1, 1, -1)

    def test_raw_matrix_rows(self) -> None:
        m = parse_operator("m 0 1 0 1 0 0 0 0 1").matrix
        assert m.rows()[0] == [0, 1, 0, 0]
        assert m.rows()[1] == [1, 0, 0, 0]
        assert m == AffineMatrix.linear([0, 1, 0, 1, 0, 0, 0, 0, 1])

    def test_raw_matrix_needs_nine(self) -> None:
        with pytest.raises(ScriptError, match="expects a number"):
            parse_operator("m 1 0 0 0 1 0 0 0")

    def test_empty(self) -> None:
        delta = parse_operator("")
        assert delta.matrix == AffineMatrix()
        assert delta.color is None and delta.dcolor is None
        assert not delta.blends


class TestColour:
    def test_absolute_colours(self) -> None:
        assert parse_operator("red").color == Color(0, 1, 1, 1)
        blue = parse_operator("#00f").color
        assert blue is not None and blue.h == 240
        white = parse_operator("color white").color
        assert white is not None and (white.s, white.b) == (0, 1)

    def test_hsb_delta(self) -> None:
        delta = parse_operator("hue 30 sat 0.5 b 0.8 a 0.9")
        assert delta.dcolor == Color(30, 0.5, 0.8, 0.9)
        assert parse_operator("h 12").dcolor == Color(12, 1, 1, 1)
        assert parse_operator("brightness 0.5 alpha 0.2").dcolor == Color(0, 1, 0.5, 0.2)

    def test_star_blend(self) -> None:
        delta = parse_operator("*blue 0.5")
        assert delta.blends
        assert delta.blend.h == 240 and delta.blend.a == 0.5
        assert delta.ratio == Color(1, 1, 1, 1)

    def test_blend_command(self) -> None:
        delta = parse_operator("blend #00ff00 0.25")
        assert delta.blend.h == 120 and delta.blend.a == 0.25
        assert delta.ratio == Color(1, 1, 1, 1)

    def test_channel_blend(self) -> None:
        delta = parse_operator("*h 120 0.25")
        assert delta.blend.a == 1
        assert delta.blend.h == 120
        assert delta.ratio == Color(0.25, 0, 0, 0)
        sat = parse_operator("*s 0.2 0.5")
        assert (sat.blend.s, sat.ratio.s) == (0.2, 0.5)

    def test_bad_star(self) -> None:
        with pytest.raises(ScriptError):
            parse_operator("*q 1")

    def test_random_colours_bind_pool(self) -> None:
        pool = ColorPool("grayscale")
        for ops in ("random", "#?", "color random", "color #?"):
            color = parse_operator(ops, pool=pool).color
            assert color is not None and color.pool is pool, ops

    def test_random_without_pool(self) -> None:
        color = parse_operator("random").color
        assert color is not None and color.pool is not None
        assert color.pool.scheme == "randomrgb"

    def test_color_needs_argument(self) -> None:
        with pytest.raises(ScriptError):
            parse_operator("color 3")


class TestApply:
    def test_apply_order(self) -> None:
        matrix = AffineMatrix()
        color = Color(0, 1, 1, 1)
        parse_operator("x 1 blue hue 10").apply(matrix, color)
        assert matrix.translation_part == (1, 0, 0)
        assert color.h == pytest.approx(250)

    def test_red_blend_blue_half(self) -> None:
        color = Color(0, 1, 1, 1)
        parse_operator("red*blue0.5").apply(AffineMatrix(), color)
        assert color.to_rgba() == pytest.approx((1, 0, 1, 1))

    def test_apply_compounds(self) -> None:
        matrix = AffineMatrix()
        color = Color(0, 1, 1, 1)
        delta = parse_operator("x 1 s 0.5 hue 90")
        for _ in range(3):
            delta.apply(matrix, color)
        assert matrix.translation_part == pytest.approx((1.75, 0, 0))
        assert matrix.det3() == pytest.approx(0.5**9)
        assert color.h == pytest.approx(270)


class TestVariables:
    def test_dollar_variables(self) -> None:
        delta = parse_operator("x $d rz $t", {"d": "2.5", "t": "0"})
        assert delta.uses_variables
        assert delta.matrix.translation_part == (2.5, 0, 0)

    def test_bare_variables(self) -> None:
        delta = parse_operator("x d", {"d": "3"})
        assert delta.uses_variables
        assert delta.matrix.translation_part == (3, 0, 0)

    def test_commands_win_over_variables(self) -> None:
        delta = parse_operator("s 2 x 1", {"x": "5"})
        assert delta.matrix.translation_part == (2, 0, 0)
        assert delta.matrix.det3() == pytest.approx(8)

    def test_colour_variables(self) -> None:
        delta = parse_operator("color $c", {"c": "blue"})
        assert delta.color is not None and delta.color.h == 240
        blended = parse_operator("*$c 0.5", {"c": "#ff0000"})
        assert blended.blend.h == 0 and blended.blend.a == 0.5

    def test_no_variables_used(self) -> None:
        assert not parse_operator("x 1", {"d": "3"}).uses_variables

    def test_undefined_variable(self) -> None:
        with pytest.raises(ScriptError, match="undefined variable"):
            parse_operator("x $nope")

    def test_variable_wrong_kind(self) -> None:
        with pytest.raises(ScriptError, match="not a number"):
            parse_operator("x $c", {"c": "blue"})


class TestErrors:
    @pytest.mark.parametrize("ops", ["foo 1", "x", "x 1 ;", "3", "$v", "rx q"])
    def test_rejected(self, ops: str) -> None:
        with pytest.raises(ScriptError):
            parse_operator(ops, {"v": "1"})

    def test_error_names_operator(self) -> None:
        with pytest.raises(ScriptError) as exc:
            parse_operator("x 1 wobble 2")
        assert "wobble" in str(exc.value)
        assert exc.value.text == "x 1 wobble 2"
