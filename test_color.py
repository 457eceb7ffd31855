#!/usr/bin/env python3
import logging

import pytest

from eisen.color import (
    COLOR_TABLE,
    RGBA,
    Color,
    ColorPool,
    hsb_to_rgba,
    parse_hex,
    resolve_color,
)


class FakeDraws:
    """Hands out fixed values and counts how many were taken."""

    def __init__(self, *values: float) -> None:
        self.values = list(values)
        self.calls = 0

    def next(self) -> float:
        v = self.values[self.calls]
        self.calls += 1
        return v


class TestConversion:
    def test_hex_forms(self) -> None:
        assert parse_hex("#f00") == (1.0, 0.0, 0.0)
        assert parse_hex("#00ff00") == (0.0, 1.0, 0.0)
        with pytest.raises(ValueError):
            parse_hex("#abcd")

    def test_resolve_color(self) -> None:
        assert resolve_color("Blue") == "#0000ff"
        assert resolve_color("#123") == "#123"
        with pytest.raises(ValueError):
            resolve_color("notacolour")

    def test_table_has_css_names(self) -> None:
        assert COLOR_TABLE["purple"] == "#800080"
        assert COLOR_TABLE["white"] == "#ffffff"
        assert len(COLOR_TABLE) > 140

    def test_hue_sectors(self) -> None:
        assert hsb_to_rgba(0, 1, 1) == RGBA(1, 0, 0, 1)
        assert hsb_to_rgba(120, 1, 1) == RGBA(0, 1, 0, 1)
        assert hsb_to_rgba(240, 1, 1) == RGBA(0, 0, 1, 1)
        assert hsb_to_rgba(300, 1, 1, 0.5) == RGBA(1, 0, 1, 0.5)
        assert hsb_to_rgba(90, 1, 1) == pytest.approx((0.5, 1, 0, 1))

    def test_hue_wraps(self) -> None:
        assert hsb_to_rgba(360, 1, 1) == hsb_to_rgba(0, 1, 1)
        assert hsb_to_rgba(-120, 1, 1) == pytest.approx(hsb_to_rgba(240, 1, 1))

    def test_unsaturated_is_gray(self) -> None:
        assert hsb_to_rgba(200, 0, 0.4) == pytest.approx((0.4, 0.4, 0.4, 1))


class TestColor:
    def test_set_hex(self) -> None:
        c = Color().set_hex("#0000ff")
        assert (c.h, c.s, c.b) == (240, 1, 1)
        assert Color.from_hex("red").h == 0
        assert Color.from_hex("lime").h == 120

    def test_set_hex_invalid(self) -> None:
        with pytest.raises(ValueError):
            Color().set_hex("#12")

    def test_set_rgb_roundtrip_values(self) -> None:
        c = Color().set_rgb(0.5, 0.25, 0.5)
        assert c.h == pytest.approx(300)
        assert c.s == pytest.approx(0.5)
        assert c.b == pytest.approx(0.5)

    def test_multiply(self) -> None:
        c = Color(350, 1, 1, 1).multiply(Color(20, 0.5, 0.5, 0.5))
        assert c.h == pytest.approx(10)
        assert (c.s, c.b, c.a) == (0.5, 0.5, 0.5)

    def test_blend_halfway_red_to_blue(self) -> None:
        red = Color.from_hex("red")
        blue = Color.from_hex("blue")
        blue.a = 0.5
        red.blend(blue, Color(1, 1, 1, 1))
        assert red.h == pytest.approx(300)
        assert red.to_rgba() == pytest.approx((1, 0, 1, 1))

    def test_blend_takes_short_way_round(self) -> None:
        c = Color(10, 1, 1, 1).blend(Color(350, 1, 1, 1), Color(1, 1, 1, 1))
        assert c.h == pytest.approx(350)

    def test_blend_delta_of_minus_180_goes_forward(self) -> None:
        c = Color(270, 1, 1, 1).blend(Color(90, 1, 1, 1), Color(0.5, 0, 0, 0))
        assert c.h == pytest.approx(0)

    def test_blend_from_unsaturated_takes_target_hue(self) -> None:
        c = Color(0, 0, 0.5, 1).blend(Color(200, 1, 1, 1), Color(0, 0, 0, 0))
        assert c.h == 200
        assert c.s == 0

    def test_blend_toward_unsaturated_keeps_hue(self) -> None:
        c = Color(100, 1, 1, 1).blend(Color(0, 0, 1, 1), Color(1, 1, 1, 1))
        assert c.h == 100
        assert c.s == 0

    def test_copy_and_equality(self) -> None:
        a = Color(10, 0.5, 0.5, 1)
        b = a.copy()
        assert a == b
        b.h = 20
        assert a != b
        a.copy_from(b)
        assert a == b


class TestColorPool:
    def test_randomrgb_uses_three_draws(self) -> None:
        draws = FakeDraws(0.1, 0.2, 0.3)
        assert ColorPool("randomrgb").draw(draws) == RGBA(0.1, 0.2, 0.3, 1)
        assert draws.calls == 3

    def test_randomhue(self) -> None:
        draws = FakeDraws(0.5)
        assert ColorPool("randomhue").draw(draws) == pytest.approx((0, 1, 1, 1))
        assert draws.calls == 1

    def test_grayscale(self) -> None:
        assert ColorPool("grayscale").draw(FakeDraws(0.25)) == RGBA(0.25, 0.25, 0.25, 1)

    def test_bracket_list(self) -> None:
        pool = ColorPool("[red, blue]")
        assert pool.colors is not None and len(pool.colors) == 2
        assert pool.draw(FakeDraws(0.6)) == pytest.approx((0, 0, 1, 1))

    def test_prefixed_list(self) -> None:
        pool = ColorPool("list:red,#00ff00")
        assert pool.draw(FakeDraws(0.4)) == pytest.approx((1, 0, 0, 1))
        assert pool.draw(FakeDraws(0.9)) == pytest.approx((0, 1, 0, 1))

    def test_invalid_list(self) -> None:
        with pytest.raises(ValueError):
            ColorPool("[red, nope]")

    def test_hue_ramp(self) -> None:
        pool = ColorPool("randomhue:4")
        assert pool.colors is not None and len(pool.colors) == 4
        assert pool.draw(FakeDraws(0.3)) == pytest.approx((0.5, 1, 0, 1))

    def test_gray_ramp(self) -> None:
        pool = ColorPool("grayscale:5")
        assert pool.draw(FakeDraws(0.99)) == RGBA(1, 1, 1, 1)
        assert pool.draw(FakeDraws(0.0)) == RGBA(0, 0, 0, 1)

    def test_skip_matches_draw_counts(self) -> None:
        for scheme, expected in [
            ("randomrgb", 3),
            ("randomhue", 1),
            ("grayscale", 1),
            ("[red,blue]", 1),
            ("randomhue:6", 1),
        ]:
            draws = FakeDraws(0.5, 0.5, 0.5)
            ColorPool(scheme).skip(draws)
            assert draws.calls == expected, scheme

    def test_unknown_scheme_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="eisen.color"):
            pool = ColorPool("sparkly")
        assert "unknown colorpool" in caplog.text
        draws = FakeDraws(0.1, 0.2, 0.3)
        pool.draw(draws)
        assert draws.calls == 3

    def test_scheme_can_be_changed(self) -> None:
        pool = ColorPool()
        assert pool.scheme == "randomrgb"
        pool.scheme = "grayscale"
        assert pool.draw(FakeDraws(0.7)) == RGBA(0.7, 0.7, 0.7, 1)

    def test_pool_bound_color(self) -> None:
        c = Color.from_pool(ColorPool("grayscale"))
        assert c.to_rgba(FakeDraws(0.3)) == RGBA(0.3, 0.3, 0.3, 1)
        with pytest.raises(ValueError):
            c.to_rgba()
        draws = FakeDraws(0.3)
        c.skip(draws)
        assert draws.calls == 1

    def test_multiply_unbinds_pool(self) -> None:
        c = Color.from_pool(ColorPool())
        c.multiply(Color(0, 1, 1, 1))
        assert c.pool is None
