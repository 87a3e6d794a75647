import pytest

from nerfbox.pixels import from_u8_rgb, prediction_array_as_u32, rgba_to_u8_array


def test_from_u8_rgb_layout():
    assert from_u8_rgb(0x12, 0x34, 0x56) == 0x123456


@pytest.mark.parametrize("rgb", [(0, 0, 0), (255, 255, 255), (1, 128, 254), (200, 3, 77)])
def test_round_trip(rgb):
    assert rgba_to_u8_array(from_u8_rgb(*rgb)) == rgb


def test_rgba_to_u8_array_ignores_high_byte():
    assert rgba_to_u8_array(0xAB000000 | from_u8_rgb(9, 8, 7)) == (9, 8, 7)


def test_prediction_white_and_black():
    assert prediction_array_as_u32([1.0, 1.0, 1.0, 1.0]) == 0xFFFFFF
    assert prediction_array_as_u32([0.0, 0.0, 0.0, 1.0]) == 0


def test_prediction_saturates_and_nan_is_zero():
    assert prediction_array_as_u32([2.0, -1.0, float("nan"), 1.0]) == from_u8_rgb(255, 0, 0)


def test_prediction_truncates():
    assert prediction_array_as_u32([0.5, 0.0, 0.0, 0.0]) == from_u8_rgb(127, 0, 0)