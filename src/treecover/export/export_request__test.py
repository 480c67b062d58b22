import pytest

from treecover.errors import ExportTooLargeError
from treecover.export.export_request import (
    DEFAULT_MAX_PIXELS,
    METRES_PER_DEGREE,
    ExportRequest,
    cell_count,
    check_pixel_limit,
    estimate_pixel_count,
    pixel_size_degrees,
)


def _request(**overrides) -> ExportRequest:
    fields = {
        "image": object(),
        "description": "Northern_Treecover_2024",
        "file_name_prefix": "Northern_Treecover_2024",
        "region": object(),
        "scale": 30.0,
        "max_pixels": DEFAULT_MAX_PIXELS,
    }
    return ExportRequest(**(fields | overrides))


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"description": ""}, "description must not be empty"),
        ({"file_name_prefix": ""}, "prefix must not be empty"),
        ({"scale": 0.0}, "scale must be positive"),
        ({"scale": -30.0}, "scale must be positive"),
        ({"max_pixels": 0}, "max_pixels must be positive"),
    ],
)
def test__ExportRequest__invalid__raises(overrides, message) -> None:
    with pytest.raises(ValueError, match=message):
        _request(**overrides)


def test__pixel_size_degrees__one_degree_of_equator() -> None:
    assert pixel_size_degrees(METRES_PER_DEGREE) == pytest.approx(1.0)
    assert METRES_PER_DEGREE == pytest.approx(111_319.49, abs=0.01)


def test__cell_count__exact_multiple__no_extra_pixel() -> None:
    assert cell_count(1.0, 0.1) == 10
    assert cell_count(1.05, 0.1) == 11
    assert cell_count(0.0, 0.1) == 1


def test__estimate_pixel_count__one_degree() -> None:
    # 1000 m is about 0.00898 degrees, so a degree needs 111.3 pixels.
    count = estimate_pixel_count((0.0, 0.0, 1.0, 1.0), 1000.0)

    assert count == 112 * 112


def test__estimate_pixel_count__crossing_equator() -> None:
    assert estimate_pixel_count((0.0, -1.0, 1.0, 1.0), 1000.0) == 112 * 223


def test__estimate_pixel_count__same_at_any_latitude() -> None:
    # Degree pixels get narrower in metres towards the poles, but not fewer.
    equator = estimate_pixel_count((0.0, 0.0, 1.0, 1.0), 1000.0)
    northern = estimate_pixel_count((0.0, 60.0, 1.0, 61.0), 1000.0)

    assert northern == equator


def test__estimate_pixel_count__tiny_region__at_least_one_pixel() -> None:
    assert estimate_pixel_count((80.0, 9.0, 80.0000001, 9.0000001), 30.0) == 1


def test__check_pixel_limit__at_limit__passes() -> None:
    check_pixel_limit(100, _request(max_pixels=100))


def test__check_pixel_limit__over_limit__raises() -> None:
    with pytest.raises(ExportTooLargeError, match="more than the limit of 100"):
        check_pixel_limit(101, _request(max_pixels=100))
