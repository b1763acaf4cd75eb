# tests/test_rect_projector.py

import pytest

from pdf_locator.domain.models import LayoutRect, ProductCoordinates, TextFragment
from pdf_locator.domain.rect_projector import RectProjector


CONTAINER = LayoutRect(left=100, top=200, width=1000, height=2000)


def _make_fragment(fid: str, rect) -> TextFragment:
    return TextFragment(fragment_id=fid, raw_text=fid, layout_rect=rect)


def test_union_is_expressed_in_container_percentages():
    fragments = [
        _make_fragment("a", LayoutRect(200, 400, 100, 100)),
        _make_fragment("b", LayoutRect(350, 450, 150, 100)),
    ]

    rect = RectProjector().project(fragments, CONTAINER)

    assert rect.left == pytest.approx(10.0)
    assert rect.top == pytest.approx(10.0)
    assert rect.width == pytest.approx(30.0)
    assert rect.height == pytest.approx(7.5)


def test_small_regions_are_floored_at_two_percent():
    fragments = [_make_fragment("a", LayoutRect(600, 1200, 5, 10))]

    rect = RectProjector().project(fragments, CONTAINER)

    assert rect.width == pytest.approx(2.0)
    assert rect.height == pytest.approx(2.0)
    assert rect.left == pytest.approx(50.0)


def test_percentages_survive_zoom():
    fragment_at_1x = [_make_fragment("a", LayoutRect(300, 600, 200, 40))]
    fragment_at_2x = [_make_fragment("a", LayoutRect(400, 800, 400, 80))]
    zoomed_container = LayoutRect(left=0, top=0, width=2000, height=4000)

    assert RectProjector().project(fragment_at_1x, CONTAINER) == \
        RectProjector().project(fragment_at_2x, zoomed_container)


def test_unmeasurable_fragments_are_skipped():
    fragments = [
        _make_fragment("detached", None),
        _make_fragment("ok", LayoutRect(200, 400, 100, 100)),
    ]

    def measure(fragment):
        if fragment.layout_rect is None:
            raise RuntimeError("node detached")
        return fragment.layout_rect

    rect = RectProjector().project(fragments, CONTAINER, measure=measure)

    assert rect.left == pytest.approx(10.0)
    assert rect.width == pytest.approx(10.0)


def test_nothing_measurable_returns_none():
    fragments = [_make_fragment("a", None)]
    assert RectProjector().project(fragments, CONTAINER) is None


def test_zero_sized_container_returns_none():
    fragments = [_make_fragment("a", LayoutRect(0, 0, 10, 10))]
    assert RectProjector().project(fragments, LayoutRect(0, 0, 0, 100)) is None


# ── Recorded coordinates ──────────────────────────────────────────────────────

def test_coordinates_with_size_are_centred_on_point():
    coordinates = ProductCoordinates(page=1, x=50, y=40, width=20, height=10)

    rect = RectProjector().project_coordinates(coordinates, "Cuaderno", CONTAINER)

    assert rect.left == pytest.approx(40.0)
    assert rect.top == pytest.approx(35.0)
    assert rect.width == pytest.approx(20.0)
    assert rect.height == pytest.approx(10.0)


def test_missing_size_is_approximated():
    coordinates = ProductCoordinates(page=1, x=50, y=40)

    rect = RectProjector().project_coordinates(coordinates, "Cuaderno", LayoutRect(0, 0, 800, 1000))

    # 8 chars * 0.75 + 5 = 11% wide, 30px of a 1000px page = 3% high
    assert rect.width == pytest.approx(11.0)
    assert rect.height == pytest.approx(3.0)
    assert rect.left == pytest.approx(44.5)
    assert rect.top == pytest.approx(38.5)


def test_approximate_width_is_capped():
    coordinates = ProductCoordinates(page=1, x=50, y=50)
    rect = RectProjector().project_coordinates(coordinates, "x" * 200, CONTAINER)
    assert rect.width == pytest.approx(45.0)


def test_coordinates_without_position_return_none():
    coordinates = ProductCoordinates(page=3)
    assert RectProjector().project_coordinates(coordinates, "Cuaderno", CONTAINER) is None
