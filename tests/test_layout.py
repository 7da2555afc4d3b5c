import numpy as np
import pytest

from booth.composite import CellPolicy, GridSpec, get_grid, layout, page_size_for
from booth.composite.geometry import cell_position, cover_size, fit_rect, inches_to_px, shrink_to_bounds
from booth.errors import AssetLoadFailure, InvalidGridSpec, InvalidPhotoCount
from conftest import solid

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
YELLOW = (255, 255, 0, 255)
WHITE = (255, 255, 255, 255)


def four_photos(width=80, height=60):
    return [solid(width, height, c) for c in (RED, GREEN, BLUE, YELLOW)]


def test_dpi_conversion():
    assert inches_to_px(4, 300) == 1200
    assert inches_to_px(6, 300) == 1800
    assert inches_to_px(0.5, 300) == 150
    assert inches_to_px(0.7, 300) == 210


def test_column_major_positions():
    assert [cell_position(i, 2) for i in range(4)] == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert [cell_position(i, 3) for i in range(6)] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]


def test_four_cut_fills_column_by_column():
    composite = layout(four_photos(), get_grid("4x6-4cut"))

    assert composite.size == (1199, 1799)
    px = composite.pixels
    # cells are 592x892 with a 5px gap
    assert tuple(px[300, 300]) == RED
    assert tuple(px[1200, 300]) == GREEN
    assert tuple(px[300, 900]) == BLUE
    assert tuple(px[1200, 900]) == YELLOW


def test_gaps_stay_white():
    px = layout(four_photos(), get_grid("4x6-4cut")).pixels

    assert tuple(px[2, 2]) == WHITE
    assert tuple(px[300, 599]) == WHITE
    assert tuple(px[899, 300]) == WHITE


def test_cover_fills_every_cell_edge_to_edge():
    px = layout(four_photos(), get_grid("4x6-4cut"), policy=CellPolicy.COVER).pixels

    first_cell = px[5:5 + 892, 5:5 + 592]
    assert np.all(first_cell == np.array(RED, dtype=np.uint8))


def test_fit_grows_cells_instead_of_cropping():
    composite = layout(four_photos(), get_grid("4x6-4cut"), policy="fit")

    # 4:3 photos need 1189px wide cells at 892px height
    assert composite.size == (2393, 1799)
    assert tuple(composite.pixels[5, 5]) == RED
    assert tuple(composite.pixels[5 + 891, 5 + 1188]) == RED


def test_single_and_two_cut_sizes():
    single = layout([solid(40, 60, RED)], get_grid("4x6-single"))
    two_cut = layout(four_photos()[:2], get_grid("4x6-2cut"))

    assert single.size == (1200, 1800)
    assert two_cut.size == (1200, 1799)
    assert tuple(two_cut.pixels[1200, 600]) == GREEN


def test_wrong_photo_count_is_rejected():
    with pytest.raises(InvalidPhotoCount):
        layout(four_photos()[:3], get_grid("4x6-4cut"))
    with pytest.raises(InvalidPhotoCount):
        layout([], get_grid("4x6-single"))


def test_grid_without_dimensions_is_rejected():
    with pytest.raises(InvalidGridSpec):
        layout(four_photos(), GridSpec("custom", 0, 0))


def test_undecodable_photo_fails_before_composite():
    with pytest.raises(AssetLoadFailure):
        layout([b"not an image"], get_grid("4x6-single"))


def test_composite_is_read_only():
    composite = layout([solid(10, 10, RED)], get_grid("4x6-single"))
    with pytest.raises(ValueError):
        composite.pixels[0, 0, 0] = 0


def test_composite_encodes_as_jpeg():
    composite = layout([solid(10, 10, RED)], get_grid("4x6-single"))
    assert composite.encode()[:2] == b"\xff\xd8"
    assert composite.to_data_url().startswith("data:image/jpeg;base64,")


def test_page_size_snaps_unknown_grids():
    assert page_size_for(GridSpec("custom-2x2", 2, 2)).name == "4x6"
    assert page_size_for(GridSpec("custom-3x3", 3, 3)).name == "8x10"
    assert page_size_for(GridSpec("poster", 1, 1, 5, 7)).name == "5x7"
    assert page_size_for(GridSpec("5x7-6cut", 2, 3)).name == "4x6"


def test_grid_from_ui_payload():
    grid = GridSpec.from_dict({"id": "strip-grid", "cols": 1, "rows": 4, "isStripGrid": True})
    assert grid.strip
    assert grid.total_cells == 4


def test_geometry_helpers():
    assert cover_size(100, 50, 60, 60) == (120, 60)
    rect = fit_rect(100, 50, 60, 60)
    assert (rect.x, rect.y, rect.width, rect.height) == (0, 15, 60, 30)
    assert shrink_to_bounds(800, 400, 200, 200) == (200, 100)
    assert shrink_to_bounds(100, 50, 200, 200) == (100, 50)
