"""Grid layouts offered by the kiosk and the print page each one targets."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

STRIP_GRID_ID = "strip-grid"
STRIP_GRID_CELLS = 4

DEFAULT_PAGE = (4.0, 6.0)

# Standard photo print sizes, used to snap grids without a declared page
STANDARD_PRINT_SIZES = [
    (2.0, 4.0, "2x4"),
    (4.0, 6.0, "4x6"),
    (5.0, 7.0, "5x7"),
    (8.0, 10.0, "8x10"),
]

# Legacy ids from earlier kiosk builds still map onto the 4x6 page
_PRESET_PAGES = {
    "4x6-single", "4x6-2cut", "4x6-4cut", "4x6-6cut", STRIP_GRID_ID,
    "5x5-single", "2x4-vertical-2", "5x7-6cut",
}


@dataclass(frozen=True)
class PageSize:
    width_inches: float
    height_inches: float
    name: str


@dataclass(frozen=True)
class GridSpec:
    id: str
    cols: int
    rows: int
    physical_width_inches: Optional[float] = None
    physical_height_inches: Optional[float] = None
    is_strip_grid: bool = False
    name: str = ""

    @property
    def strip(self) -> bool:
        return self.is_strip_grid or self.id == STRIP_GRID_ID

    @property
    def total_cells(self) -> int:
        if self.strip:
            return STRIP_GRID_CELLS
        return (self.cols or 0) * (self.rows or 0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GridSpec":
        """Build from a session payload (accepts the kiosk UI's camelCase keys)."""
        return cls(
            id=str(data.get("id", "")),
            cols=int(data.get("cols") or 0),
            rows=int(data.get("rows") or 0),
            physical_width_inches=data.get("physical_width_inches", data.get("printWidth")),
            physical_height_inches=data.get("physical_height_inches", data.get("printHeight")),
            is_strip_grid=bool(data.get("is_strip_grid", data.get("isStripGrid", False))),
            name=str(data.get("name", "")),
        )


GRID_PRESETS: Dict[str, GridSpec] = {
    g.id: g
    for g in (
        GridSpec("4x6-single", 1, 1, 4.0, 6.0, name="SINGLE"),
        GridSpec("4x6-2cut", 1, 2, 4.0, 6.0, name="2 CUT"),
        GridSpec("4x6-4cut", 2, 2, 4.0, 6.0, name="4 CUT"),
        GridSpec("4x6-6cut", 2, 3, 4.0, 6.0, name="6 CUT"),
        GridSpec(STRIP_GRID_ID, 1, 4, 4.0, 6.0, is_strip_grid=True, name="STRIP"),
    )
}


def get_grid(grid_id: str) -> GridSpec:
    try:
        return GRID_PRESETS[grid_id]
    except KeyError:
        raise KeyError(f"Unknown grid '{grid_id}'. Choose from: {', '.join(GRID_PRESETS)}") from None


def page_size_for(grid: Optional[GridSpec]) -> PageSize:
    """
    Physical page for a grid: its declared size, else the preset page, else a
    size derived from 2x3in cells with 0.1in margins snapped to the closest
    standard print.
    """
    if grid is None:
        return PageSize(*DEFAULT_PAGE, "4x6")

    if grid.physical_width_inches and grid.physical_height_inches:
        w, h = float(grid.physical_width_inches), float(grid.physical_height_inches)
        return PageSize(w, h, f"{w:g}x{h:g}")

    if grid.id in _PRESET_PAGES:
        return PageSize(*DEFAULT_PAGE, "4x6")

    cols = grid.cols or 1
    rows = grid.rows or 1
    margin = 0.1
    width = 2.0 * cols + margin * (cols - 1)
    height = 3.0 * rows + margin * (rows - 1)

    w, h, name = min(STANDARD_PRINT_SIZES, key=lambda s: abs(width - s[0]) + abs(height - s[1]))
    return PageSize(w, h, name)
