from __future__ import annotations

from dataclasses import dataclass

from ..config import (
    DUNGEON_BANNER_FRACTIONS,
    MODE_BANNER_FRACTIONS,
    PLAYER_COLUMN_FRACTIONS,
    TABLE_FRACTIONS,
    TABLE_ROW_COUNT,
    VALUE_COLUMN_FRACTIONS,
    WEEK_BANNER_FRACTIONS,
)
from .errors import LayoutError

Fractions = tuple[float, float, float, float]


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def clamp(self, image_width: int, image_height: int) -> Rect:
        x = max(0, self.x)
        y = max(0, self.y)
        width = min(self.width, image_width - x)
        height = min(self.height, image_height - y)
        if width <= 0 or height <= 0:
            return Rect(0, 0, 0, 0)
        return Rect(x, y, width, height)


@dataclass(frozen=True)
class LayoutSpec:
    dungeon_banner: Fractions = DUNGEON_BANNER_FRACTIONS
    mode_banner: Fractions = MODE_BANNER_FRACTIONS
    week_banner: Fractions = WEEK_BANNER_FRACTIONS
    table: Fractions = TABLE_FRACTIONS
    player_column: tuple[float, float] = PLAYER_COLUMN_FRACTIONS
    value_column: tuple[float, float] = VALUE_COLUMN_FRACTIONS
    row_count: int = TABLE_ROW_COUNT


@dataclass(frozen=True)
class RowRegions:
    index: int
    band: Rect
    players: Rect
    value: Rect


class RegionLayout:
    """Maps a screenshot size to the absolute rectangles of each region.

    The fractions are a contract with the game's leaderboard renderer, so
    nothing here adapts to the image content. The table area is cut into
    ``row_count`` equal-height bands; any remainder pixels stay below the
    last band.
    """

    def __init__(self, width: int, height: int, spec: LayoutSpec | None = None) -> None:
        if width <= 0 or height <= 0:
            raise LayoutError(f"invalid image size: {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.spec = spec or LayoutSpec()
        if self.spec.row_count <= 0:
            raise LayoutError(f"invalid row count: {self.spec.row_count}")

    @classmethod
    def for_image(cls, image: object, spec: LayoutSpec | None = None) -> RegionLayout:
        shape = getattr(image, "shape", None)
        if shape is None or len(shape) < 2:
            raise LayoutError("image has no usable shape")
        return cls(width=int(shape[1]), height=int(shape[0]), spec=spec)

    def _scale(self, fractions: Fractions) -> Rect:
        fx, fy, fw, fh = fractions
        return Rect(
            x=int(round(fx * self.width)),
            y=int(round(fy * self.height)),
            width=int(round(fw * self.width)),
            height=int(round(fh * self.height)),
        )

    def dungeon_banner(self) -> Rect:
        return self._scale(self.spec.dungeon_banner)

    def mode_banner(self) -> Rect:
        return self._scale(self.spec.mode_banner)

    def week_banner(self) -> Rect:
        return self._scale(self.spec.week_banner)

    def table(self) -> Rect:
        return self._scale(self.spec.table)

    @property
    def row_count(self) -> int:
        return self.spec.row_count

    def row(self, index: int) -> RowRegions:
        if index < 0 or index >= self.row_count:
            raise LayoutError(f"row index {index} outside 0..{self.row_count - 1}")
        table = self.table()
        band_height = table.height // self.row_count
        band = Rect(table.x, table.y + index * band_height, table.width, band_height)

        px, pw = self.spec.player_column
        vx, vw = self.spec.value_column
        players = Rect(
            x=int(round(px * self.width)),
            y=band.y,
            width=int(round(pw * self.width)),
            height=band.height,
        )
        value = Rect(
            x=int(round(vx * self.width)),
            y=band.y,
            width=int(round(vw * self.width)),
            height=band.height,
        )
        return RowRegions(index=index, band=band, players=players, value=value)

    def rows(self) -> list[RowRegions]:
        return [self.row(idx) for idx in range(self.row_count)]
