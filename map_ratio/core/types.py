"""Shared types for map_ratio: Bitmap input, CategoryStat and AnalysisResult output."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any

from PIL import Image

from map_ratio.core.errors import MalformedInputError

CHANNELS = 4  # R, G, B, A


@dataclass(frozen=True)
class Bitmap:
    """A decoded image: row-major RGBA8 pixels, 4 bytes per pixel.

    Owned by the caller. The engine only reads ``data``.
    """

    width: int
    height: int
    data: bytes = field(repr=False)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @classmethod
    def from_image(cls, image: Image.Image) -> Bitmap:
        """Build from a PIL image in any mode (converted to RGBA)."""
        rgba = image if image.mode == 'RGBA' else image.convert('RGBA')
        return cls(width=rgba.width, height=rgba.height, data=rgba.tobytes())

    @classmethod
    def from_pixels(cls, width: int, height: int, pixels: Iterable[tuple[int, int, int, int]]) -> Bitmap:
        """Build from an iterable of (r, g, b, a) tuples in row-major order."""
        try:
            data = bytes(channel for px in pixels for channel in px)
        except (TypeError, ValueError) as e:
            raise MalformedInputError(f'pixel channels must be integers in 0..255: {e}') from e
        return cls(width=width, height=height, data=data)


@dataclass(frozen=True)
class CategoryStat:
    """Count and share of one category within the processed (non-excluded) pixels."""

    id: str
    name: str
    display_color: str  # hex, display hint only
    count: int
    percentage: float


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one classification run. Holds no reference to the bitmap."""

    width: int
    height: int
    total_pixels: int
    excluded_pixels: int
    processed_pixels: int
    categories: tuple[CategoryStat, ...] = ()

    @property
    def coverage_pct(self) -> float:
        """Share of the image that is map area, i.e. not excluded."""
        return 100.0 * self.processed_pixels / max(self.total_pixels, 1)

    def get(self, category_id: str) -> CategoryStat:
        for stat in self.categories:
            if stat.id == category_id:
                return stat
        raise KeyError(f'Unknown category: {category_id}. Available: {", ".join(s.id for s in self.categories)}')

    def dominant(self) -> CategoryStat | None:
        """Category with the highest count, first in output order on ties."""
        if self.processed_pixels == 0:
            return None
        return max(self.categories, key=lambda s: s.count)

    def as_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d['categories'] = [asdict(s) for s in self.categories]
        return d
