from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned rectangle in normalized image coordinates.

    (x, y) is the top-left corner. Width/height are expected to be >= 0, but
    extents are computed with min/max so a negative size still describes the
    same rectangle.
    """

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, cx: float, cy: float, width: float, height: float) -> "BoundingBox":
        return cls(x=cx - width / 2, y=cy - height / 2, width=width, height=height)

    @property
    def min_x(self) -> float:
        return min(self.x, self.x + self.width)

    @property
    def min_y(self) -> float:
        return min(self.y, self.y + self.height)

    @property
    def max_x(self) -> float:
        return max(self.x, self.x + self.width)

    @property
    def max_y(self) -> float:
        return max(self.y, self.y + self.height)

    @property
    def area(self) -> float:
        return (self.max_x - self.min_x) * (self.max_y - self.min_y)

    def intersection(self, other: "BoundingBox") -> "BoundingBox":
        """
        Overlap rectangle. Sizes are clamped to zero when the boxes are disjoint.
        """

        x1 = max(self.min_x, other.min_x)
        y1 = max(self.min_y, other.min_y)
        x2 = min(self.max_x, other.max_x)
        y2 = min(self.max_y, other.max_y)
        return BoundingBox(x=x1, y=y1, width=max(0.0, x2 - x1), height=max(0.0, y2 - y1))

    def union(self, other: "BoundingBox") -> "BoundingBox":
        """
        Smallest rectangle enclosing both boxes (not the set union).
        """

        x1 = min(self.min_x, other.min_x)
        y1 = min(self.min_y, other.min_y)
        x2 = max(self.max_x, other.max_x)
        y2 = max(self.max_y, other.max_y)
        return BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.min_x, self.min_y, self.max_x, self.max_y

    def to_pixels(self, view_width: float, view_height: float) -> "BoundingBox":
        """
        Scale to a view of the given size, e.g. to position an overlay.
        """

        return BoundingBox(
            x=self.x * view_width,
            y=self.y * view_height,
            width=self.width * view_width,
            height=self.height * view_height,
        )


@dataclass(frozen=True)
class Prediction:
    """
    One detection emitted by the decoder.
    """

    label_index: int
    confidence: float
    bounding_box: BoundingBox


@dataclass(frozen=True)
class Classification:
    identifier: str
    confidence: float
