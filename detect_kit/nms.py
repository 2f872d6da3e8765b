from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .types import BoundingBox


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every box that survives suppression.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")


def box_iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Overlap ratio of two boxes.

    The denominator is the area of the rectangle enclosing both boxes, not
    area(a) + area(b) - intersection. For (0, 0, 10, 10) vs (5, 5, 10, 10)
    this gives 25 / 225 rather than 25 / 175. Returns 0.0 when the enclosing
    rectangle has no area.
    """

    inter = a.intersection(b)
    union_area = a.union(b).area
    if union_area <= 0:
        return 0.0
    return float(inter.width * inter.height / union_area)


def iou_one_to_many(box: np.ndarray, boxes: np.ndarray) -> np.ndarray:
    """
    Vectorized `box_iou` of one (4,) xywh box against (N, 4) xywh boxes.
    """

    box = np.asarray(box, dtype=np.float64)
    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)

    ax1 = min(box[0], box[0] + box[2])
    ax2 = max(box[0], box[0] + box[2])
    ay1 = min(box[1], box[1] + box[3])
    ay2 = max(box[1], box[1] + box[3])

    bx1 = np.minimum(boxes[:, 0], boxes[:, 0] + boxes[:, 2])
    bx2 = np.maximum(boxes[:, 0], boxes[:, 0] + boxes[:, 2])
    by1 = np.minimum(boxes[:, 1], boxes[:, 1] + boxes[:, 3])
    by2 = np.maximum(boxes[:, 1], boxes[:, 1] + boxes[:, 3])

    inter_w = np.maximum(0.0, np.minimum(ax2, bx2) - np.maximum(ax1, bx1))
    inter_h = np.maximum(0.0, np.minimum(ay2, by2) - np.maximum(ay1, by1))
    inter = inter_w * inter_h

    union = (np.maximum(ax2, bx2) - np.minimum(ax1, bx1)) * (np.maximum(ay2, by2) - np.minimum(ay1, by1))
    return np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)


def nms(boxes: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NMS over boxes that are already sorted by descending score.
    Expects boxes shape (N, 4) in xywh. Returns kept indices in rank order.

    A box is suppressed when its IoU with an earlier kept box is strictly
    greater than `cfg.iou_threshold`; a suppressed box never suppresses others.
    """

    boxes = np.asarray(boxes, dtype=np.float64)
    if boxes.size == 0:
        return np.empty((0,), dtype=np.int32)
    boxes = boxes.reshape(-1, 4)

    n = boxes.shape[0]
    keep = np.ones(n, dtype=bool)
    kept = []

    for i in range(n):
        if not keep[i]:
            continue
        kept.append(i)
        if cfg.max_detections is not None and len(kept) >= cfg.max_detections:
            break
        if i + 1 < n:
            ious = iou_one_to_many(boxes[i], boxes[i + 1 :])
            keep[i + 1 :] &= ~(ious > cfg.iou_threshold)

    return np.array(kept, dtype=np.int32)
