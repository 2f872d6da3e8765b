from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np

from .errors import MissingInput, ShapeMismatch
from .nms import NMSConfig, nms
from .types import BoundingBox, Prediction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionPostConfig:
    """
    Settings for turning raw (confidence, coordinates) outputs into predictions.
    """

    # Boxes whose best class score is <= this are dropped.
    conf_threshold: float = 0.25
    # Lower-ranked boxes with IoU > this against a kept box are dropped.
    nms_threshold: float = 0.5
    # True suppresses across classes (a person box can remove an overlapping
    # dog box). False runs suppression per class and merges by rank.
    class_agnostic_nms: bool = True
    # None emits every box that survives suppression.
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold < 1.0:
            raise ValueError("conf_threshold must be in [0, 1)")
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ValueError("nms_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")


def _as_tensor(name: str, value: Any) -> np.ndarray:
    if value is None:
        raise MissingInput(f"{name} tensor is required")
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ShapeMismatch(f"{name} tensor is not a numeric array") from exc
    # Single-image outputs often carry a batch axis of 1.
    if arr.ndim == 3 and arr.shape[0] == 1:
        arr = arr[0]
    return arr


def _num_boxes(name: str, arr: np.ndarray, width: Optional[int] = None) -> int:
    if arr.ndim == 1 and arr.size == 0:
        return 0
    if arr.ndim != 2:
        raise ShapeMismatch(f"{name} tensor must be 2-D, got shape {arr.shape}")
    if width is not None and arr.shape[1] != width:
        raise ShapeMismatch(f"{name} tensor must have {width} columns, got shape {arr.shape}")
    if arr.shape[0] > 0 and arr.shape[1] < 1:
        raise ShapeMismatch(f"{name} tensor has no columns, got shape {arr.shape}")
    return int(arr.shape[0])


class DetectionDecoder:
    """
    Post-process for SSD-style detector exports with two outputs:

    - confidence: (B, C) class scores per candidate box
    - coordinates: (B, 4) rows of [cx, cy, w, h], normalized to [0, 1]

    Steps: per-box arg-max -> threshold -> cxcywh to top-left xywh ->
    stable descending sort -> greedy suppression. Output predictions are in
    descending confidence order.
    """

    def __init__(self, cfg: DetectionPostConfig = DetectionPostConfig()):
        self.cfg = cfg

    def process(self, confidence: Any, coordinates: Any) -> List[Prediction]:
        boxes, scores, class_ids = self._decode(confidence, coordinates)
        if scores.size == 0:
            return []

        order = np.argsort(-scores, kind="stable")
        boxes, scores, class_ids = boxes[order], scores[order], class_ids[order]

        keep = self._apply_nms(boxes, class_ids)
        logger.debug("decode: %d candidates, %d kept", scores.size, keep.size)

        return [
            Prediction(
                label_index=int(class_ids[i]),
                confidence=float(scores[i]),
                bounding_box=BoundingBox(
                    x=float(boxes[i, 0]),
                    y=float(boxes[i, 1]),
                    width=float(boxes[i, 2]),
                    height=float(boxes[i, 3]),
                ),
            )
            for i in keep
        ]

    # ------------------------------------------------------------------ #
    # Helper internal
    # ------------------------------------------------------------------ #
    def _decode(self, confidence: Any, coordinates: Any) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Validate both tensors and return thresholded candidates in box order as
        (boxes_xywh, scores, class_ids).
        """

        conf = _as_tensor("confidence", confidence)
        coords = _as_tensor("coordinates", coordinates)

        n_conf = _num_boxes("confidence", conf)
        n_coords = _num_boxes("coordinates", coords, width=4)
        if n_conf != n_coords:
            raise ShapeMismatch(
                f"confidence has {n_conf} boxes but coordinates has {n_coords} (shapes {conf.shape} vs {coords.shape})"
            )

        empty = (np.empty((0, 4)), np.empty((0,)), np.empty((0,), dtype=np.int64))
        if n_conf == 0:
            return empty

        # Running max starts at 0.0 with index 0, so ties keep the lowest class
        # and rows with no positive score resolve to class 0 at 0.0.
        positive = np.where(conf > 0.0, conf, 0.0)
        class_ids = np.argmax(positive, axis=1)
        scores = positive[np.arange(n_conf), class_ids]

        mask = scores > self.cfg.conf_threshold
        if not mask.any():
            return empty

        cx, cy, w, h = coords[mask].T
        boxes = np.stack([cx - w / 2, cy - h / 2, w, h], axis=1)
        return boxes, scores[mask], class_ids[mask]

    def _apply_nms(self, boxes: np.ndarray, class_ids: np.ndarray) -> np.ndarray:
        nms_cfg = NMSConfig(iou_threshold=self.cfg.nms_threshold, max_detections=self.cfg.max_detections)

        if self.cfg.class_agnostic_nms:
            return nms(boxes, nms_cfg)

        per_class_cfg = NMSConfig(iou_threshold=self.cfg.nms_threshold)
        kept: List[int] = []
        for cls in np.unique(class_ids):
            idx = np.where(class_ids == cls)[0]
            keep_local = nms(boxes[idx], per_class_cfg)
            kept.extend(idx[keep_local].tolist())

        # Inputs are already ranked, so index order is rank order.
        keep = np.array(sorted(kept), dtype=np.int32)
        if self.cfg.max_detections is not None:
            keep = keep[: self.cfg.max_detections]
        return keep


def decode(
    confidence: Any,
    coordinates: Any,
    confidence_threshold: float = 0.25,
    nms_threshold: float = 0.5,
) -> List[Prediction]:
    """
    Decode one frame of detector output into ranked, de-duplicated predictions.

    Args:
        confidence: (B, C) class scores
        coordinates: (B, 4) normalized [cx, cy, w, h]
        confidence_threshold: scores at or below are dropped
        nms_threshold: IoU strictly above suppresses the lower-ranked box

    Raises:
        MissingInput: a tensor is None
        ShapeMismatch: wrong rank or the tensors disagree on B
    """

    cfg = DetectionPostConfig(conf_threshold=confidence_threshold, nms_threshold=nms_threshold)
    return DetectionDecoder(cfg).process(confidence, coordinates)
