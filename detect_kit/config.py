from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .classification import rank_classifications
from .metadata import load_class_names
from .postprocess import DetectionPostConfig
from .types import Classification


@dataclass(frozen=True)
class DetectorProfile:
    schema_version: int
    confidence_threshold: float = 0.25
    nms_threshold: float = 0.5
    class_agnostic_nms: bool = True
    max_detections: Optional[int] = None
    classification_top_k: int = 5
    classification_min_confidence: float = 0.3
    labels_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector profile schema_version must be 1")
        if not 0.0 <= self.confidence_threshold < 1.0:
            raise ValueError("confidence_threshold must be in [0, 1)")
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ValueError("nms_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")
        if self.classification_top_k < 1:
            raise ValueError("classification_top_k must be >= 1")
        if not 0.0 <= self.classification_min_confidence < 1.0:
            raise ValueError("classification_min_confidence must be in [0, 1)")

    def post_config(self) -> DetectionPostConfig:
        return DetectionPostConfig(
            conf_threshold=self.confidence_threshold,
            nms_threshold=self.nms_threshold,
            class_agnostic_nms=self.class_agnostic_nms,
            max_detections=self.max_detections,
        )

    def class_names(self) -> Dict[int, str]:
        """Names from `labels_path`, or an empty mapping when none is set."""
        if self.labels_path is None:
            return {}
        return load_class_names(self.labels_path)

    def rank(self, scores: Any) -> List[Classification]:
        return rank_classifications(
            scores,
            self.class_names(),
            top_k=self.classification_top_k,
            min_confidence=self.classification_min_confidence,
        )


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = payload.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_detector_profile(path: Path) -> DetectorProfile:
    """
    Load a JSON detector profile. Unknown keys are rejected; `labels_path`
    is resolved relative to the profile's directory.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = {
        "schema_version",
        "confidence_threshold",
        "nms_threshold",
        "class_agnostic_nms",
        "max_detections",
        "classification_top_k",
        "classification_min_confidence",
        "labels_path",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    class_agnostic_nms = payload.get("class_agnostic_nms", True)
    if not isinstance(class_agnostic_nms, bool):
        raise ValueError("class_agnostic_nms must be a boolean")

    labels_path = payload.get("labels_path")
    if labels_path is not None:
        if not isinstance(labels_path, str):
            raise ValueError("labels_path must be a string if provided")
        labels_path = Path(labels_path)
        if not labels_path.is_absolute():
            labels_path = (path.parent / labels_path).resolve()

    top_k = _optional_int(payload, "classification_top_k", 5)
    if top_k is None:
        raise ValueError("classification_top_k must be an integer")

    return DetectorProfile(
        schema_version=_require_int(payload, "schema_version"),
        confidence_threshold=_optional_number(payload, "confidence_threshold", 0.25),
        nms_threshold=_optional_number(payload, "nms_threshold", 0.5),
        class_agnostic_nms=class_agnostic_nms,
        max_detections=_optional_int(payload, "max_detections", None),
        classification_top_k=top_k,
        classification_min_confidence=_optional_number(payload, "classification_min_confidence", 0.3),
        labels_path=labels_path,
    )
