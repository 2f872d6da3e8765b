"""
Post-processing for on-device object detection and classification outputs.

Turns raw (confidence, coordinates) tensors from an SSD-style detector into
ranked, de-duplicated `Prediction`s, and classifier scores into a ranked
label list. Model loading, camera capture and drawing stay with the caller;
the only runtime dependency is NumPy.
"""

from .types import BoundingBox, Classification, Prediction
from .errors import DecodeError, MissingInput, ShapeMismatch
from .nms import NMSConfig, box_iou, iou_one_to_many, nms
from .postprocess import DetectionDecoder, DetectionPostConfig, decode
from .classification import rank_classifications
from .metadata import load_class_names
from .config import DetectorProfile, load_detector_profile
from .runtime import DetectionPipeline

__all__ = [
    "BoundingBox",
    "Classification",
    "Prediction",
    "DecodeError",
    "MissingInput",
    "ShapeMismatch",
    "NMSConfig",
    "box_iou",
    "iou_one_to_many",
    "nms",
    "DetectionDecoder",
    "DetectionPostConfig",
    "decode",
    "rank_classifications",
    "load_class_names",
    "DetectorProfile",
    "load_detector_profile",
    "DetectionPipeline",
]
