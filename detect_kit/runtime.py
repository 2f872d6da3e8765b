from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple

from .errors import DecodeError
from .postprocess import DetectionDecoder, DetectionPostConfig
from .types import Prediction

logger = logging.getLogger(__name__)

InferFn = Callable[[Any], Tuple[Any, Any]]
PredictionsCallback = Callable[[List[Prediction]], None]


class DetectionPipeline:
    """
    Frame -> inference -> decode, with at most one frame in flight.

    `infer_fn(frame)` must return `(confidence, coordinates)`. Frames passed to
    `submit` while another frame is still being processed are dropped, not
    queued, so a slow model never builds up latency behind the camera.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        *,
        post_cfg: DetectionPostConfig = DetectionPostConfig(),
        on_predictions: Optional[PredictionsCallback] = None,
    ):
        self._infer_fn = infer_fn
        self.post = DetectionDecoder(post_cfg)
        self._on_predictions = on_predictions
        self._lock = threading.Lock()
        self._in_flight = False
        self.dropped_frames = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="detect")

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._in_flight

    def run(self, frame: Any) -> List[Prediction]:
        """
        Synchronously infer and decode one frame.
        """

        confidence, coordinates = self._infer_fn(frame)
        return self.post.process(confidence, coordinates)

    def submit(self, frame: Any) -> bool:
        """
        Hand a frame to the background worker. Returns False if the frame was
        dropped because another one is still in flight.
        """

        with self._lock:
            if self._in_flight:
                self.dropped_frames += 1
                logger.debug("Frame dropped, detector busy (dropped=%d)", self.dropped_frames)
                return False
            self._in_flight = True

        try:
            self._executor.submit(self._process, frame)
        except RuntimeError:
            # Executor already shut down.
            self._release()
            raise
        return True

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "DetectionPipeline":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _process(self, frame: Any) -> None:
        try:
            try:
                predictions = self.run(frame)
            except DecodeError as exc:
                logger.warning("Skipping frame, model output could not be decoded: %s", exc)
                return
            except Exception:
                logger.exception("Frame processing failed")
                raise
            if self._on_predictions is not None:
                try:
                    self._on_predictions(predictions)
                except Exception:
                    logger.exception("Predictions callback failed")
        finally:
            self._release()

    def _release(self) -> None:
        with self._lock:
            self._in_flight = False
