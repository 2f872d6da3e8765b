from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from detect_kit import DetectionDecoder, DetectionPostConfig


@dataclass(frozen=True)
class DecodeTimings:
    samples: int
    mean_ms: float
    median_ms: float
    p90_ms: float
    p99_ms: float


def _timings_ms(values_s: List[float]) -> DecodeTimings:
    if not values_s:
        raise ValueError("No timing samples recorded.")
    ms = np.asarray(values_s, dtype=np.float64) * 1000.0
    median, p90, p99 = np.percentile(ms, [50.0, 90.0, 99.0])
    return DecodeTimings(
        samples=int(ms.size),
        mean_ms=float(statistics.fmean(ms.tolist())),
        median_ms=float(median),
        p90_ms=float(p90),
        p99_ms=float(p99),
    )


def _format_summary(label: str, t: DecodeTimings) -> str:
    return (
        f"{label}: samples={t.samples} mean={t.mean_ms:.3f}ms median={t.median_ms:.3f}ms "
        f"p90={t.p90_ms:.3f}ms p99={t.p99_ms:.3f}ms"
    )


def _synthetic_outputs(n_boxes: int, n_classes: int, seed: int) -> Tuple[np.ndarray, np.ndarray]:
    # Normalized [cx, cy, w, h] plus per-class scores, as an SSD export emits.
    rng = np.random.default_rng(seed)
    centers = rng.uniform(0.0, 1.0, size=(n_boxes, 2))
    sizes = rng.uniform(0.02, 0.3, size=(n_boxes, 2))
    coordinates = np.concatenate([centers, sizes], axis=1)
    confidence = rng.uniform(0.0, 1.0, size=(n_boxes, n_classes)) ** 4
    return confidence, coordinates


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark detection decode latency (class-agnostic vs per-class suppression) on synthetic outputs."
    )
    parser.add_argument("--boxes", type=int, default=1917, help="Number of candidate boxes per frame.")
    parser.add_argument("--classes", type=int, default=80, help="Number of classes.")
    parser.add_argument("--conf", type=float, default=0.25, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.5, help="IoU threshold for suppression.")
    parser.add_argument("--iterations", type=int, default=200, help="Recorded iterations.")
    parser.add_argument("--warmup", type=int, default=10, help="Iterations to run but not record.")
    parser.add_argument("--seed", type=int, default=0, help="RNG seed for the synthetic tensors.")
    args = parser.parse_args()

    if args.boxes < 0:
        raise ValueError("--boxes must be >= 0")
    if args.classes < 1:
        raise ValueError("--classes must be >= 1")
    if args.iterations < 1:
        raise ValueError("--iterations must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    confidence, coordinates = _synthetic_outputs(int(args.boxes), int(args.classes), int(args.seed))

    agnostic = DetectionDecoder(DetectionPostConfig(conf_threshold=float(args.conf), nms_threshold=float(args.iou)))
    per_class = DetectionDecoder(
        DetectionPostConfig(conf_threshold=float(args.conf), nms_threshold=float(args.iou), class_agnostic_nms=False)
    )

    t_agnostic: List[float] = []
    t_per_class: List[float] = []
    kept_agnostic = kept_per_class = 0

    for i in range(int(args.warmup) + int(args.iterations)):
        t0 = time.perf_counter()
        preds_a = agnostic.process(confidence, coordinates)
        t1 = time.perf_counter()
        preds_c = per_class.process(confidence, coordinates)
        t2 = time.perf_counter()

        if i < int(args.warmup):
            continue
        t_agnostic.append(t1 - t0)
        t_per_class.append(t2 - t1)
        kept_agnostic, kept_per_class = len(preds_a), len(preds_c)

    print(_format_summary("decode_class_agnostic", _timings_ms(t_agnostic)))
    print(_format_summary("decode_per_class", _timings_ms(t_per_class)))
    print(f"boxes={args.boxes} classes={args.classes} kept_agnostic={kept_agnostic} kept_per_class={kept_per_class}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
