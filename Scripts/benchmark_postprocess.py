from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from yolo_native import YoloPostConfig, YoloPostprocessor


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = np.asarray(values_s, dtype=np.float64) * 1000.0
    return TimingSummary(
        n=int(ms.size),
        mean_ms=float(statistics.fmean(ms)) if ms.size else 0.0,
        p50_ms=float(np.percentile(ms, 50)) if ms.size else 0.0,
        p90_ms=float(np.percentile(ms, 90)) if ms.size else 0.0,
        p95_ms=float(np.percentile(ms, 95)) if ms.size else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_raw_tensor(anchors: int, classes: int, positive_rate: float, seed: int = 0) -> np.ndarray:
    """
    Random (4 + C, A) tensor; roughly `positive_rate` of anchors carry a score above 0.5.
    """
    rng = np.random.default_rng(seed)
    boxes = np.empty((4, anchors), dtype=np.float32)
    boxes[0:2] = rng.uniform(0.05, 0.95, size=(2, anchors))
    boxes[2:4] = rng.uniform(0.01, 0.3, size=(2, anchors))
    scores = rng.uniform(0.0, 0.3, size=(classes, anchors)).astype(np.float32)
    hot = rng.random(anchors) < positive_rate
    hot_cls = rng.integers(0, classes, size=anchors)
    scores[hot_cls[hot], np.nonzero(hot)[0]] = rng.uniform(0.5, 1.0, size=int(hot.sum()))
    return np.vstack([boxes, scores])


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark decode + per-class NMS on a synthetic raw tensor.")
    parser.add_argument("--anchors", type=int, default=8400)
    parser.add_argument("--classes", type=int, default=80)
    parser.add_argument("--positive-rate", type=float, default=0.01, help="Share of anchors above the threshold.")
    parser.add_argument("--conf", type=float, default=0.50)
    parser.add_argument("--iou", type=float, default=0.45)
    parser.add_argument("--warmup", type=int, default=10)
    parser.add_argument("--repeats", type=int, default=200)
    args = parser.parse_args()

    if args.anchors < 1 or args.classes < 1:
        raise ValueError("--anchors and --classes must be >= 1")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")

    raw = synthetic_raw_tensor(args.anchors, args.classes, args.positive_rate)
    with_nms = YoloPostprocessor(YoloPostConfig(conf_threshold=args.conf, iou_threshold=args.iou))
    no_nms = YoloPostprocessor(YoloPostConfig(conf_threshold=args.conf, iou_threshold=args.iou, apply_nms=False))

    t_nms: List[float] = []
    t_no: List[float] = []
    kept = 0
    for i in range(args.warmup + args.repeats):
        t0 = time.perf_counter()
        dets = with_nms.process(raw, orig_size=(1280, 960))
        t1 = time.perf_counter()
        _ = no_nms.process(raw, orig_size=(1280, 960))
        t2 = time.perf_counter()
        if i >= args.warmup:
            t_nms.append(t1 - t0)
            t_no.append(t2 - t1)
            kept = len(dets)

    print(_format_summary("postprocess_with_nms", _summarize_ms(t_nms)))
    print(_format_summary("postprocess_no_nms", _summarize_ms(t_no)))
    print(f"shape={tuple(raw.shape)} kept_after_nms={kept}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
