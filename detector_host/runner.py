from __future__ import annotations

import argparse
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from yolo_native.runtime import load_pipeline
from yolo_native.types import Detection

from .config import DetectorProfile, load_detector_profile
from .host import DetectorHost, PipelineLoader
from .logging_utils import configure_logging
from .reporting import write_detections_report

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run YOLO detection on one or more images.")
    parser.add_argument("images", nargs="+", help="Image files to run detection on.")
    parser.add_argument("--profile", type=str, default=None, help="Detector profile JSON.")
    parser.add_argument("--model", type=str, default=None, help="Model file (.tflite or .onnx).")
    parser.add_argument("--labels", type=str, default=None, help="Labels file (.txt or metadata .yaml).")
    parser.add_argument("--backend", type=str, default=None, choices=["tflite", "onnxruntime"])
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold (default 0.50).")
    parser.add_argument("--iou", type=float, default=None, help="NMS IoU threshold (default 0.45).")
    parser.add_argument("--shrink", type=float, default=None, help="Box width/height shrink factor (default 0.85).")
    parser.add_argument("--threads", type=int, default=None, help="Inference threads (default 4).")
    parser.add_argument("--out", type=str, default=None, help="Write a JSON detections report here.")
    parser.add_argument("--save-vis", type=str, default=None, help="Directory for annotated images.")
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=str, default=None)
    return parser


def resolve_profile(args: argparse.Namespace) -> DetectorProfile:
    """Profile file first, then explicit CLI flags on top."""
    if args.profile is not None:
        profile = load_detector_profile(Path(args.profile))
    elif args.model is not None:
        profile = DetectorProfile(model_path=args.model)
    else:
        raise ValueError("Either --profile or --model is required.")

    overrides: Dict[str, object] = {}
    if args.model is not None:
        overrides["model_path"] = args.model
    if args.labels is not None:
        overrides["labels_path"] = args.labels
    if args.backend is not None:
        overrides["backend"] = args.backend
    if args.conf is not None:
        overrides["conf_threshold"] = float(args.conf)
    if args.iou is not None:
        overrides["iou_threshold"] = float(args.iou)
    if args.shrink is not None:
        overrides["box_shrink"] = float(args.shrink)
    if args.threads is not None:
        overrides["num_threads"] = int(args.threads)
    return replace(profile, **overrides) if overrides else profile


def _save_visualization(out_dir: Path, image_path: Path, detections: Sequence[Detection]) -> Path:
    import cv2

    from yolo_native.visualize import draw_detections

    img = cv2.imread(str(image_path))
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {image_path}")
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{image_path.stem}_detections.jpg"
    cv2.imwrite(str(out_path), draw_detections(img, detections))
    return out_path


def main(argv: Optional[Sequence[str]] = None, *, pipeline_loader: PipelineLoader = load_pipeline) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, Path(args.log_file) if args.log_file else None)

    try:
        profile = resolve_profile(args)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    results: Dict[str, Optional[List[Detection]]] = {}
    with DetectorHost(profile, pipeline_loader=pipeline_loader) as host:
        if not host.submit_load().result():
            print(f"Model failed to load: {profile.model_path}")
            return 1

        for image in args.images:
            image_path = Path(image)
            try:
                detections = host.submit_detect(image_path.read_bytes()).result()
            except (OSError, RuntimeError, ValueError) as exc:
                LOGGER.error("Detection failed for %s: %s", image_path, exc)
                results[str(image_path)] = None
                continue

            results[str(image_path)] = detections
            print(f"{image_path}: {len(detections)} detection(s)")
            for det in detections:
                print(f"  {det.class_name} {det.confidence:.2f} x={det.x:.1f} y={det.y:.1f} w={det.width:.1f} h={det.height:.1f}")
            if args.save_vis:
                vis_path = _save_visualization(Path(args.save_vis), image_path, detections)
                print(f"  wrote {vis_path}")

    if args.out:
        run_config = asdict(profile)
        run_config["fallback_labels"] = list(profile.fallback_labels)
        report = write_detections_report(out_path=Path(args.out), results=results, run_config=run_config)
        print(f"Wrote detections report: {report}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
