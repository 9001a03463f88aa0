from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from yolo_native.types import Detection


def summarize_detections(detections: Sequence[Detection]) -> Dict[str, Any]:
    counts = Counter(d.class_name for d in detections)
    return {
        "count": len(detections),
        "per_class": dict(sorted(counts.items())),
        "records": [d.to_record() for d in detections],
    }


def write_detections_report(
    *,
    out_path: Path,
    results: Mapping[str, Optional[Sequence[Detection]]],
    run_config: Dict[str, Any],
) -> Path:
    """
    Write one JSON report for a batch of images.

    Args:
        out_path : report file to create (parent directories are created)
        results  : image name -> detections, or None when that image failed
        run_config : effective settings used for the run
    """
    images: List[Dict[str, Any]] = []
    for name, dets in results.items():
        if dets is None:
            images.append({"image": name, "ok": False})
            continue
        entry = {"image": name, "ok": True}
        entry.update(summarize_detections(dets))
        images.append(entry)

    payload = {
        "run_config": run_config,
        "images": images,
        "total_detections": sum(entry.get("count", 0) for entry in images),
    }
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return out_path
