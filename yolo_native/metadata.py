from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

LOGGER = logging.getLogger(__name__)


def _parse_names_block(lines: Sequence[str]) -> List[str]:
    """
    Parse the lightweight `metadata.yaml` layout exported next to YOLO models:

        names:
          0: person
          1: bicycle
          ...

    Ids must be contiguous from 0; gaps are filled with `class_<id>`.
    """

    names: Dict[int, str] = {}
    in_names = False
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        if not left.isdigit():
            # A new top-level key ends the block.
            if not raw.startswith((" ", "\t")):
                break
            continue
        names[int(left)] = right.strip().strip("'").strip('"')

    if not names:
        return []
    return [names.get(i, f"class_{i}") for i in range(max(names) + 1)]


def load_labels(path: Union[str, Path], fallback: Optional[Sequence[str]] = None) -> List[str]:
    """
    Load class labels ordered by class id.

    `.yaml`/`.yml` files are read as a `names:` block; anything else is a plain
    text file with one label per non-blank line.

    When the file is missing and `fallback` is given, a warning is logged and
    the fallback is returned.
    """

    p = Path(path)
    if not p.exists():
        if fallback is not None:
            LOGGER.warning("Labels file not found: %s; using %d fallback label(s)", p, len(fallback))
            return list(fallback)
        raise FileNotFoundError(f"Labels file not found: {p}")

    with open(p, "r", encoding="utf-8") as f:
        lines = f.readlines()

    if p.suffix.lower() in {".yaml", ".yml"}:
        labels = _parse_names_block(lines)
    else:
        labels = [line.strip() for line in lines if line.strip()]

    LOGGER.debug("Loaded %d label(s) from %s", len(labels), p)
    return labels
