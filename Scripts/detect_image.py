from __future__ import annotations

from detector_host.runner import main


if __name__ == "__main__":
    raise SystemExit(main())
