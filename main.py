"""Launch the depth scanner from a source checkout: ``python main.py``."""

from __future__ import annotations

import sys
from pathlib import Path

# Running from a checkout: make 'src' importable without installing.
SRC_DIR = Path(__file__).resolve().parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from depthscan.gui.application import main  # noqa: E402

if __name__ == "__main__":
    main(sys.argv)
