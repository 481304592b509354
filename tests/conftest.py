from __future__ import annotations

import sys
from pathlib import Path


# Ensure the src layout is importable without an editable install.
_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"
for _path in (_REPO_ROOT, _SRC):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))
