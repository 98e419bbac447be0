"""Vercel serverless entrypoint for the media paywall API.

Vercel runs this file from the repository root without installing the
package, so `src/` is put on the import path before the ASGI app loads.
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from media_paywall.api.asgi import app  # noqa: E402

__all__ = ["app"]
