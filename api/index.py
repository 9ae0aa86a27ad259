"""ASGI entry point for serverless hosting: re-exports the FastAPI app."""

import sys
from pathlib import Path

# src/ holds the restock_engine package, the root holds config/
_root = Path(__file__).resolve().parent.parent
for p in [str(_root / "src"), str(_root)]:
    if p not in sys.path:
        sys.path.insert(0, p)

from restock_engine.action.api import app  # noqa: E402, F401

handler = app
