"""
FastAPI dependencies
"""
import threading
from typing import Optional

from src.context import SpotlightContext

_context: Optional[SpotlightContext] = None
_context_lock = threading.Lock()


def get_context() -> SpotlightContext:
    """
    Process-wide SpotlightContext, built from config on first use.

    Tests replace it through app.dependency_overrides[get_context].
    """
    global _context

    if _context is None:
        with _context_lock:
            if _context is None:
                _context = SpotlightContext.from_config()
    return _context
