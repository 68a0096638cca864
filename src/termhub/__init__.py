"""termhub: session and focus routing for multi-session terminal clients."""

__version__ = "0.1.0"
__author__ = "termhub Team"

from .core.focus import FocusRouter
from .core.registry import SessionRegistry

__all__ = ["FocusRouter", "SessionRegistry", "__version__"]
