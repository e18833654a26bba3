"""
Storyreel - Story to Animation Prompt Generator

Turns a short story into copy-pasteable prompts for image and video tools:
a shot list, an art style, characters, backgrounds, items, first/last frame
prompts and animation prompts, each produced by one LLM stage.

Version: 1.0.0
"""

__version__ = "1.0.0"
__project__ = "Storyreel"

from pathlib import Path

# Load environment variables early - before any other imports that might need them
from storyreel.core.env_loader import ensure_env_loaded
ensure_env_loaded()

# Package root directory
PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent

__all__ = [
    "__version__",
    "__project__",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
]
