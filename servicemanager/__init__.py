"""
Service Manager — single-folder service catalogue on Reflex.

The session core (FolderSessionController) and its remote collaborators
import without Reflex; the page and state modules need it.
"""

__version__ = "1.0.0"
__all__ = ["controller", "models", "remote", "ids", "engine", "state", "pages", "cli"]
