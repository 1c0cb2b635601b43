"""Core: config and constants.

Single place for settings and shared constants.
"""

from media_upload.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
