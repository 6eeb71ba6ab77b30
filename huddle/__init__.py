"""
huddle - a room full of AI personas that talk, trade and build together
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("huddle-chat")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
__logo__ = "🫂"
