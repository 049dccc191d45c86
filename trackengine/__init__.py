"""
Track Engine

Track rendering and vehicle simulation core for an interactive transit map
editor.
"""

__version__ = "1.0.0"
