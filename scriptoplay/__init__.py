"""
Scriptoplay generation core.

Image, video, speech and music generation across AI providers, video job
polling, and ffmpeg-based assembly of finished scenes.
"""

__version__ = "1.0.0"
