"""
newsreel: procedural headline and map animations recorded to video.

Frames are pure functions of their index; a capture controller steps
them into an ffmpeg sink in real time.
"""

__version__ = "0.1.0"
