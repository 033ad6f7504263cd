"""
CaptureResult: what a finished capture delivers to its caller.

Produced by CaptureController:
  - the encoded payload and its negotiated mime type
  - a suggested download filename
  - flags describing how the payload was produced
"""

from pydantic import BaseModel, Field


class CaptureResult(BaseModel):
    """Result of one capture session."""

    data: bytes = Field(..., repr=False)
    mime_type: str                  # e.g. "video/mp4" or "video/webm;codecs=vp9"
    filename: str
    frame_count: int = 0            # logical frames drawn during recording
    still_frame: bool = False       # True when the PNG fallback was used
    reencoded: bool = False         # True when the MP4 conversion succeeded

    @property
    def size(self) -> int:
        return len(self.data)
