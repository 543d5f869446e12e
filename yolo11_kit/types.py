from dataclasses import dataclass
from typing import Tuple


@dataclass
class Detection:
    """
    Single detection. The box is stored as (x, y, width, height); the frame is
    the padded model input until mapped, the original image afterwards.
    """

    x: float
    y: float
    width: float
    height: float
    label: int
    confidence: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x2, self.y2


@dataclass(frozen=True)
class LetterboxParams:
    """
    How the original image was resized and padded before inference.

    pad_x/pad_y are the total padding per axis; `pad // 2` goes before
    (left/top) and the remainder after (right/bottom).
    """

    scale: float
    pad_x: int
    pad_y: int
    orig_w: int
    orig_h: int
    padded_w: int
    padded_h: int

    def __post_init__(self) -> None:
        if not self.scale > 0:
            raise ValueError(f"scale must be > 0, got {self.scale}")
        if self.pad_x < 0 or self.pad_y < 0:
            raise ValueError(f"padding must be >= 0, got ({self.pad_x}, {self.pad_y})")
        if self.orig_w <= 0 or self.orig_h <= 0:
            raise ValueError(f"original size must be > 0, got ({self.orig_w}, {self.orig_h})")
        if self.padded_w <= 0 or self.padded_h <= 0:
            raise ValueError(f"padded size must be > 0, got ({self.padded_w}, {self.padded_h})")

    @property
    def pad_left(self) -> int:
        return self.pad_x // 2

    @property
    def pad_top(self) -> int:
        return self.pad_y // 2

    @property
    def orig_size(self) -> Tuple[int, int]:
        return self.orig_w, self.orig_h

    @property
    def padded_size(self) -> Tuple[int, int]:
        return self.padded_w, self.padded_h
