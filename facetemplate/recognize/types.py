from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


# Order of the five points in every landmark set.
LEFT_EYE, RIGHT_EYE, NOSE, MOUTH_LEFT, MOUTH_RIGHT = range(5)
NUM_LANDMARKS = 5


class InferenceError(RuntimeError):
    """The inference engine returned output of the wrong size."""


@dataclass(frozen=True)
class Rect:
    x1: float
    y1: float
    x2: float
    y2: float
    score: float = 1.0

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return self.width * self.height

    def mirrored(self, image_width: int) -> "Rect":
        # reflect around the image width, swapping ends so x1 <= x2 still holds
        return Rect(image_width - self.x2, self.y1, image_width - self.x1, self.y2, self.score)


@dataclass(frozen=True)
class CropTransform:
    """
    Maps model-space points of a square crop back to image pixels.
    img_* is the un-clamped square in image space (end exclusive),
    src_* the part of it that lies inside the image and dst_* where
    that part sits inside the square buffer.
    """
    img_xbegin: int
    img_ybegin: int
    img_xend: int
    img_yend: int
    src_box: Tuple[int, int, int, int]
    dst_box: Tuple[int, int, int, int]
    input_size: int

    @property
    def face_width(self) -> int:
        return self.img_xend - self.img_xbegin

    @property
    def face_height(self) -> int:
        return self.img_yend - self.img_ybegin

    @property
    def ratio_w(self) -> float:
        return self.face_width / float(self.input_size)

    @property
    def ratio_h(self) -> float:
        return self.face_height / float(self.input_size)

    def to_image(self, pts: np.ndarray) -> np.ndarray:
        """(N,2) model-space points in [0,1] -> (N,2) float32 image coords."""
        p = np.asarray(pts, dtype=np.float32).reshape(-1, 2)
        out = np.empty_like(p)
        out[:, 0] = p[:, 0] * self.input_size * self.ratio_w + self.img_xbegin
        out[:, 1] = p[:, 1] * self.input_size * self.ratio_h + self.img_ybegin
        return out


@dataclass
class EyePair:
    is_left_set: bool = False
    is_right_set: bool = False
    xleft: int = 0
    yleft: int = 0
    xright: int = 0
    yright: int = 0

    @classmethod
    def from_landmarks(cls, kps: np.ndarray) -> "EyePair":
        if len(kps) == 0:
            return cls()
        le, re = kps[LEFT_EYE], kps[RIGHT_EYE]
        return cls(True, True, int(le[0]), int(le[1]), int(re[0]), int(re[1]))


def empty_landmarks() -> np.ndarray:
    return np.zeros((0, 2), dtype=np.int32)
