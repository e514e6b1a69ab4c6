"""
Square face crops for the landmark network.
The requested rect is turned into a square centred on it; any part of
the square outside the image is left black, so the model always receives
an input_size x input_size image however far the rect runs off the frame.
"""
from __future__ import annotations

import math
from typing import Tuple

import cv2
import numpy as np

from .types import CropTransform, Rect


def _round(v: float) -> int:
    # half up; end - begin stays n + 1 for integer n
    return int(math.floor(v + 0.5))


def square_crop(image: np.ndarray, rect: Rect, input_size: int = 64) -> Tuple[np.ndarray, CropTransform]:
    """Returns the un-resized square buffer and its transform."""
    h = rect.y2 - rect.y1
    w = rect.x2 - rect.x1
    n = max(h, w)
    crop_x = rect.x1 + w * 0.5 - n * 0.5
    crop_y = rect.y1 + h * 0.5 - n * 0.5

    img_xbegin = _round(crop_x)
    img_ybegin = _round(crop_y)
    img_xend = _round(crop_x + n) + 1
    img_yend = _round(crop_y + n) + 1

    face_width = img_xend - img_xbegin
    face_height = img_yend - img_ybegin

    H, W = image.shape[:2]

    sx1, sy1, sx2, sy2 = img_xbegin, img_ybegin, img_xend, img_yend
    dx1, dy1, dx2, dy2 = 0, 0, face_width, face_height
    if sx2 > W:
        dx2 = face_width - (sx2 - W)
        sx2 = W
    if sy2 > H:
        dy2 = face_height - (sy2 - H)
        sy2 = H
    if sx1 < 0:
        dx1 = -sx1
        sx1 = 0
    if sy1 < 0:
        dy1 = -sy1
        sy1 = 0

    buf = np.zeros((face_height, face_width) + image.shape[2:], dtype=image.dtype)
    # nothing to copy when the square misses the image entirely
    if sx2 > sx1 and sy2 > sy1:
        buf[dy1:dy2, dx1:dx2] = image[sy1:sy2, sx1:sx2]

    transform = CropTransform(
        img_xbegin=img_xbegin,
        img_ybegin=img_ybegin,
        img_xend=img_xend,
        img_yend=img_yend,
        src_box=(sx1, sy1, sx2, sy2),
        dst_box=(dx1, dy1, dx2, dy2),
        input_size=int(input_size),
    )
    return buf, transform


class CoordinateCropper:
    def __init__(self, input_size: int = 64):
        self.input_size = int(input_size)

    def crop(self, image: np.ndarray, rect: Rect) -> Tuple[np.ndarray, CropTransform]:
        buf, transform = square_crop(image, rect, self.input_size)
        resized = cv2.resize(buf, (self.input_size, self.input_size), interpolation=cv2.INTER_LINEAR)
        return resized, transform
