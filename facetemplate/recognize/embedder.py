from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from ..config import RecognitionConfig
from ..log import get_logger
from .inference import InferenceEngine
from .types import InferenceError

logger = get_logger(__name__)


def recognition_crop_box(kps: np.ndarray, image_shape: Tuple[int, ...], margin_ratio: float = 0.75) -> Tuple[int, int, int, int]:
    """
    Landmark bounding box grown by margin_ratio of its size per side, clipped to the image.
    Raises ValueError when nothing of the box lies inside the image.
    """
    k = np.asarray(kps, dtype=np.int32).reshape(-1, 2)
    x_min, x_max = int(k[:, 0].min()), int(k[:, 0].max())
    y_min, y_max = int(k[:, 1].min()), int(k[:, 1].max())
    w = x_max - x_min
    h = y_max - y_min
    mx = int(w * margin_ratio)
    my = int(h * margin_ratio)

    H, W = image_shape[:2]
    x1 = min(max(0, x_min - mx), W)
    x2 = min(max(0, x_max + mx), W)
    y1 = min(max(0, y_min - my), H)
    y2 = min(max(0, y_max + my), H)
    if x2 <= x1 or y2 <= y1:
        raise ValueError(f"Recognition crop ({x1},{y1})-({x2},{y2}) is empty for a {W}x{H} image")
    return x1, y1, x2, y2


class SphereFaceEmbedder:
    """
    Recognition network on a 128x128 gray crop around the landmarks.
    Input: BGR image (as read by cv2.imread) -> gray, x / 255 - 0.5.
    Output: descriptor of the crop followed by the descriptor of its mirror.
    """

    def __init__(self, engine: InferenceEngine, cfg: Optional[RecognitionConfig] = None, debug: bool = False):
        self.engine = engine
        self.cfg = cfg or RecognitionConfig()
        self.debug = bool(debug)

    @property
    def descriptor_dim(self) -> int:
        return 2 * self.cfg.feature_dim

    def preprocess(self, image: np.ndarray, kps: np.ndarray) -> np.ndarray:
        x1, y1, x2, y2 = recognition_crop_box(kps, image.shape, self.cfg.margin_ratio)
        crop = image[y1:y2, x1:x2]
        if self.debug:
            logger.debug(f"recognition crop: ({x1},{y1})-({x2},{y2})")

        gray = crop if crop.ndim == 2 else cv2.cvtColor(crop, cv2.COLOR_BGR2GRAY)
        size = self.cfg.input_size
        gray = cv2.resize(gray, (size, size), interpolation=cv2.INTER_LINEAR)
        return (gray.astype(np.float32) / 255.0 - 0.5).astype(np.float32)

    def _features(self, x: np.ndarray) -> np.ndarray:
        y = np.asarray(self.engine.infer(x)[0], dtype=np.float32).reshape(-1)
        if y.size != self.cfg.feature_dim:
            raise InferenceError(f"recognition model returned {y.size} values, expected {self.cfg.feature_dim}")
        return y

    def extract(self, image: np.ndarray, kps: np.ndarray) -> np.ndarray:
        if len(kps) == 0:
            raise ValueError("extract() needs five landmarks; skip faces rejected by the landmark check")

        x = self.preprocess(image, kps)
        f1 = self._features(x)
        f2 = self._features(cv2.flip(x, 1))
        return np.concatenate([f1, f2]).astype(np.float32)
