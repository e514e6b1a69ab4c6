"""
Five-point landmarks: left_eye, right_eye, nose_tip, mouth_left, mouth_right.

Every detector runs the same flip consistency check on top of its own
locate(): landmarks are detected again on the mirrored image, mapped
back, and the face is rejected when the two sets disagree by more than
max_flip_distance pixels. A rejected face gets an empty (0,2) array,
which is a normal result and not an error.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

import cv2
import numpy as np

from ..config import LandmarksConfig
from ..log import get_logger
from .crop import CoordinateCropper
from .inference import InferenceEngine
from .types import (
    InferenceError,
    LEFT_EYE,
    MOUTH_LEFT,
    MOUTH_RIGHT,
    NOSE,
    RIGHT_EYE,
    Rect,
    empty_landmarks,
)

logger = get_logger(__name__)

# Network output: 43 x values followed by 43 y values, in [0,1] of the crop.
DNET_NUM_POINTS = 43
DNET_MIN_OUTPUT = 2 * DNET_NUM_POINTS + 2
DNET_LEFT_EYE = (26, 27, 29, 30)
DNET_RIGHT_EYE = (20, 21, 23, 24)
DNET_NOSE = (13,)
DNET_MOUTH_LEFT = (37,)
DNET_MOUTH_RIGHT = (31,)

# semantic order of the result rows
_DNET_GROUPS = (DNET_LEFT_EYE, DNET_RIGHT_EYE, DNET_NOSE, DNET_MOUTH_LEFT, DNET_MOUTH_RIGHT)


# -------------------------
# Mirroring
# -------------------------

def mirror_image(image: np.ndarray) -> np.ndarray:
    return cv2.flip(image, 1)


def unmirror_landmarks(kps: np.ndarray, image_width: int) -> np.ndarray:
    """
    Map landmarks found on a mirrored image back to the original frame.
    Mirroring swaps left and right, so the eye and mouth pairs swap too.
    """
    k = np.asarray(kps, dtype=np.int32)
    out = np.empty_like(k)
    order = (RIGHT_EYE, LEFT_EYE, NOSE, MOUTH_RIGHT, MOUTH_LEFT)
    for dst, src in enumerate(order):
        out[dst, 0] = image_width - k[src, 0]
        out[dst, 1] = k[src, 1]
    return out


def landmarks_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance over all 10 coordinates."""
    d = np.asarray(a, dtype=np.float64).reshape(-1) - np.asarray(b, dtype=np.float64).reshape(-1)
    return float(np.sqrt(np.sum(d * d)))


# -------------------------
# Gate
# -------------------------

LocateFn = Callable[[np.ndarray, Rect], np.ndarray]


class FlipConsistencyGate:
    def __init__(
        self,
        locate: LocateFn,
        enabled: bool = False,
        max_distance: float = 10000.0,
        debug: bool = False,
    ):
        self.locate = locate
        self.enabled = bool(enabled)
        self.max_distance = float(max_distance)
        self.debug = bool(debug)

    def flip_distance(self, image: np.ndarray, rect: Rect, kps: np.ndarray) -> Optional[float]:
        """Distance to the mirrored detection, None if the mirror pass finds nothing."""
        W = image.shape[1]
        flipped = self.locate(mirror_image(image), rect.mirrored(W))
        if len(flipped) == 0:
            return None
        return landmarks_distance(kps, unmirror_landmarks(flipped, W))

    def validate(self, image: np.ndarray, rect: Rect, kps: np.ndarray) -> np.ndarray:
        if len(kps) == 0:
            return empty_landmarks()
        if not self.enabled:
            return kps

        distance = self.flip_distance(image, rect, kps)
        if distance is None or distance > self.max_distance:
            if self.debug:
                logger.debug(f"flip check rejected face {rect}: distance={distance} max={self.max_distance}")
            return empty_landmarks()
        return kps


# -------------------------
# Detectors
# -------------------------

class LandmarksDetector(ABC):
    def __init__(self, cfg: Optional[LandmarksConfig] = None, debug: bool = False):
        self.cfg = cfg or LandmarksConfig()
        self.debug = bool(debug)
        self.gate = FlipConsistencyGate(
            self.locate,
            enabled=self.cfg.check_flip_consistency,
            max_distance=self.cfg.max_flip_distance,
            debug=self.debug,
        )

    @abstractmethod
    def locate(self, image: np.ndarray, rect: Rect) -> np.ndarray:
        """(5,2) int32 landmarks in image coordinates, or (0,2) if none."""

    def detect(self, image: np.ndarray, rect: Rect) -> np.ndarray:
        return self.gate.validate(image, rect, self.locate(image, rect))


class DnetLandmarksDetector(LandmarksDetector):
    """
    Landmark network on a 64x64 gray square crop.
    Input: BGR crop (as read by cv2.imread) -> gray, (x - 127.5) / 128.
    Output: >= 88 floats, x block then y block.
    """

    def __init__(self, engine: InferenceEngine, cfg: Optional[LandmarksConfig] = None, debug: bool = False):
        super().__init__(cfg, debug)
        self.engine = engine
        self.cropper = CoordinateCropper(self.cfg.input_size)

    def _normalize(self, crop: np.ndarray) -> np.ndarray:
        gray = crop if crop.ndim == 2 else cv2.cvtColor(crop, cv2.COLOR_BGR2GRAY)
        gray = gray.astype(np.float32)
        return ((gray - self.cfg.pixel_mean) * self.cfg.pixel_scale).astype(np.float32)

    def locate(self, image: np.ndarray, rect: Rect) -> np.ndarray:
        crop, transform = self.cropper.crop(image, rect)
        out = np.asarray(self.engine.infer(self._normalize(crop))[0], dtype=np.float32).reshape(-1)
        if out.size < DNET_MIN_OUTPUT:
            raise InferenceError(f"landmark model returned {out.size} values, need >= {DNET_MIN_OUTPUT}")

        pts = np.array(
            [[np.mean(out[list(g)]), np.mean(out[[i + DNET_NUM_POINTS for i in g]])] for g in _DNET_GROUPS],
            dtype=np.float32,
        )
        # truncate toward zero
        kps = transform.to_image(pts).astype(np.int32)
        if self.debug:
            logger.debug(f"landmarks for {rect}: crop=({transform.img_xbegin},{transform.img_ybegin})"
                         f"-({transform.img_xend},{transform.img_yend}) kps={kps.tolist()}")
        return kps


def create_landmarks_detector(
    engine: Optional[InferenceEngine],
    cfg: LandmarksConfig,
    task_path: Optional[str] = None,
    debug: bool = False,
) -> LandmarksDetector:
    if cfg.backend == "mediapipe":
        from .mediapipe_5pt import MediaPipeLandmarksDetector
        return MediaPipeLandmarksDetector(cfg, task_path=task_path, debug=debug)
    if engine is None:
        raise ValueError("dnet landmarks need an inference engine")
    return DnetLandmarksDetector(engine, cfg, debug=debug)
