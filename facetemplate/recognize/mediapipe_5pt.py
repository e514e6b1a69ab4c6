"""
MediaPipe FaceLandmarker as a landmark backend.
The face rect is expanded a little, FaceMesh runs on that ROI and the
five usual mesh points are mapped back to the full frame.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np
try:
    import mediapipe as mp
    from mediapipe.tasks.python import vision
    from mediapipe.tasks.python import BaseOptions
except Exception as e:
    mp = None
    _MP_IMPORT_ERROR = e

from ..config import LandmarksConfig
from ..log import get_logger
from .landmarks import LandmarksDetector
from .types import Rect, empty_landmarks

logger = get_logger(__name__)

# FaceMesh indices
IDX_LEFT_EYE = 33
IDX_RIGHT_EYE = 263
IDX_NOSE_TIP = 1
IDX_MOUTH_LEFT = 61
IDX_MOUTH_RIGHT = 291


def _clip_xyxy(x1: float, y1: float, x2: float, y2: float, W: int, H: int) -> Tuple[int, int, int, int]:
    x1 = int(max(0, min(W, round(x1))))
    y1 = int(max(0, min(H, round(y1))))
    x2 = int(max(0, min(W, round(x2))))
    y2 = int(max(0, min(H, round(y2))))
    return x1, y1, x2, y2


class MediaPipeLandmarksDetector(LandmarksDetector):
    def __init__(
        self,
        cfg: Optional[LandmarksConfig] = None,
        task_path: Optional[str] = None,
        roi_margin: Tuple[float, float] = (0.25, 0.35),
        debug: bool = False,
    ):
        super().__init__(cfg, debug)
        if mp is None:
            raise RuntimeError(f"mediapipe import failed: {_MP_IMPORT_ERROR}\n Install: pip install mediapipe")

        task_path = task_path or self.cfg.mediapipe_task_path
        if not Path(task_path).exists():
            raise RuntimeError(f"FaceLandmarker model not found: {task_path}")

        options = vision.FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(task_path)),
            num_faces=1,  # one face per ROI
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
        )
        self.landmarker = vision.FaceLandmarker.create_from_options(options)
        self.roi_margin = roi_margin

    def locate(self, image: np.ndarray, rect: Rect) -> np.ndarray:
        H, W = image.shape[:2]
        mx, my = self.roi_margin[0] * rect.width, self.roi_margin[1] * rect.height
        rx1, ry1, rx2, ry2 = _clip_xyxy(rect.x1 - mx, rect.y1 - my, rect.x2 + mx, rect.y2 + my, W, H)
        roi = image[ry1:ry2, rx1:rx2]
        if roi.shape[0] < 20 or roi.shape[1] < 20:
            return empty_landmarks()

        rgb = cv2.cvtColor(roi, cv2.COLOR_BGR2RGB) if roi.ndim == 3 else cv2.cvtColor(roi, cv2.COLOR_GRAY2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        res = self.landmarker.detect(mp_image)
        if not res.face_landmarks:
            if self.debug:
                logger.debug(f"FaceMesh none for ROI {(rx1, ry1, rx2, ry2)}")
            return empty_landmarks()

        lm = res.face_landmarks[0]
        rh, rw = roi.shape[:2]
        pts = []
        for i in (IDX_LEFT_EYE, IDX_RIGHT_EYE, IDX_NOSE_TIP, IDX_MOUTH_LEFT, IDX_MOUTH_RIGHT):
            p = lm[i]
            pts.append([p.x * rw + rx1, p.y * rh + ry1])
        kps = np.array(pts, dtype=np.float32)

        # enforce left/right ordering
        if kps[0, 0] > kps[1, 0]:
            kps[[0, 1]] = kps[[1, 0]]
        if kps[3, 0] > kps[4, 0]:
            kps[[3, 4]] = kps[[4, 3]]
        return kps.astype(np.int32)
