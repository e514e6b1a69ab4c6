"""
Face detection: image -> face rects for the landmark stage.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

import cv2
import numpy as np

from .config import DetectorConfig
from .log import get_logger
from .recognize.types import Rect

logger = get_logger(__name__)


class FaceDetector(ABC):
    @abstractmethod
    def detect(self, image: np.ndarray) -> List[Rect]:
        """Face rects, best candidate first."""


class HaarFaceDetector(FaceDetector):
    def __init__(self, cfg: Optional[DetectorConfig] = None, debug: bool = False):
        self.cfg = cfg or DetectorConfig()
        self.debug = bool(debug)

        haar_xml = self.cfg.haar_xml
        if haar_xml is None:
            haar_xml = cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        try:
            self.face_cascade = cv2.CascadeClassifier(haar_xml)
        except cv2.error as e:
            raise RuntimeError(f"Failed to load Haar cascade: {haar_xml}") from e
        if self.face_cascade.empty():
            raise RuntimeError(f"Failed to load Haar cascade: {haar_xml}")

    def detect(self, image: np.ndarray) -> List[Rect]:
        gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        faces = self.face_cascade.detectMultiScale(
            gray,
            scaleFactor=self.cfg.scale_factor,
            minNeighbors=self.cfg.min_neighbors,
            flags=cv2.CASCADE_SCALE_IMAGE,
            minSize=tuple(map(int, self.cfg.min_size)),
        )
        if faces is None or len(faces) == 0:
            return []

        # (x,y,w,h), largest first; Haar gives no probability so score is fixed
        rects = [Rect(float(x), float(y), float(x + w), float(y + h), 1.0) for (x, y, w, h) in np.asarray(faces).tolist()]
        rects.sort(key=lambda r: r.area, reverse=True)
        if self.debug:
            logger.debug(f"haar: {len(rects)} face(s)")
        return rects
