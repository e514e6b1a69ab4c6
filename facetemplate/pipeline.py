"""
Image(s) -> face rect -> five landmarks (+ flip check) -> 1024-d template.

    cfg = load_config("config.json")
    pipe = TemplatePipeline.from_config(cfg)
    tmpl, eyes = pipe.create_template([img1, img2])
    score = pipe.match_templates(tmpl, other)
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import PipelineConfig
from .detect import FaceDetector, HaarFaceDetector
from .log import get_logger
from .recognize.embedder import SphereFaceEmbedder
from .recognize.inference import OnnxInferenceEngine
from .recognize.landmarks import LandmarksDetector, create_landmarks_detector
from .recognize.matcher import cosine_similarity, descriptor_from_bytes, descriptor_to_bytes, fuse_descriptors
from .recognize.types import EyePair

logger = get_logger(__name__)

# score for a comparison involving a template that holds no face
NO_FACE_SCORE = -1.0


class TemplatePipeline:
    def __init__(
        self,
        face_detector: FaceDetector,
        landmarks: LandmarksDetector,
        embedder: SphereFaceEmbedder,
        debug: bool = False,
    ):
        self.face_detector = face_detector
        self.landmarks = landmarks
        self.embedder = embedder
        self.debug = bool(debug)

    @classmethod
    def from_config(cls, cfg: Optional[PipelineConfig] = None, debug: bool = False) -> "TemplatePipeline":
        cfg = cfg or PipelineConfig()
        cfg.validate()

        lm_engine = None
        if cfg.landmarks.backend == "dnet":
            lm_engine = OnnxInferenceEngine(
                cfg.model_file(cfg.landmarks.model_path), layout=cfg.layout, providers=cfg.providers
            )
        landmarks = create_landmarks_detector(
            lm_engine,
            cfg.landmarks,
            task_path=cfg.model_file(cfg.landmarks.mediapipe_task_path),
            debug=debug,
        )
        rec_engine = OnnxInferenceEngine(
            cfg.model_file(cfg.recognition.model_path), layout=cfg.layout, providers=cfg.providers
        )
        return cls(
            face_detector=HaarFaceDetector(cfg.detector, debug=debug),
            landmarks=landmarks,
            embedder=SphereFaceEmbedder(rec_engine, cfg.recognition, debug=debug),
            debug=debug,
        )

    def describe(self, image: np.ndarray) -> Tuple[Optional[np.ndarray], EyePair]:
        """Descriptor of the largest face, or None when there is no reliable face."""
        rects = self.face_detector.detect(image)
        if not rects:
            if self.debug:
                logger.debug("no face detected")
            return None, EyePair()

        kps = self.landmarks.detect(image, rects[0])
        if len(kps) == 0:
            return None, EyePair()
        return self.embedder.extract(image, kps), EyePair.from_landmarks(kps)

    def create_template(self, images: Sequence[np.ndarray]) -> Tuple[bytes, List[EyePair]]:
        descs: List[np.ndarray] = []
        eyes: List[EyePair] = []
        for image in images:
            desc, eye = self.describe(image)
            eyes.append(eye)
            if desc is not None:
                descs.append(desc)

        if not descs:
            return b"", eyes
        return descriptor_to_bytes(fuse_descriptors(descs)), eyes

    def match_templates(self, a: bytes, b: bytes) -> float:
        if not a or not b:
            return NO_FACE_SCORE
        dim = self.embedder.descriptor_dim
        return cosine_similarity(descriptor_from_bytes(a, dim), descriptor_from_bytes(b, dim))
