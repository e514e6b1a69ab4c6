"""
Configuration for the template pipeline.
Defaults match the deployed models:
- landmarks: 64x64 gray input, (x - 127.5) / 128
- recognition: 128x128 gray input, x / 255 - 0.5, 512 features per pass
- flip consistency check disabled
Values can be overridden from a JSON file, e.g.

    {"models_dir": "/opt/models", "landmarks": {"check_flip_consistency": true, "max_flip_distance": 12}}
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .log import get_logger

logger = get_logger(__name__)


# -------------------------
# Sections
# -------------------------

@dataclass
class LandmarksConfig:
    backend: str = "dnet"  # "dnet" | "mediapipe"
    model_path: str = "dnet_tffd_006.onnx"
    mediapipe_task_path: str = "face_landmarker.task"
    input_size: int = 64
    pixel_mean: float = 127.5
    pixel_scale: float = 0.0078125
    check_flip_consistency: bool = False
    max_flip_distance: float = 10000.0


@dataclass
class RecognitionConfig:
    model_path: str = "fa_108_33-125000.onnx"
    input_size: int = 128
    margin_ratio: float = 0.75
    feature_dim: int = 512


@dataclass
class DetectorConfig:
    haar_xml: Optional[str] = None
    scale_factor: float = 1.1
    min_neighbors: int = 5
    min_size: Tuple[int, int] = (40, 40)


@dataclass
class EvalConfig:
    fpr_dividers: Tuple[int, ...] = (10, 100, 1000)
    image_root: str = "."
    log_every: int = 100


@dataclass
class PipelineConfig:
    models_dir: str = "models"
    layout: str = "NHWC"
    providers: Tuple[str, ...] = ("CPUExecutionProvider",)
    landmarks: LandmarksConfig = field(default_factory=LandmarksConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    evaluation: EvalConfig = field(default_factory=EvalConfig)

    def model_file(self, path: str) -> str:
        p = Path(path)
        if p.is_absolute():
            return str(p)
        return str(Path(self.models_dir) / p)

    def validate(self) -> None:
        errors = []
        if self.landmarks.backend not in ("dnet", "mediapipe"):
            errors.append(f"landmarks.backend must be 'dnet' or 'mediapipe', got {self.landmarks.backend!r}")
        if self.landmarks.input_size <= 0 or self.recognition.input_size <= 0:
            errors.append("input sizes must be positive")
        if self.landmarks.max_flip_distance < 0:
            errors.append("landmarks.max_flip_distance must be >= 0")
        if self.recognition.margin_ratio < 0:
            errors.append("recognition.margin_ratio must be >= 0")
        if self.recognition.feature_dim <= 0:
            errors.append("recognition.feature_dim must be positive")
        if self.layout not in ("NHWC", "NCHW"):
            errors.append(f"layout must be 'NHWC' or 'NCHW', got {self.layout!r}")
        if any(d < 1 for d in self.evaluation.fpr_dividers):
            errors.append("evaluation.fpr_dividers must be >= 1")
        if errors:
            raise ValueError("Invalid configuration:\n  - " + "\n  - ".join(errors))


# -------------------------
# Loading
# -------------------------

def _merge(obj: Any, updates: Dict[str, Any], prefix: str = "") -> None:
    names = {f.name for f in fields(obj)}
    for key, value in updates.items():
        if key not in names:
            raise ValueError(f"Unknown configuration key: {prefix}{key}")
        current = getattr(obj, key)
        if is_dataclass(current) and isinstance(value, dict):
            _merge(current, value, prefix=f"{prefix}{key}.")
        elif isinstance(current, tuple) and isinstance(value, list):
            setattr(obj, key, tuple(value))
        else:
            setattr(obj, key, value)


def config_from_dict(data: Dict[str, Any]) -> PipelineConfig:
    cfg = PipelineConfig()
    _merge(cfg, data)
    cfg.validate()
    return cfg


def load_config(path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """Defaults, updated with the JSON file at `path` when given."""
    if path is None:
        cfg = PipelineConfig()
        cfg.validate()
        return cfg

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    cfg = config_from_dict(data)
    logger.info(f"Configuration loaded from {path}")
    return cfg
