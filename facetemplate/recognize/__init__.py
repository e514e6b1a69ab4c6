from .crop import CoordinateCropper, square_crop
from .embedder import SphereFaceEmbedder
from .landmarks import DnetLandmarksDetector, FlipConsistencyGate, LandmarksDetector
from .types import CropTransform, EyePair, InferenceError, Rect

__all__ = [
    "CoordinateCropper",
    "square_crop",
    "SphereFaceEmbedder",
    "DnetLandmarksDetector",
    "FlipConsistencyGate",
    "LandmarksDetector",
    "CropTransform",
    "EyePair",
    "InferenceError",
    "Rect",
]
