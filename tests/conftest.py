from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import sys
import numpy as np
import pytest

# Ensure repo root is on sys.path so tests run without installing the package.
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


def dnet_output(points: Sequence[Sequence[float]]) -> np.ndarray:
    """
    88-value landmark output placing (x,y) model-space points for
    left_eye, right_eye, nose, mouth_left, mouth_right.
    """
    out = np.zeros(88, dtype=np.float32)
    groups = [(26, 27, 29, 30), (20, 21, 23, 24), (13,), (37,), (31,)]
    for g, (x, y) in zip(groups, points):
        for i in g:
            out[i] = x
            out[i + 43] = y
    return out


class SequenceEngine:
    """Returns outputs[i] on the i-th call (the last one repeats) and records inputs."""

    def __init__(self, *outputs: np.ndarray):
        self.outputs = list(outputs)
        self.inputs: List[np.ndarray] = []

    @property
    def calls(self) -> int:
        return len(self.inputs)

    def infer(self, image: np.ndarray) -> List[np.ndarray]:
        self.inputs.append(np.array(image, copy=True))
        out = self.outputs[min(len(self.inputs) - 1, len(self.outputs) - 1)]
        return [np.array(out, copy=True)]


class RowEngine:
    """Recognition stub: first image row tiled to 512 values."""

    def __init__(self):
        self.inputs: List[np.ndarray] = []

    def infer(self, image: np.ndarray) -> List[np.ndarray]:
        self.inputs.append(np.array(image, copy=True))
        return [np.tile(image[0], 512 // image.shape[1]).astype(np.float32)[None, :]]


# symmetric face used across landmark tests
SYMMETRIC_POINTS = [(0.3, 0.4), (0.7, 0.4), (0.5, 0.55), (0.35, 0.75), (0.65, 0.75)]


@pytest.fixture
def symmetric_image() -> np.ndarray:
    img = np.zeros((101, 101, 3), dtype=np.uint8)
    img[30:71, 30:71] = 120
    img[45:50, 38:46] = 250
    img[45:50, 55:63] = 250
    # mirror symmetric about the centre column
    img[:] = np.maximum(img, img[:, ::-1])
    return img
