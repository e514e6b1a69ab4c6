from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

import numpy as np
import onnxruntime as ort

from ..log import get_logger

logger = get_logger(__name__)


class InferenceEngine(Protocol):
    """
    Anything that maps one normalized image to its output tensors.
    Calls block; implementations are not expected to be thread safe.
    """

    def infer(self, image: np.ndarray) -> List[np.ndarray]:
        ...


def to_model_input(image: np.ndarray, layout: str = "NHWC") -> np.ndarray:
    """(H,W) or (H,W,C) float image -> 4-D float32 batch of one."""
    x = np.asarray(image, dtype=np.float32)
    if x.ndim == 2:
        x = x[..., None]
    if x.ndim != 3:
        raise ValueError(f"Expected a 2-D or 3-D image, got shape {x.shape}")
    if layout == "NCHW":
        x = np.transpose(x, (2, 0, 1))
    elif layout != "NHWC":
        raise ValueError(f"Unsupported layout: {layout}")
    return np.ascontiguousarray(x[None, ...])


class OnnxInferenceEngine:
    """
    ONNX Runtime session wrapper.
    Input: normalized (H,W) image, batched according to `layout`.
    Output: every model output, in session order.
    """

    def __init__(
        self,
        model_path: str,
        layout: str = "NHWC",
        providers: Sequence[str] = ("CPUExecutionProvider",),
        output_names: Optional[Sequence[str]] = None,
    ):
        self.model_path = model_path
        self.layout = layout
        try:
            self.sess = ort.InferenceSession(model_path, providers=list(providers))
        except Exception as e:
            raise RuntimeError(f"Failed to load model {model_path}: {e}") from e

        self.in_name = self.sess.get_inputs()[0].name
        if output_names is None:
            output_names = [o.name for o in self.sess.get_outputs()]
        self.out_names = list(output_names)

        logger.info(
            f"model loaded: {model_path} input={self.in_name} {self.sess.get_inputs()[0].shape} "
            f"outputs={self.out_names}"
        )

    def infer(self, image: np.ndarray) -> List[np.ndarray]:
        x = to_model_input(image, self.layout)
        return list(self.sess.run(self.out_names, {self.in_name: x}))
