import numpy as np
import pytest

from conftest import RowEngine, SequenceEngine
from facetemplate.config import RecognitionConfig
from facetemplate.recognize.embedder import SphereFaceEmbedder, recognition_crop_box
from facetemplate.recognize.types import InferenceError

KPS = np.array([[80, 90], [120, 90], [100, 110], [85, 130], [115, 130]], dtype=np.int32)


def _gradient_image(h=200, w=200):
    row = np.linspace(0, 255, w).astype(np.uint8)
    return np.repeat(np.tile(row, (h, 1))[..., None], 3, axis=2)


def test_crop_box_adds_margin():
    # 40x40 landmark box, 30 px margin per side
    assert recognition_crop_box(KPS, (200, 200, 3)) == (50, 60, 150, 160)


def test_crop_box_is_clipped_to_image():
    kps = KPS - np.array([70, 80], dtype=np.int32)
    assert recognition_crop_box(kps, (100, 120, 3)) == (0, 0, 80, 80)
    assert recognition_crop_box(KPS, (150, 140, 3)) == (50, 60, 140, 150)


def test_crop_box_margin_truncates():
    kps = np.array([[0, 0], [10, 0], [5, 5], [0, 7], [10, 7]], dtype=np.int32)
    # int(10 * 0.75) = 7, int(7 * 0.75) = 5
    assert recognition_crop_box(kps, (100, 100)) == (0, 0, 17, 12)


def test_preprocess_range_and_size():
    emb = SphereFaceEmbedder(RowEngine())
    x = emb.preprocess(_gradient_image(), KPS)
    assert x.shape == (128, 128)
    assert x.dtype == np.float32
    assert x.min() >= -0.5
    assert x.max() <= 0.5


def test_descriptor_halves_come_from_crop_and_mirror():
    engine = RowEngine()
    emb = SphereFaceEmbedder(engine)
    img = _gradient_image()
    desc = emb.extract(img, KPS)
    x = emb.preprocess(img, KPS)

    assert desc.shape == (1024,)
    assert desc.dtype == np.float32
    assert np.array_equal(desc[:512], np.tile(x[0], 4))
    assert np.array_equal(desc[512:], np.tile(x[0][::-1], 4))
    assert len(engine.inputs) == 2
    assert np.array_equal(engine.inputs[1], engine.inputs[0][:, ::-1])


def test_descriptor_is_deterministic():
    emb = SphereFaceEmbedder(RowEngine())
    img = _gradient_image()
    assert np.array_equal(emb.extract(img, KPS), emb.extract(img, KPS))


def test_wrong_feature_size_is_an_inference_error():
    emb = SphereFaceEmbedder(SequenceEngine(np.zeros(100, dtype=np.float32)))
    with pytest.raises(InferenceError):
        emb.extract(_gradient_image(), KPS)


def test_empty_landmarks_rejected():
    engine = SequenceEngine(np.zeros(512, dtype=np.float32))
    emb = SphereFaceEmbedder(engine)
    with pytest.raises(ValueError):
        emb.extract(_gradient_image(), np.zeros((0, 2), dtype=np.int32))
    assert engine.calls == 0


def test_custom_feature_dim():
    emb = SphereFaceEmbedder(SequenceEngine(np.ones(128, dtype=np.float32)), RecognitionConfig(feature_dim=128))
    assert emb.descriptor_dim == 256
    assert emb.extract(_gradient_image(), KPS).shape == (256,)


def test_crop_box_outside_image_rejected():
    # landmarks of a face box lying left of the frame
    kps = np.array([[-54, 40], [-39, 40], [-46, 50], [-52, 60], [-41, 60]], dtype=np.int32)
    with pytest.raises(ValueError):
        recognition_crop_box(kps, (100, 100, 3))
    with pytest.raises(ValueError):
        recognition_crop_box(kps + np.array([300, 0], dtype=np.int32), (100, 100, 3))


def test_extract_refuses_face_outside_image():
    engine = RowEngine()
    emb = SphereFaceEmbedder(engine)
    kps = np.array([[-54, 40], [-39, 40], [-46, 50], [-52, 60], [-41, 60]], dtype=np.int32)
    with pytest.raises(ValueError):
        emb.extract(_gradient_image(100, 100), kps)
    assert engine.inputs == []
