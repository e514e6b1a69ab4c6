import struct

import numpy as np
import pytest

from facetemplate.recognize.matcher import (
    cosine_similarity,
    descriptor_from_bytes,
    descriptor_to_bytes,
    fuse_descriptors,
)


def test_template_is_little_endian_float32():
    blob = descriptor_to_bytes(np.array([1.0, -2.5], dtype=np.float32))
    assert blob == struct.pack("<2f", 1.0, -2.5)


def test_template_decodes_to_descriptor():
    desc = np.arange(1024, dtype=np.float32) / 7.0
    blob = descriptor_to_bytes(desc)
    assert len(blob) == 4096
    assert np.array_equal(descriptor_from_bytes(blob, 1024), desc)


def test_bad_template_size():
    with pytest.raises(ValueError):
        descriptor_from_bytes(b"\x00" * 6)
    with pytest.raises(ValueError):
        descriptor_from_bytes(b"\x00" * 8, dim=1024)


def test_fuse_is_mean():
    a = np.array([1.0, 2.0], dtype=np.float32)
    b = np.array([3.0, 6.0], dtype=np.float32)
    assert fuse_descriptors([a, b]).tolist() == [2.0, 4.0]
    with pytest.raises(ValueError):
        fuse_descriptors([])


def test_cosine_similarity():
    a = np.array([1.0, 0.0, 1.0])
    assert cosine_similarity(a, a * 3) == pytest.approx(1.0)
    assert cosine_similarity(a, -a) == pytest.approx(-1.0)
    assert cosine_similarity(a, np.array([0.0, 1.0, 0.0])) == pytest.approx(0.0)
    assert cosine_similarity(a, np.zeros(3)) == 0.0
    with pytest.raises(ValueError):
        cosine_similarity(a, np.ones(2))
