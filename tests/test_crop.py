import numpy as np
import pytest

from facetemplate.recognize.crop import CoordinateCropper, _round, square_crop
from facetemplate.recognize.types import Rect


def _image(h=100, w=100, value=200):
    return np.full((h, w, 3), value, dtype=np.uint8)


def test_rect_inside_image_gives_full_square():
    buf, t = square_crop(_image(), Rect(20, 30, 60, 50))
    # n = 40; ends are inclusive +1, so the pre-resize square is (n+1) x (n+1), not n x n
    assert (t.img_xbegin, t.img_ybegin, t.img_xend, t.img_yend) == (20, 20, 61, 61)
    assert buf.shape == (41, 41, 3)
    assert t.face_width == t.face_height == 41
    assert t.dst_box == (0, 0, 41, 41)
    assert np.all(buf == 200)


def test_output_is_always_model_size():
    cropper = CoordinateCropper(64)
    img = _image()
    for rect in [Rect(20, 30, 60, 50), Rect(-50, -50, 10, 10), Rect(90, 5, 180, 40), Rect(300, 300, 340, 360)]:
        out, _ = cropper.crop(img, rect)
        assert out.shape == (64, 64, 3)


def test_left_overflow_is_black():
    buf, t = square_crop(_image(), Rect(-10, 10, 30, 50))
    assert (t.img_xbegin, t.img_xend) == (-10, 31)
    assert t.src_box == (0, 10, 31, 51)
    assert t.dst_box == (10, 0, 41, 41)
    assert np.all(buf[:, :10] == 0)
    assert np.all(buf[:, 10:] == 200)


def test_bottom_right_overflow_is_black():
    buf, t = square_crop(_image(), Rect(80, 80, 120, 120))
    assert t.src_box == (80, 80, 100, 100)
    assert t.dst_box == (0, 0, 20, 20)
    assert np.all(buf[:20, :20] == 200)
    assert np.all(buf[20:, :] == 0)
    assert np.all(buf[:, 20:] == 0)


def test_copied_region_matches_image():
    img = np.random.RandomState(0).randint(0, 255, size=(50, 70, 3)).astype(np.uint8)
    buf, t = square_crop(img, Rect(-5, -8, 25, 12))
    sx1, sy1, sx2, sy2 = t.src_box
    dx1, dy1, dx2, dy2 = t.dst_box
    assert (dx2 - dx1, dy2 - dy1) == (sx2 - sx1, sy2 - sy1)
    assert np.array_equal(buf[dy1:dy2, dx1:dx2], img[sy1:sy2, sx1:sx2])


def test_rect_outside_image_is_all_black():
    buf, _ = square_crop(_image(), Rect(200, 200, 240, 240))
    assert buf.shape == (41, 41, 3)
    assert not buf.any()


def test_gray_image_supported():
    buf, _ = square_crop(np.full((40, 40), 7, dtype=np.uint8), Rect(10, 10, 20, 20))
    assert buf.shape == (11, 11)


@pytest.mark.parametrize("v,expected", [(2.5, 3), (-2.5, -2), (2.4, 2), (-0.4, 0), (10.0, 10)])
def test_round_half_up(v, expected):
    assert _round(v) == expected


def test_transform_maps_model_space_to_image():
    _, t = square_crop(_image(), Rect(20, 20, 60, 60))
    pts = t.to_image(np.array([[0.0, 0.0], [0.5, 0.25]]))
    assert pts[0].tolist() == [20.0, 20.0]
    assert pts[1, 0] == pytest.approx(0.5 * 41 + 20)
    assert pts[1, 1] == pytest.approx(0.25 * 41 + 20)
