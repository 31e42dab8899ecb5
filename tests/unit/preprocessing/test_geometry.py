import numpy as np
import pytest

from booklens                             import ImageBuffer
from booklens.core.preprocessing          import deskew, detect_skew_angle, rotate
from booklens.core.preprocessing.geometry import candidate_angles

# -------------------- Rotation --------------------

def test_quarter_turn_swaps_dimensions(text_image):
    rotated = rotate(text_image, 90)

    assert (rotated.width, rotated.height) == (text_image.height, text_image.width)

def test_quarter_turns_restore_original_exactly(noisy_image):
    assert rotate(rotate(noisy_image, 90), 270) == noisy_image
    assert rotate(rotate(noisy_image, 180), 180) == noisy_image

def test_half_turn_reverses_pixels():
    data    = np.arange(2 * 3, dtype = np.uint8).reshape(2, 3)
    rotated = rotate(ImageBuffer(data = data), 180)

    assert np.array_equal(rotated.pixels, data[::-1, ::-1])

def test_quarter_turn_is_counter_clockwise():
    data         = np.zeros((2, 3), dtype = np.uint8)
    data[0, 2]   = 255                                  # top-right corner
    rotated      = rotate(ImageBuffer(data = data), 90)

    assert rotated.pixels[0, 0] == 255                  # becomes top-left

def test_arbitrary_rotation_uses_requested_canvas(text_image):
    rotated = rotate(text_image, 12.5, canvas_size = (360, 280))

    assert (rotated.width, rotated.height) == (360, 280)
    assert rotated.channels == 4

def test_exposed_corners_are_transparent_white(text_image):
    rotated = rotate(text_image, 30)

    assert tuple(rotated.pixels[0, 0]) == (255, 255, 255, 0)

# -------------------- Skew Detection --------------------

def test_candidate_angles_cover_range_in_half_degrees():
    angles = candidate_angles()

    assert len(angles) == 61
    assert angles[0] == -15.0 and angles[-1] == 15.0
    assert 0.0 in angles

@pytest.mark.parametrize("angle", [-8, -3, 4, 9])
def test_detects_synthetic_skew(text_image, angle):
    skewed = rotate(text_image, angle)

    assert abs(detect_skew_angle(skewed) - angle) <= 1.0

def test_aligned_text_has_no_skew(text_image):
    assert detect_skew_angle(text_image) == 0.0

def test_blank_image_has_no_skew():
    blank = ImageBuffer.create(width = 40, height = 30, fill = 255)

    assert detect_skew_angle(blank) == 0.0

# -------------------- Deskew --------------------

def test_deskew_returns_aligned_input_unchanged(text_image):
    assert deskew(text_image) is text_image

def test_deskew_straightens_and_enlarges_canvas(text_image):
    skewed    = rotate(text_image, 6)
    corrected = deskew(skewed)

    assert corrected.width  > skewed.width
    assert corrected.height > skewed.height
    assert abs(detect_skew_angle(corrected)) <= 1.0
