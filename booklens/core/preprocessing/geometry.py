import cv2
import math
import numpy as np

from booklens.core.image_buffer import ImageBuffer

# Exposed corners become transparent white so they never count as dark text pixels.
BACKGROUND_FILL = (255, 255, 255, 0)

SKEW_MIN_ANGLE      = -15.0
SKEW_MAX_ANGLE      = 15.0
SKEW_ANGLE_STEP     = 0.5
SKEW_DARK_THRESHOLD = 128
MIN_CORRECTION      = 0.5

# -------------------- Rotation --------------------

def rotate(
    buffer      : ImageBuffer,
    degrees     : float,
    canvas_size : tuple[int, int] | None = None,
    fill        : tuple[int, int, int, int] = BACKGROUND_FILL
) -> ImageBuffer:
    """
    Rotates the image content about its center.

    Positive angles turn the content counter-clockwise as displayed. Quarter turns
    are exact and swap width and height for 90 and 270 degrees; any other angle is
    resampled onto a canvas of the original size unless canvas_size is given.

    Args:
        buffer      : Source image
        degrees     : Rotation angle in degrees
        canvas_size : Optional (width, height) of the output canvas
        fill        : RGBA value for areas not covered by the rotated content

    Returns:
        ImageBuffer: Rotated image
    """
    normalized = degrees % 360

    if canvas_size is None and normalized % 90 == 0:
        quarter_turns = int(normalized // 90)
        return ImageBuffer(data = np.ascontiguousarray(np.rot90(buffer.data, quarter_turns)))

    height, width         = buffer.height, buffer.width
    out_width, out_height = canvas_size or (width, height)

    matrix = cv2.getRotationMatrix2D(((width - 1) / 2, (height - 1) / 2), degrees, 1.0)
    matrix[0, 2] += (out_width  - width)  / 2
    matrix[1, 2] += (out_height - height) / 2

    rotated = cv2.warpAffine(
        buffer.rgba(),
        matrix,
        (out_width, out_height),
        flags       = cv2.INTER_LINEAR,
        borderMode  = cv2.BORDER_CONSTANT,
        borderValue = fill
    )
    return ImageBuffer(data = rotated)

# -------------------- Skew Detection & Correction --------------------

def candidate_angles(
    min_angle : float = SKEW_MIN_ANGLE,
    max_angle : float = SKEW_MAX_ANGLE,
    step      : float = SKEW_ANGLE_STEP
) -> np.ndarray:
    """
    Ascending candidate skew angles, both ends included (61 angles by default).
    """
    count = int(round((max_angle - min_angle) / step)) + 1
    return min_angle + step * np.arange(count)

def detect_skew_angle(
    buffer         : ImageBuffer,
    min_angle      : float = SKEW_MIN_ANGLE,
    max_angle      : float = SKEW_MAX_ANGLE,
    step           : float = SKEW_ANGLE_STEP,
    dark_threshold : int   = SKEW_DARK_THRESHOLD
) -> float:
    """
    Estimates text skew by maximizing the variance of sheared horizontal projections.

    Each dark pixel (x, y) is projected onto row round(y + x * tan(angle)); when the
    angle matches the skew, text lines collapse onto few rows and the projection
    histogram peaks sharply. The histogram spans every row reachable at the steepest
    candidate, so variances are comparable across angles.

    Args:
        buffer         : Source image
        min_angle      : Smallest candidate angle in degrees
        max_angle      : Largest candidate angle in degrees
        step           : Spacing between candidates in degrees
        dark_threshold : Intensities below this count as text

    Returns:
        float: Detected angle in degrees; 0.0 when the image has no dark pixels
    """
    rows, cols = np.nonzero(buffer.gray() < dark_threshold)
    if rows.size == 0:
        return 0.0

    steepest  = math.tan(math.radians(max(abs(min_angle), abs(max_angle))))
    max_shift = math.ceil((buffer.width - 1) * steepest)
    length    = buffer.height + 2 * max_shift + 1

    best_angle    = 0.0
    best_variance = -1.0

    for angle in candidate_angles(min_angle = min_angle, max_angle = max_angle, step = step):
        sheared    = np.floor(rows + cols * math.tan(math.radians(angle)) + 0.5).astype(np.int64)
        projection = np.bincount(sheared + max_shift, minlength = length)
        variance   = float(projection.var())

        if variance > best_variance:
            best_variance = variance
            best_angle    = float(angle)

    return best_angle

def deskew(
    buffer         : ImageBuffer,
    min_correction : float = MIN_CORRECTION
) -> ImageBuffer:
    """
    Detects skew and rotates it away.

    Angles below min_correction return the input buffer unchanged. Otherwise the
    image is rotated by the negative of the detected angle onto a canvas large
    enough to hold the rotated content.

    Args:
        buffer         : Source image
        min_correction : Smallest absolute angle worth correcting, in degrees

    Returns:
        ImageBuffer: Deskewed image, or the input itself when already aligned
    """
    angle = detect_skew_angle(buffer)
    if abs(angle) < min_correction:
        return buffer

    theta      = math.radians(abs(angle))
    cos, sin   = math.cos(theta), math.sin(theta)
    new_width  = math.ceil(buffer.width * cos + buffer.height * sin)
    new_height = math.ceil(buffer.width * sin + buffer.height * cos)

    return rotate(buffer, -angle, canvas_size = (new_width, new_height))
