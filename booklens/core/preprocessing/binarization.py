import numpy as np

from booklens.core.image_buffer import ImageBuffer

FIXED_THRESHOLD  = 128
DEFAULT_CONTRAST = 1.5

# -------------------- Grayscale --------------------

def grayscale(buffer: ImageBuffer) -> ImageBuffer:
    """
    Replaces R, G and B with the pixel luminance (0.299 R + 0.587 G + 0.114 B).
    Alpha is left untouched.
    """
    rgba      = buffer.rgba()
    luminance = np.clip(np.rint(buffer.gray()), 0, 255).astype(np.uint8)

    rgba[:, :, :3] = luminance[:, :, None]
    return ImageBuffer(data = rgba)

# -------------------- Thresholding --------------------

def intensity_values(gray_data: ImageBuffer | np.ndarray) -> np.ndarray:
    """
    Integer intensities 0..255 of a grayscale image.

    Buffers use their luminance; raw arrays are taken as intensities, reading the
    first channel of multi-channel data (R = G = B after grayscale).
    """
    if isinstance(gray_data, ImageBuffer):
        values = np.rint(gray_data.gray())
    else:
        values = np.asarray(gray_data)
        if values.ndim == 3:
            values = values[:, :, 0]
    return np.clip(values, 0, 255).astype(np.int64).ravel()

def otsu_threshold(gray_data: ImageBuffer | np.ndarray) -> int:
    """
    Computes Otsu's global threshold.

    Scans candidate thresholds 0..255 in ascending order, tracking background and
    foreground weights and intensity sums, and keeps the first threshold that
    maximizes the between-class variance wB * wF * (mB - mF)^2.

    Args:
        gray_data : Grayscale buffer or array of intensities

    Returns:
        int: Threshold in [0, 255]; 0 when no split separates the pixels
    """
    histogram = np.bincount(intensity_values(gray_data), minlength = 256).astype(np.float64)
    levels    = np.arange(256, dtype = np.float64)
    total     = histogram.sum()
    sum_all   = levels @ histogram

    weight_bg = np.cumsum(histogram)
    weight_fg = total - weight_bg
    sum_bg    = np.cumsum(levels * histogram)
    valid     = (weight_bg > 0) & (weight_fg > 0)

    between = np.zeros(256, dtype = np.float64)
    mean_bg = sum_bg[valid] / weight_bg[valid]
    mean_fg = (sum_all - sum_bg[valid]) / weight_fg[valid]
    between[valid] = weight_bg[valid] * weight_fg[valid] * (mean_bg - mean_fg) ** 2

    if between.max() <= 0:
        return 0
    return int(np.argmax(between))

# -------------------- Contrast & Binarization --------------------

def contrast_factor(contrast_level: float) -> float:
    """
    Contrast-stretch factor 259 (C*255 + 255) / (255 (259 - C*255)).

    Note the factor turns negative (inverting the image) once C*255 exceeds 259.
    """
    denominator = 255 * (259 - contrast_level * 255)
    if np.isclose(denominator, 0):
        raise ValueError(f"Contrast level {contrast_level} makes the contrast factor undefined")
    return (259 * (contrast_level * 255 + 255)) / denominator

def contrast_and_binarize(
    buffer         : ImageBuffer,
    threshold      : int,
    contrast_level : float = DEFAULT_CONTRAST
) -> ImageBuffer:
    """
    Stretches contrast around mid-gray and binarizes the result.

    Args:
        buffer         : Source image
        threshold      : Pixels whose enhanced value exceeds this become 255, others 0
        contrast_level : Contrast multiplier C

    Returns:
        ImageBuffer: Image whose R, G, B samples are all 0 or 255
    """
    factor   = contrast_factor(contrast_level)
    enhanced = np.clip(factor * (buffer.gray() - 128) + 128, 0, 255)
    binary   = np.where(enhanced > threshold, 255, 0).astype(np.uint8)

    rgba = buffer.rgba()
    rgba[:, :, :3] = binary[:, :, None]
    return ImageBuffer(data = rgba)
