import cv2
import numpy as np

from booklens.core.image_buffer import ImageBuffer

# -------------------- Kernels --------------------

SHARPEN_KERNEL = np.array(
    [
        [ 0, -1,  0],
        [-1,  5, -1],
        [ 0, -1,  0]
    ],
    dtype = np.float32
)

# -------------------- Filter Functions --------------------

def sharpen(buffer: ImageBuffer) -> ImageBuffer:
    """
    Applies the 3x3 sharpening kernel to each RGB channel, clamping to [0, 255].

    The one-pixel border keeps its original values and alpha is copied unchanged.

    Args:
        buffer : Source image

    Returns:
        ImageBuffer: Sharpened image
    """
    rgba      = buffer.rgba()
    rgb       = np.ascontiguousarray(rgba[:, :, :3])
    sharpened = cv2.filter2D(rgb, -1, SHARPEN_KERNEL, borderType = cv2.BORDER_REPLICATE)

    rgba[1:-1, 1:-1, :3] = sharpened[1:-1, 1:-1]
    return ImageBuffer(data = rgba)

def denoise(buffer: ImageBuffer) -> ImageBuffer:
    """
    Replaces each interior pixel with the median of its 3x3 grayscale neighbourhood.

    Medians are read from a grayscale snapshot taken before any pixel is written,
    so earlier writes never feed later medians. Border pixels are left as-is.

    Args:
        buffer : Source image

    Returns:
        ImageBuffer: Denoised image with R = G = B on every interior pixel
    """
    rgba     = buffer.rgba()
    snapshot = np.clip(np.rint(buffer.gray()), 0, 255).astype(np.uint8)
    median   = cv2.medianBlur(snapshot, 3)

    rgba[1:-1, 1:-1, :3] = median[1:-1, 1:-1, None]
    return ImageBuffer(data = rgba)
