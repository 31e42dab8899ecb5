from booklens                                 import ModuleLogger
from booklens.core.image_buffer               import ImageBuffer
from booklens.core.preprocessing.binarization import (
    DEFAULT_CONTRAST, FIXED_THRESHOLD, contrast_and_binarize, grayscale, otsu_threshold
)
from booklens.core.preprocessing.filters      import denoise, sharpen
from dataclasses                              import dataclass
from typing                                   import Any

logger = ModuleLogger('preprocessing')()

# -------------------- Data Classes --------------------

@dataclass(frozen = True)
class PreprocessOptions:
    """
    Toggles for the preprocessing stages.
    """
    sharpen            : bool  = True              # Apply the 3x3 sharpening kernel first
    adaptive_threshold : bool  = True              # Otsu threshold instead of the fixed 128
    denoise            : bool  = True              # 3x3 median filter after grayscale
    contrast_level     : float = DEFAULT_CONTRAST  # Contrast multiplier before binarization

    @classmethod
    def from_config(cls, config: Any) -> 'PreprocessOptions':
        """
        Builds options from the `preprocessing` section of the OCR config.

        Args:
            config : Mapping (or OmegaConf node) with any of the option keys

        Returns:
            PreprocessOptions: Options with unspecified keys left at their defaults
        """
        known = cls.__dataclass_fields__.keys()
        return cls(**{key: config[key] for key in known if key in config})

# -------------------- Preprocess --------------------

def preprocess(
    buffer  : ImageBuffer,
    options : PreprocessOptions | None = None
) -> ImageBuffer:
    """
    Runs sharpen -> grayscale -> denoise -> threshold -> contrast and binarize.

    Args:
        buffer  : Source image
        options : Stage toggles (defaults enable everything)

    Returns:
        ImageBuffer: Binarized image ready for recognition
    """
    options   = options or PreprocessOptions()
    processed = buffer

    if options.sharpen:
        processed = sharpen(processed)
        logger.debug("Applied 'sharpen' step.")

    processed = grayscale(processed)

    if options.denoise:
        processed = denoise(processed)
        logger.debug("Applied 'denoise' step.")

    threshold = otsu_threshold(processed) if options.adaptive_threshold else FIXED_THRESHOLD
    processed = contrast_and_binarize(processed, threshold = threshold, contrast_level = options.contrast_level)

    logger.debug(
        f"Preprocessed {buffer.width}x{buffer.height} image with threshold {threshold} "
        f"(adaptive={options.adaptive_threshold}, contrast={options.contrast_level})"
    )
    return processed
