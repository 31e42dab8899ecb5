from booklens.core.image_buffer  import ImageBuffer
from booklens.core.preprocessing import PreprocessOptions, deskew, preprocess, rotate
from dataclasses                 import dataclass
from functools                   import cache, partial
from typing                      import Callable

ORIGINAL     = 'Original'
PREPROCESSED = 'Preprocessed'
DESKEWED     = 'Deskewed'

DEFAULT_ROTATIONS = (90, 180, 270)

# -------------------- Data Classes --------------------

@dataclass(frozen = True)
class PassSpec:
    """
    One named rendering of the source image to run recognition on.
    """
    label : str                         # Method label reported on the result
    build : Callable[[], ImageBuffer]   # Produces the rendering; may be CPU-heavy

# -------------------- Plan Construction --------------------

def rotation_label(degrees: int) -> str:
    return f"Rotated {degrees} degrees"

def build_pass_plan(
    source            : ImageBuffer,
    try_preprocessing : bool                     = True,
    try_rotations     : bool                     = True,
    options           : PreprocessOptions | None = None,
    rotation_angles   : tuple[int, ...]          = DEFAULT_ROTATIONS
) -> tuple[PassSpec, ...]:
    """
    Builds the ordered pass plan for one multi-pass recognition.

    The original image always comes first. Preprocessing adds the preprocessed and
    deskewed renderings; rotations are applied to the preprocessed image when
    preprocessing is on, otherwise to the original. The preprocessed image is
    computed at most once per plan.

    Args:
        source            : Decoded source image
        try_preprocessing : Add the 'Preprocessed' and 'Deskewed' passes
        try_rotations     : Add one pass per rotation angle
        options           : Preprocessing toggles
        rotation_angles   : Angles, in degrees, for the rotation passes

    Returns:
        tuple: PassSpec entries in execution order
    """
    preprocessed = cache(partial(preprocess, source, options))
    plan         = [PassSpec(label = ORIGINAL, build = lambda: source)]

    if try_preprocessing:
        plan.append(PassSpec(label = PREPROCESSED, build = preprocessed))
        plan.append(PassSpec(label = DESKEWED,     build = lambda: deskew(preprocessed())))

    if try_rotations:
        base = preprocessed if try_preprocessing else (lambda: source)
        for angle in rotation_angles:
            plan.append(PassSpec(
                label = rotation_label(angle),
                build = partial(lambda degrees: rotate(base(), degrees), angle)
            ))

    return tuple(plan)
