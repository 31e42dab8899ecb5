from booklens.core.recognition_engine import RecognitionResult

VERTICAL_ASPECT_RATIO = 2

def is_likely_vertical(result: RecognitionResult) -> bool:
    """
    Flags results that probably come from vertical spine text.

    A line counts as vertical when its box is more than twice as tall as it is wide.
    The result is vertical when such lines are more than half of all lines; lines
    without a box still count towards the total.

    Args:
        result : Recognition result to inspect

    Returns:
        bool: True if most lines look vertical
    """
    if not result.lines:
        return False

    vertical_count = sum(
        1 for line in result.lines
        if line.bbox is not None and line.bbox.height > VERTICAL_ASPECT_RATIO * line.bbox.width
    )
    return vertical_count > len(result.lines) / 2

detect_vertical_text = is_likely_vertical
