from booklens.core.recognition_engine import RecognitionResult
from dataclasses                      import dataclass

FULL_LENGTH = 10

@dataclass(frozen = True)
class ScoredResult:
    """
    A recognition result with its ranking score; `order` is its position in the pass plan.
    """
    result : RecognitionResult
    score  : float
    order  : int

def score_result(result: RecognitionResult, full_length: int = FULL_LENGTH) -> float:
    """
    Confidence scaled down for short texts: confidence * min(1, length / full_length).

    A 2-character result at confidence 90 scores 18, so spurious near-empty
    detections lose to longer, slightly less confident readings.
    """
    text_length = len(result.text.strip())
    return result.confidence * min(1.0, text_length / full_length)

def rank_results(results: list[RecognitionResult], full_length: int = FULL_LENGTH) -> list[ScoredResult]:
    """
    Scores results and sorts them best first; equal scores keep plan order.
    """
    scored = [
        ScoredResult(result = result, score = score_result(result, full_length), order = order)
        for order, result in enumerate(results)
    ]
    return sorted(scored, key = lambda scored_result: -scored_result.score)

def select_best(results: list[RecognitionResult], full_length: int = FULL_LENGTH) -> ScoredResult:
    """
    Returns the highest scoring result, earliest in plan order on ties.

    Raises:
        ValueError: If there are no results to choose from
    """
    if not results:
        raise ValueError("No recognition results to select from")
    return rank_results(results, full_length)[0]
