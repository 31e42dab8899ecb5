from dataclasses import dataclass, replace
from typing      import Any

# -------------------- Data Classes --------------------

@dataclass(frozen = True)
class BoundingBox:
    """
    Axis-aligned box in image pixel coordinates.
    """
    x0 : float
    y0 : float
    x1 : float
    y1 : float

    def __post_init__(self):
        if self.x1 < self.x0 or self.y1 < self.y0:
            raise ValueError(f"Invalid bounding box edges: ({self.x0}, {self.y0}, {self.x1}, {self.y1})")

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    def offset(self, dx: float, dy: float) -> 'BoundingBox':
        return BoundingBox(x0 = self.x0 + dx, y0 = self.y0 + dy, x1 = self.x1 + dx, y1 = self.y1 + dy)

    @classmethod
    def from_points(cls, points: Any) -> 'BoundingBox':
        """
        Smallest box containing a sequence of (x, y) points, such as a detection quadrilateral.
        """
        xs = [float(x) for x, _ in points]
        ys = [float(y) for _, y in points]
        return cls(x0 = min(xs), y0 = min(ys), x1 = max(xs), y1 = max(ys))

    def to_dict(self) -> dict[str, float]:
        return {'x0': self.x0, 'y0': self.y0, 'x1': self.x1, 'y1': self.y1}

@dataclass(frozen = True)
class TextRegion:
    """
    One recognized word, line or block.
    """
    text       : str
    confidence : float                     # 0-100
    bbox       : BoundingBox | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'text'       : self.text,
            'confidence' : self.confidence,
            'bbox'       : self.bbox.to_dict() if self.bbox else None
        }

@dataclass(frozen = True)
class RecognitionResult:
    """
    Output of a single recognition attempt, labelled with the preprocessing path that produced it.
    """
    text       : str
    confidence : float                         # 0-100
    words      : tuple[TextRegion, ...] = ()
    lines      : tuple[TextRegion, ...] = ()
    blocks     : tuple[TextRegion, ...] = ()
    method     : str                    = ''

    def with_method(self, method: str) -> 'RecognitionResult':
        return replace(self, method = method)

    def to_dict(self) -> dict[str, Any]:
        return {
            'text'       : self.text,
            'confidence' : self.confidence,
            'method'     : self.method,
            'words'      : [word.to_dict()  for word  in self.words],
            'lines'      : [line.to_dict()  for line  in self.lines],
            'blocks'     : [block.to_dict() for block in self.blocks]
        }

@dataclass(frozen = True)
class EngineStatus:
    """
    Snapshot of a recognition engine's lifecycle.
    """
    initialized  : bool       = False
    initializing : bool       = False
    language     : str | None = None

@dataclass(frozen = True)
class ProgressEvent:
    """
    Progress notification; progress is a fraction in [0, 1].
    """
    status   : str
    progress : float = 0.0
