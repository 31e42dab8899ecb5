import base64
import binascii
import cv2
import httpx
import numpy as np

from booklens                 import ModuleLogger
from booklens.core.exceptions import DecodeError
from dataclasses              import dataclass
from pathlib                  import Path
from PIL                      import Image
from typing                   import Any

logger = ModuleLogger('image_buffer')()

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

# -------------------- Decoding Helpers --------------------

def decode_bytes(data: bytes) -> np.ndarray:
    """
    Decodes an encoded image (PNG, JPEG, ...) into an RGBA array.

    Raises:
        DecodeError: If OpenCV cannot rasterize the data
    """
    if not data:
        raise DecodeError("Empty image data")

    encoded = np.frombuffer(data, dtype = np.uint8)
    image   = cv2.imdecode(encoded, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise DecodeError("Image data could not be decoded")
    return bgr_to_rgba(image)

def decode_data_url(data_url: str) -> np.ndarray:
    """
    Decodes a base64 `data:` URL into an RGBA array.
    """
    header, _, payload = data_url.partition(',')
    if not payload or ';base64' not in header:
        raise DecodeError("Only base64 data URLs are supported")
    try:
        data = base64.b64decode(payload, validate = True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Malformed base64 payload in data URL: {e}") from e
    return decode_bytes(data)

def bgr_to_rgba(image: np.ndarray) -> np.ndarray:
    """
    Converts an OpenCV-decoded array (gray, BGR or BGRA) into RGBA.
    """
    if image.dtype != np.uint8:
        image = cv2.normalize(image, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)

def array_to_pixels(array: np.ndarray) -> np.ndarray:
    """
    Normalizes a caller-supplied array (gray, RGB or RGBA) into buffer storage.
    """
    array = np.asarray(array)
    if array.ndim == 3 and array.shape[2] == 1:
        array = array[:, :, 0]

    if array.ndim == 2:
        pixels = array
    elif array.ndim == 3 and array.shape[2] == 3:
        pixels = np.dstack([array, np.full(array.shape[:2], 255, dtype = array.dtype)])
    elif array.ndim == 3 and array.shape[2] == 4:
        pixels = array
    else:
        raise DecodeError(f"Unsupported pixel array shape: {array.shape}")

    if pixels.size == 0:
        raise DecodeError("Pixel array is empty")
    return np.clip(pixels, 0, 255).astype(np.uint8)

# -------------------- ImageBuffer Class --------------------

@dataclass(frozen = True, eq = False)
class ImageBuffer:
    """
    A 2D grid of pixel samples, either RGBA (H x W x 4) or single-channel intensity (H x W).

    Buffers are treated as values: transforms never write into an existing buffer,
    they build a new one.
    """
    data : np.ndarray

    def __post_init__(self):
        if self.data.dtype != np.uint8:
            raise ValueError(f"ImageBuffer requires uint8 samples, got {self.data.dtype}")
        if self.data.ndim not in (2, 3) or (self.data.ndim == 3 and self.data.shape[2] != 4):
            raise ValueError(f"ImageBuffer requires H x W or H x W x 4 data, got {self.data.shape}")

    # -------------------- Construction --------------------

    @classmethod
    def create(
        cls,
        width    : int,
        height   : int,
        channels : int = 4,
        fill     : int | tuple[int, ...] = 0
    ) -> 'ImageBuffer':
        """
        Allocates a new buffer filled with a constant value.

        Args:
            width    : Width in pixels
            height   : Height in pixels
            channels : 4 for RGBA, 1 for single-channel intensity
            fill     : Scalar or per-channel fill value
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid buffer dimensions: {width}x{height}")
        if channels not in (1, 4):
            raise ValueError(f"Unsupported channel count: {channels}")

        shape = (height, width) if channels == 1 else (height, width, 4)
        data  = np.empty(shape, dtype = np.uint8)
        data[...] = fill
        return cls(data = data)

    @classmethod
    def from_source(cls, source: Any) -> 'ImageBuffer':
        """
        Rasterizes a local image source.

        Args:
            source : ImageBuffer, numpy array, PIL image, encoded bytes, data URL or file path

        Returns:
            ImageBuffer: A buffer owning its own copy of the pixels.

        Raises:
            DecodeError: If the source cannot be rasterized
        """
        if isinstance(source, ImageBuffer):
            return source.copy()

        if isinstance(source, np.ndarray):
            return cls(data = array_to_pixels(source))

        if isinstance(source, Image.Image):
            return cls(data = np.array(source.convert('RGBA')))

        if isinstance(source, (bytes, bytearray, memoryview)):
            return cls(data = decode_bytes(bytes(source)))

        if isinstance(source, str) and source.startswith('data:'):
            return cls(data = decode_data_url(source))

        if isinstance(source, str) and source.startswith(('http://', 'https://')):
            raise DecodeError(f"Remote sources must be fetched with ImageBuffer.load: {source}")

        if isinstance(source, (str, Path)):
            image_path = Path(source)
            if not image_path.is_file():
                raise DecodeError(f"Image not found: {image_path}")
            image = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
            if image is None:
                raise DecodeError(f"Image could not be decoded: {image_path}")
            return cls(data = bgr_to_rgba(image))

        raise DecodeError(f"Unsupported image source type: {type(source).__name__}")

    @classmethod
    async def load(cls, source: Any, timeout: float = 15.0) -> 'ImageBuffer':
        """
        Like from_source, but also fetches http(s) URLs.

        Args:
            source  : Any source accepted by from_source, or a remote URL
            timeout : Request timeout in seconds for remote sources
        """
        if not (isinstance(source, str) and source.startswith(('http://', 'https://'))):
            return cls.from_source(source)

        try:
            async with httpx.AsyncClient(timeout = timeout, follow_redirects = True) as client:
                response = await client.get(source)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise DecodeError(f"Failed to fetch image from {source}: {e}") from e

        logger.info(f"Fetched {len(response.content)} bytes from {source}")
        return cls(data = decode_bytes(response.content))

    # -------------------- Pixel Access --------------------

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def channels(self) -> int:
        return 1 if self.data.ndim == 2 else 4

    @property
    def pixels(self) -> np.ndarray:
        """
        Read-only view of the underlying samples.
        """
        view = self.data.view()
        view.flags.writeable = False
        return view

    def rgba(self) -> np.ndarray:
        """
        Returns a writable RGBA copy of the pixels; intensity data is replicated into R, G, B.
        """
        if self.channels == 4:
            return self.data.copy()
        return cv2.cvtColor(self.data, cv2.COLOR_GRAY2RGBA)

    def gray(self) -> np.ndarray:
        """
        Returns the float luminance (0.299 R + 0.587 G + 0.114 B) of every pixel.
        """
        if self.channels == 1:
            return self.data.astype(np.float64)
        return self.data[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS

    def copy(self) -> 'ImageBuffer':
        return ImageBuffer(data = self.data.copy())

    def crop(self, bbox) -> 'ImageBuffer':
        """
        Returns the sub-image covered by a BoundingBox, clipped to the buffer.
        """
        x0 = max(0, int(bbox.x0))
        y0 = max(0, int(bbox.y0))
        x1 = min(self.width,  int(np.ceil(bbox.x1)))
        y1 = min(self.height, int(np.ceil(bbox.y1)))
        if x1 <= x0 or y1 <= y0:
            raise ValueError(f"Region {bbox} does not overlap a {self.width}x{self.height} image")
        return ImageBuffer(data = self.data[y0:y1, x0:x1].copy())

    def encode(self, extension: str = '.png') -> bytes:
        """
        Encodes the buffer with OpenCV (PNG by default).
        """
        if self.channels == 1:
            image = self.data
        else:
            image = cv2.cvtColor(self.data, cv2.COLOR_RGBA2BGRA)
        success, encoded = cv2.imencode(extension, image)
        if not success:
            raise ValueError(f"Could not encode image as {extension}")
        return encoded.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageBuffer):
            return NotImplemented
        return self.data.shape == other.data.shape and np.array_equal(self.data, other.data)

    def __repr__(self) -> str:
        return f"ImageBuffer({self.width}x{self.height}, channels={self.channels})"
