import base64
import functools
import httpx
import numpy as np
import pytest

from booklens                          import DecodeError, ImageBuffer
from booklens.core.image_buffer        import buffer as buffer_module
from booklens.core.recognition_engine  import BoundingBox
from PIL                               import Image

# -------------------- Construction --------------------

def test_create_fills_every_pixel():
    buffer = ImageBuffer.create(width = 5, height = 3, fill = (1, 2, 3, 4))

    assert (buffer.width, buffer.height, buffer.channels) == (5, 3, 4)
    assert np.all(buffer.pixels == np.array([1, 2, 3, 4], dtype = np.uint8))

def test_create_rejects_empty_dimensions():
    with pytest.raises(ValueError):
        ImageBuffer.create(width = 0, height = 3)

def test_rgb_array_gains_opaque_alpha():
    rgb    = np.zeros((4, 6, 3), dtype = np.uint8)
    buffer = ImageBuffer.from_source(rgb)

    assert buffer.channels == 4
    assert np.all(buffer.pixels[:, :, 3] == 255)

def test_single_channel_array_stays_intensity():
    buffer = ImageBuffer.from_source(np.full((4, 6), 90, dtype = np.uint8))

    assert buffer.channels == 1
    assert np.all(buffer.rgba()[:, :, :3] == 90)

def test_from_source_copies_pixels(text_image):
    copied = ImageBuffer.from_source(text_image)

    assert copied == text_image
    assert copied.data is not text_image.data

def test_pil_image_is_converted_to_rgba():
    image  = Image.new('RGB', (8, 5), color = (10, 20, 30))
    buffer = ImageBuffer.from_source(image)

    assert (buffer.width, buffer.height) == (8, 5)
    assert tuple(buffer.pixels[0, 0]) == (10, 20, 30, 255)

def test_encoded_png_bytes_decode_to_same_pixels(text_image):
    decoded = ImageBuffer.from_source(text_image.encode('.png'))

    assert decoded == text_image

def test_data_url_is_decoded(text_image):
    payload = base64.b64encode(text_image.encode('.png')).decode('ascii')
    decoded = ImageBuffer.from_source(f"data:image/png;base64,{payload}")

    assert decoded == text_image

def test_file_path_is_decoded(tmp_path, text_image):
    image_path = tmp_path / 'cover.png'
    image_path.write_bytes(text_image.encode('.png'))

    assert ImageBuffer.from_source(image_path) == text_image
    assert ImageBuffer.from_source(str(image_path)) == text_image

@pytest.mark.parametrize("source", [
    b"definitely not an image",
    b"",
    "data:image/png;base64,@@@",
    "data:text/plain,hello",
    "https://example.com/cover.png",
    12345,
])
def test_undecodable_sources_raise_decode_error(source):
    with pytest.raises(DecodeError):
        ImageBuffer.from_source(source)

def test_missing_file_raises_decode_error(tmp_path):
    with pytest.raises(DecodeError):
        ImageBuffer.from_source(tmp_path / 'missing.png')

def test_non_uint8_data_is_rejected():
    with pytest.raises(ValueError):
        ImageBuffer(data = np.zeros((3, 3, 4), dtype = np.float32))

# -------------------- Remote Sources --------------------

def mock_client(monkeypatch, handler):
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        buffer_module.httpx,
        'AsyncClient',
        functools.partial(httpx.AsyncClient, transport = transport)
    )

@pytest.mark.asyncio
async def test_load_fetches_remote_images(monkeypatch, text_image):
    encoded = text_image.encode('.png')
    mock_client(monkeypatch, lambda request: httpx.Response(200, content = encoded))

    loaded = await ImageBuffer.load("https://covers.example.com/lotr.png")

    assert loaded == text_image

@pytest.mark.asyncio
async def test_load_wraps_http_errors(monkeypatch):
    mock_client(monkeypatch, lambda request: httpx.Response(404))

    with pytest.raises(DecodeError):
        await ImageBuffer.load("https://covers.example.com/missing.png")

@pytest.mark.asyncio
async def test_load_accepts_local_sources(text_image):
    assert await ImageBuffer.load(text_image) == text_image

# -------------------- Pixel Access --------------------

def test_pixels_view_is_read_only(text_image):
    with pytest.raises(ValueError):
        text_image.pixels[0, 0, 0] = 0

def test_gray_uses_luma_weights():
    buffer = ImageBuffer.from_source(np.array([[[100, 150, 200, 255]]], dtype = np.uint8))

    assert buffer.gray()[0, 0] == pytest.approx(0.299 * 100 + 0.587 * 150 + 0.114 * 200)

def test_crop_clips_to_image(text_image):
    cropped = text_image.crop(BoundingBox(x0 = 280, y0 = -10, x1 = 400, y1 = 20))

    assert (cropped.width, cropped.height) == (20, 20)

def test_crop_outside_image_raises(text_image):
    with pytest.raises(ValueError):
        text_image.crop(BoundingBox(x0 = 500, y0 = 500, x1 = 600, y1 = 600))
