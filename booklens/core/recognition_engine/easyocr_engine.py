import asyncio
import re
import numpy as np

from booklens                                import ModuleLogger, Utils
from booklens.core.image_buffer              import ImageBuffer
from booklens.core.recognition_engine.engine import ProgressCallback, RecognitionEngine, report_progress
from booklens.core.recognition_engine.models import BoundingBox, RecognitionResult, TextRegion
from easyocr                                 import Reader
from omegaconf                               import OmegaConf
from pathlib                                 import Path
from typing                                  import Any, Callable

logger = ModuleLogger('easyocr_engine')()

# -------------------- Result Conversion --------------------

def split_words(line: TextRegion) -> list[TextRegion]:
    """
    Splits a detected line into words, placing each word's box by its character
    offsets along the line box.
    """
    words = []
    for match in re.finditer(r'\S+', line.text):
        bbox = None
        if line.bbox is not None:
            char_width = line.bbox.width / max(len(line.text), 1)
            bbox       = BoundingBox(
                x0 = line.bbox.x0 + char_width * match.start(),
                y0 = line.bbox.y0,
                x1 = line.bbox.x0 + char_width * match.end(),
                y1 = line.bbox.y1
            )
        words.append(TextRegion(text = match.group(), confidence = line.confidence, bbox = bbox))
    return words

def build_result(detections: list[tuple]) -> RecognitionResult:
    """
    Converts EasyOCR detections (box points, text, confidence 0-1) into a RecognitionResult.

    Each detection becomes a line; a single block spans all lines.
    """
    lines = tuple(
        TextRegion(
            text       = text,
            confidence = float(confidence) * 100,
            bbox       = BoundingBox.from_points(points)
        )
        for points, text, confidence in detections
    )
    if not lines:
        return RecognitionResult(text = '', confidence = 0.0)

    words      = tuple(word for line in lines for word in split_words(line))
    text       = '\n'.join(line.text for line in lines)
    confidence = float(np.mean([line.confidence for line in lines]))
    block      = TextRegion(
        text       = text,
        confidence = confidence,
        bbox       = BoundingBox(
            x0 = min(line.bbox.x0 for line in lines),
            y0 = min(line.bbox.y0 for line in lines),
            x1 = max(line.bbox.x1 for line in lines),
            y1 = max(line.bbox.y1 for line in lines)
        )
    )
    return RecognitionResult(text = text, confidence = confidence, words = words, lines = lines, blocks = (block,))

# -------------------- EasyOCREngine Class --------------------

class EasyOCREngine(RecognitionEngine):
    """
    Recognition engine backed by an EasyOCR Reader.

    Language codes follow the Tesseract convention used by callers ('eng', 'fra',
    'eng+fra') and are mapped onto EasyOCR codes through the config. Reader
    creation and inference are blocking, so both run in a worker thread.
    """

    def __init__(
        self,
        config_file     : Path | None               = None,
        config_override : dict | None               = None,
        gpu             : bool | None               = None,
        reader_factory  : Callable[..., Any] | None = None
    ):
        """
        Args:
            config_file     : Optional custom path to ocr.yml
            config_override : Optional overrides merged onto the config
            gpu             : Overrides engine.gpu from the config
            reader_factory  : Callable building the reader (defaults to easyocr.Reader)
        """
        config              = Utils.load_config(config_file = config_file, config_override = config_override)
        self.config         = OmegaConf.to_container(config.engine, resolve = True)
        self.gpu            = self.config["gpu"] if gpu is None else gpu
        self.reader_factory = reader_factory or Reader

        super().__init__(default_language = self.config["language"])

    def language_list(self, language: str) -> list[str]:
        """
        Maps a Tesseract-style language string onto EasyOCR language codes.
        """
        language_map = self.config["language_map"]
        return [language_map.get(code, code) for code in language.split('+') if code]

    async def create_handle(self, language: str, on_progress: ProgressCallback | None) -> Any:
        lang_list = self.language_list(language)
        report_progress(on_progress, 'loading language model', 0.0)

        reader = await asyncio.to_thread(
            self.reader_factory,
            lang_list = lang_list,
            gpu       = self.gpu,
            verbose   = False
        )

        report_progress(on_progress, 'initialized', 1.0)
        logger.info(f"EasyOCR reader loaded for {lang_list} (gpu={self.gpu})")
        return reader

    async def run_recognition(
        self,
        handle      : Any,
        buffer      : ImageBuffer,
        on_progress : ProgressCallback | None
    ) -> RecognitionResult:
        report_progress(on_progress, 'recognizing text', 0.0)

        image      = np.ascontiguousarray(buffer.rgba()[:, :, :3])
        detections = await asyncio.to_thread(
            handle.readtext,
            image,
            decoder       = self.config["decoder"],
            rotation_info = self.config["rotation_info"]
        )

        report_progress(on_progress, 'recognizing text', 1.0)
        logger.debug(f"EasyOCR returned {len(detections)} detections")
        return build_result(detections)
