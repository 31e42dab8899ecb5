import asyncio

from abc                                     import ABC, abstractmethod
from booklens                                import ModuleLogger
from booklens.core.exceptions                import (
    EngineNotInitializedError, RecognitionEngineError, ScanInProgressError
)
from booklens.core.image_buffer              import ImageBuffer
from booklens.core.recognition_engine.models import (
    BoundingBox, EngineStatus, ProgressEvent, RecognitionResult, TextRegion
)
from dataclasses                             import replace
from typing                                  import Any, Callable

logger = ModuleLogger('recognition_engine')()

ProgressCallback = Callable[[ProgressEvent], None]

# -------------------- Utility Functions --------------------

def report_progress(on_progress: ProgressCallback | None, status: str, progress: float):
    """
    Forwards a progress event if a callback was supplied.
    """
    if on_progress is not None:
        on_progress(ProgressEvent(status = status, progress = progress))

def offset_result(result: RecognitionResult, dx: float, dy: float) -> RecognitionResult:
    """
    Shifts every bounding box of a result, mapping region-of-interest coordinates
    back onto the full image.
    """
    def shift(regions: tuple[TextRegion, ...]) -> tuple[TextRegion, ...]:
        return tuple(
            replace(region, bbox = region.bbox.offset(dx, dy)) if region.bbox else region
            for region in regions
        )

    return replace(
        result,
        words  = shift(result.words),
        lines  = shift(result.lines),
        blocks = shift(result.blocks)
    )

# -------------------- RecognitionEngine Class --------------------

class RecognitionEngine(ABC):
    """
    Lifecycle and concurrency contract around an opaque text recognition backend.

    One engine owns at most one backend handle. Initialization is single-flight:
    concurrent callers share a single handle creation. Recognition calls are
    serialized because the backend holds exclusive state while it runs.
    Subclasses only create, use and release the handle.
    """

    def __init__(self, default_language: str = 'eng'):
        """
        Args:
            default_language : Language used when neither initialize nor recognize names one
        """
        self.default_language = default_language
        self.language         = None
        self.handle           = None
        self.initializing     = False
        self.init_lock        = asyncio.Lock()
        self.recognize_lock   = asyncio.Lock()
        self.scan_active      = False

    # -------------------- Backend Hooks --------------------

    @abstractmethod
    async def create_handle(self, language: str, on_progress: ProgressCallback | None) -> Any:
        """
        Builds a backend handle for the given language.
        """

    @abstractmethod
    async def run_recognition(
        self,
        handle      : Any,
        buffer      : ImageBuffer,
        on_progress : ProgressCallback | None
    ) -> RecognitionResult:
        """
        Recognizes text in a buffer with an existing handle.
        """

    async def release_handle(self, handle: Any):
        """
        Frees backend resources held by a handle. Default is to drop the reference.
        """

    # -------------------- Lifecycle --------------------

    async def initialize(self, language: str | None = None, on_progress: ProgressCallback | None = None):
        """
        Creates the backend handle unless one already exists for this language.

        Args:
            language    : Language code (defaults to default_language)
            on_progress : Optional progress callback for model loading

        Raises:
            RecognitionEngineError: If the backend could not be created
        """
        language = language or self.default_language

        async with self.init_lock:
            if self.handle is not None and self.language == language:
                return

            if self.handle is not None:
                logger.info(f"Switching recognition language from '{self.language}' to '{language}'")
                await self.terminate()

            self.initializing = True
            try:
                handle = await self.create_handle(language, on_progress)
            except RecognitionEngineError:
                raise
            except Exception as e:
                logger.error(f"Failed to initialize recognition engine for '{language}': {e}")
                raise RecognitionEngineError(f"Engine initialization failed for '{language}': {e}") from e
            finally:
                self.initializing = False

            self.handle   = handle
            self.language = language
            logger.info(f"Recognition engine initialized for '{language}'")

    async def terminate(self):
        """
        Releases the backend handle. Safe to call at any time, including while a
        recognition is running; that call finishes against the handle it already holds.
        """
        handle, self.handle = self.handle, None
        self.language       = None

        if handle is not None:
            await self.release_handle(handle)
            logger.info("Recognition engine terminated")

    def status(self) -> EngineStatus:
        return EngineStatus(
            initialized  = self.handle is not None,
            initializing = self.initializing,
            language     = self.language
        )

    @property
    def is_ready(self) -> bool:
        return self.handle is not None

    async def __aenter__(self) -> 'RecognitionEngine':
        return self

    async def __aexit__(self, *exc_info):
        await self.terminate()

    # -------------------- Scan Ownership --------------------

    def claim_scan(self):
        """
        Marks the engine as owned by one multi-pass or single-pass scan.

        Raises:
            ScanInProgressError: If another scan already holds the engine
        """
        if self.scan_active:
            raise ScanInProgressError("Another scan is already running on this recognition engine")
        self.scan_active = True

    def release_scan(self):
        self.scan_active = False

    # -------------------- Recognition --------------------

    async def recognize(
        self,
        buffer             : ImageBuffer,
        language           : str | None         = None,
        region_of_interest : BoundingBox | None = None,
        on_progress        : ProgressCallback | None = None
    ) -> RecognitionResult:
        """
        Recognizes text in a buffer, initializing the engine on first use.

        Args:
            buffer             : Image to recognize
            language           : Language hint used if the engine must be initialized
            region_of_interest : Optional box restricting recognition; returned boxes
                                 are in full-image coordinates
            on_progress        : Optional progress callback

        Returns:
            RecognitionResult: Unlabelled result (method is empty)

        Raises:
            EngineNotInitializedError : If lazy initialization failed
            RecognitionEngineError    : If the backend failed during recognition
        """
        if not self.is_ready:
            try:
                await self.initialize(language, on_progress)
            except RecognitionEngineError as e:
                raise EngineNotInitializedError(f"Recognition engine is not initialized: {e}") from e

        async with self.recognize_lock:
            handle = self.handle
            if handle is None:
                raise RecognitionEngineError("Recognition engine was terminated")

            target = buffer
            if region_of_interest is not None:
                target = buffer.crop(region_of_interest)

            try:
                result = await self.run_recognition(handle, target, on_progress)
            except RecognitionEngineError:
                raise
            except Exception as e:
                logger.error(f"Text recognition failed: {e}")
                raise RecognitionEngineError(f"Text recognition failed: {e}") from e

        if region_of_interest is not None:
            result = offset_result(
                result,
                dx = max(0, int(region_of_interest.x0)),
                dy = max(0, int(region_of_interest.y0))
            )
        return result
