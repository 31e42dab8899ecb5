import asyncio

from booklens                         import ModuleLogger, Utils
from booklens.core.exceptions         import (
    AllPassesFailedError, EngineNotInitializedError, RecognitionEngineError, ScanInProgressError
)
from booklens.core.image_buffer       import ImageBuffer
from booklens.core.multi_pass.plan    import ORIGINAL, PREPROCESSED, build_pass_plan
from booklens.core.multi_pass.scoring import rank_results
from booklens.core.preprocessing      import PreprocessOptions, preprocess
from booklens.core.recognition_engine import (
    ProgressCallback, ProgressEvent, RecognitionEngine, RecognitionResult
)
from enum                             import Enum
from pathlib                          import Path
from typing                           import Any

logger = ModuleLogger('orchestrator')()

# -------------------- State --------------------

class OrchestratorState(Enum):
    """
    Lifecycle of one recognition call.
    """
    IDLE         = 'idle'
    INITIALIZING = 'initializing'
    RUNNING_PASS = 'running_pass'
    SCORING      = 'scoring'
    COMPLETE     = 'complete'
    FAILED       = 'failed'

# -------------------- MultiPassOrchestrator Class --------------------

class MultiPassOrchestrator:
    """
    Runs recognition over several renderings of one captured image and keeps the best.

    Passes run strictly one after another against a single engine, and only one
    scan may be active per engine; a second request while one is running, from
    this or any other orchestrator sharing the engine, is rejected with
    ScanInProgressError.
    """

    def __init__(
        self,
        engine          : RecognitionEngine,
        config_file     : Path | None = None,
        config_override : dict | None = None
    ):
        """
        Args:
            engine          : Recognition engine driven by this orchestrator
            config_file     : Optional custom path to ocr.yml
            config_override : Optional overrides merged onto the config
        """
        self.engine       = engine
        self.config       = Utils.load_config(config_file = config_file, config_override = config_override)
        self.options      = PreprocessOptions.from_config(self.config.preprocessing)
        self.state        = OrchestratorState.IDLE
        self.current_pass = None
        self.active       = False

    @property
    def is_busy(self) -> bool:
        return self.active

    # -------------------- Scan Lifecycle Helpers --------------------

    def begin_scan(self):
        """
        Claims the orchestrator and its engine for one scan. Must run before the first await of a call.
        """
        if self.active:
            raise ScanInProgressError(f"A scan is already running (state: {self.state.value})")
        self.engine.claim_scan()
        self.active       = True
        self.state        = OrchestratorState.IDLE
        self.current_pass = None

    def end_scan(self):
        self.active = False
        self.engine.release_scan()

    async def prepare(self, image: Any, language: str, on_progress: ProgressCallback | None) -> ImageBuffer:
        """
        Decodes the source and makes sure the engine is initialized.
        """
        buffer = await ImageBuffer.load(image, timeout = self.config.engine.fetch_timeout)

        if not self.engine.is_ready:
            self.state = OrchestratorState.INITIALIZING
            try:
                await self.engine.initialize(language, on_progress)
            except RecognitionEngineError as e:
                raise EngineNotInitializedError(f"Could not initialize recognition engine: {e}") from e

        return buffer

    # -------------------- Multi-Pass Recognition --------------------

    async def recognize_multi_pass(
        self,
        image              : Any,
        language           : str | None               = None,
        try_rotations      : bool | None              = None,
        try_preprocessing  : bool | None              = None,
        on_progress        : ProgressCallback | None  = None,
        preprocess_options : PreprocessOptions | None = None
    ) -> RecognitionResult:
        """
        Recognizes text by trying several renderings of the image and keeping the best.

        Args:
            image              : Any source accepted by ImageBuffer.load
            language           : Recognition language (defaults to engine.language in the config)
            try_rotations      : Add 90/180/270 degree passes (defaults to the config)
            try_preprocessing  : Add preprocessed and deskewed passes (defaults to the config)
            on_progress        : Called with a ProgressEvent during and after each pass
            preprocess_options : Overrides the configured preprocessing toggles

        Returns:
            RecognitionResult: The best scoring result, labelled with its method

        Raises:
            ScanInProgressError       : If another scan is running on this orchestrator
            DecodeError               : If the image cannot be decoded
            EngineNotInitializedError : If the engine cannot be initialized
            AllPassesFailedError      : If recognition failed on every pass
        """
        self.begin_scan()

        multi_pass_config = self.config.multi_pass
        language          = language or self.config.engine.language
        try_rotations     = multi_pass_config.try_rotations     if try_rotations     is None else try_rotations
        try_preprocessing = multi_pass_config.try_preprocessing if try_preprocessing is None else try_preprocessing

        try:
            source = await self.prepare(image, language, on_progress = None)
            plan   = build_pass_plan(
                source            = source,
                try_preprocessing = try_preprocessing,
                try_rotations     = try_rotations,
                options           = preprocess_options or self.options,
                rotation_angles   = tuple(multi_pass_config.rotation_angles)
            )
            total    = len(plan)
            results  = []
            failures = []

            for index, pass_spec in enumerate(plan, start = 1):
                self.state        = OrchestratorState.RUNNING_PASS
                self.current_pass = index
                status            = f"{pass_spec.label} ({index}/{total})"

                def forward_progress(event: ProgressEvent, status: str = status, index: int = index):
                    if on_progress is not None:
                        on_progress(ProgressEvent(status = status, progress = (index - 1 + event.progress) / total))

                pass_image = await asyncio.to_thread(pass_spec.build)
                try:
                    result = await self.engine.recognize(pass_image, language = language, on_progress = forward_progress)
                    results.append(result.with_method(pass_spec.label))
                    logger.info(f"Pass '{status}' finished with confidence {result.confidence:.1f}")
                except RecognitionEngineError as e:
                    failures.append((pass_spec.label, e))
                    logger.warning(f"Pass '{status}' failed: {e}")

                if on_progress is not None:
                    on_progress(ProgressEvent(status = status, progress = index / total))

            self.state = OrchestratorState.SCORING
            if not results:
                raise AllPassesFailedError(failures)

            ranked = rank_results(results, full_length = multi_pass_config.full_length)
            for scored in ranked:
                logger.info(f"Scored '{scored.result.method}': {scored.score:.2f} ({len(scored.result.text.strip())} chars)")

            best = ranked[0].result
            logger.info(f"Selected '{best.method}' out of {len(results)} successful passes")

            self.state = OrchestratorState.COMPLETE
            return best

        except Exception:
            self.state = OrchestratorState.FAILED
            raise

        finally:
            self.end_scan()

    # -------------------- Single-Pass Recognition --------------------

    async def recognize_single_pass(
        self,
        image              : Any,
        language           : str | None               = None,
        preprocess_image   : bool                     = True,
        on_progress        : ProgressCallback | None  = None,
        preprocess_options : PreprocessOptions | None = None
    ) -> RecognitionResult:
        """
        Recognizes text in one pass, optionally preprocessing the image first.

        Engine failures are not recovered here; they propagate as RecognitionEngineError.

        Args:
            image              : Any source accepted by ImageBuffer.load
            language           : Recognition language (defaults to engine.language in the config)
            preprocess_image   : Run the preprocessing pipeline before recognition
            on_progress        : Forwarded engine progress callback
            preprocess_options : Overrides the configured preprocessing toggles

        Returns:
            RecognitionResult: Result labelled 'Preprocessed' or 'Original'
        """
        self.begin_scan()
        language = language or self.config.engine.language

        try:
            source = await self.prepare(image, language, on_progress = on_progress)
            label  = ORIGINAL
            if preprocess_image:
                source = await asyncio.to_thread(preprocess, source, preprocess_options or self.options)
                label  = PREPROCESSED

            self.state        = OrchestratorState.RUNNING_PASS
            self.current_pass = 1
            result            = await self.engine.recognize(source, language = language, on_progress = on_progress)

            self.state = OrchestratorState.COMPLETE
            return result.with_method(label)

        except Exception:
            self.state = OrchestratorState.FAILED
            raise

        finally:
            self.end_scan()

# -------------------- Convenience Function --------------------

async def recognize_multi_pass(
    image             : Any,
    engine            : RecognitionEngine,
    language          : str | None              = None,
    try_rotations     : bool                    = True,
    try_preprocessing : bool                    = True,
    on_progress       : ProgressCallback | None = None
) -> RecognitionResult:
    """
    One-shot multi-pass recognition with the default configuration.
    """
    orchestrator = MultiPassOrchestrator(engine = engine)
    return await orchestrator.recognize_multi_pass(
        image             = image,
        language          = language,
        try_rotations     = try_rotations,
        try_preprocessing = try_preprocessing,
        on_progress       = on_progress
    )
