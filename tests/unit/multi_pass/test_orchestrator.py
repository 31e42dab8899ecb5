import asyncio
import numpy as np
import pytest

from booklens import (
    AllPassesFailedError,
    DecodeError,
    EngineNotInitializedError,
    MultiPassOrchestrator,
    OrchestratorState,
    RecognitionEngineError,
    RecognitionResult,
    ScanInProgressError,
    recognize_multi_pass
)

def result(text: str, confidence: float) -> RecognitionResult:
    return RecognitionResult(text = text, confidence = confidence)

# -------------------- Multi-Pass --------------------

@pytest.mark.asyncio
async def test_runs_every_pass_and_labels_the_best(make_engine, text_image):
    engine = make_engine(responses = [
        result('x',       95.0),
        result('a' * 50,  60.0),
        result('b' * 20,  80.0),
        result('',         0.0),
        result('c' * 5,   90.0),
        result('d' * 30,  10.0),
    ])
    orchestrator = MultiPassOrchestrator(engine = engine)

    best = await orchestrator.recognize_multi_pass(text_image)

    assert best.method == 'Deskewed'
    assert best.text == 'b' * 20
    assert len(engine.seen) == 6
    assert orchestrator.state == OrchestratorState.COMPLETE
    assert not orchestrator.is_busy

@pytest.mark.asyncio
async def test_flags_limit_the_passes(make_engine, text_image):
    engine       = make_engine()
    orchestrator = MultiPassOrchestrator(engine = engine)

    best = await orchestrator.recognize_multi_pass(text_image, try_rotations = False, try_preprocessing = False)

    assert len(engine.seen) == 1
    assert best.method == 'Original'

@pytest.mark.asyncio
async def test_config_supplies_default_flags(make_engine, text_image):
    engine       = make_engine()
    orchestrator = MultiPassOrchestrator(
        engine          = engine,
        config_override = {'multi_pass': {'try_rotations': False}}
    )

    await orchestrator.recognize_multi_pass(text_image)

    assert len(engine.seen) == 3

@pytest.mark.asyncio
async def test_progress_is_ordered_and_labelled(make_engine, text_image):
    engine       = make_engine()
    orchestrator = MultiPassOrchestrator(engine = engine)
    events       = []

    await orchestrator.recognize_multi_pass(text_image, try_rotations = False, on_progress = events.append)

    progress = [event.progress for event in events]
    assert progress == sorted(progress)
    assert progress == pytest.approx([0.5 / 3, 1 / 3, 1.5 / 3, 2 / 3, 2.5 / 3, 1.0])
    assert events[0].status == 'Original (1/3)'
    assert events[-1].status == 'Deskewed (3/3)'

@pytest.mark.asyncio
async def test_failed_passes_are_skipped(make_engine, text_image):
    engine = make_engine(responses = [
        RecognitionEngineError("timeout"),
        result('The Silmarillion', 70.0),
        RecognitionEngineError("timeout"),
    ])
    orchestrator = MultiPassOrchestrator(engine = engine)

    best = await orchestrator.recognize_multi_pass(text_image, try_rotations = False)

    assert best.method == 'Preprocessed'
    assert best.text == 'The Silmarillion'

@pytest.mark.asyncio
async def test_backend_exceptions_count_as_failed_passes(make_engine, text_image):
    engine       = make_engine(responses = [RuntimeError("segfault"), result('Emma', 50.0)])
    orchestrator = MultiPassOrchestrator(engine = engine)

    best = await orchestrator.recognize_multi_pass(text_image, try_rotations = False)

    assert (best.text, best.method) == ('Emma', 'Preprocessed')
    assert len(engine.seen) == 3

@pytest.mark.asyncio
async def test_all_passes_failing_raises(make_engine, text_image):
    engine       = make_engine(responses = [RecognitionEngineError(f"pass {i}") for i in range(3)])
    orchestrator = MultiPassOrchestrator(engine = engine)

    with pytest.raises(AllPassesFailedError) as error:
        await orchestrator.recognize_multi_pass(text_image, try_rotations = False)

    assert [label for label, _ in error.value.failures] == ['Original', 'Preprocessed', 'Deskewed']
    assert orchestrator.state == OrchestratorState.FAILED
    assert not orchestrator.is_busy

@pytest.mark.asyncio
async def test_concurrent_scan_is_rejected(make_engine, text_image):
    gate         = asyncio.Event()
    engine       = make_engine(gate = gate)
    orchestrator = MultiPassOrchestrator(engine = engine)
    scan         = asyncio.create_task(orchestrator.recognize_multi_pass(text_image, try_rotations = False))

    await asyncio.sleep(0)
    assert orchestrator.is_busy

    with pytest.raises(ScanInProgressError):
        await orchestrator.recognize_multi_pass(text_image)
    with pytest.raises(ScanInProgressError):
        await orchestrator.recognize_single_pass(text_image)

    gate.set()
    await scan

    assert not orchestrator.is_busy
    assert len(engine.seen) == 3

@pytest.mark.asyncio
async def test_initialization_failure_surfaces(make_engine, text_image):
    engine       = make_engine(init_error = OSError("no weights"))
    orchestrator = MultiPassOrchestrator(engine = engine)

    with pytest.raises(EngineNotInitializedError):
        await orchestrator.recognize_multi_pass(text_image)

    assert orchestrator.state == OrchestratorState.FAILED

@pytest.mark.asyncio
async def test_undecodable_image_surfaces(stub_engine):
    orchestrator = MultiPassOrchestrator(engine = stub_engine)

    with pytest.raises(DecodeError):
        await orchestrator.recognize_multi_pass(b'not an image')

    assert not orchestrator.is_busy

@pytest.mark.asyncio
async def test_language_defaults_to_config(stub_engine, text_image):
    await MultiPassOrchestrator(engine = stub_engine).recognize_multi_pass(text_image, try_rotations = False)

    assert stub_engine.language == 'eng'

@pytest.mark.asyncio
async def test_convenience_function(make_engine, text_image):
    engine = make_engine(responses = [result('Persuasion', 91.0)])

    best = await recognize_multi_pass(text_image, engine, try_rotations = False, try_preprocessing = False)

    assert (best.text, best.method) == ('Persuasion', 'Original')

# -------------------- Single Pass --------------------

@pytest.mark.asyncio
async def test_single_pass_preprocesses_by_default(make_engine, text_image):
    engine       = make_engine(responses = [result('Ulysses', 77.0)])
    orchestrator = MultiPassOrchestrator(engine = engine)

    best = await orchestrator.recognize_single_pass(text_image)

    assert best.method == 'Preprocessed'
    assert set(np.unique(engine.seen[0].pixels[:, :, :3]).tolist()) <= {0, 255}

@pytest.mark.asyncio
async def test_single_pass_without_preprocessing(make_engine, text_image):
    engine       = make_engine(responses = [result('Ulysses', 77.0)])
    orchestrator = MultiPassOrchestrator(engine = engine)

    best = await orchestrator.recognize_single_pass(text_image, preprocess_image = False)

    assert best.method == 'Original'
    assert engine.seen[0] == text_image

@pytest.mark.asyncio
async def test_single_pass_propagates_engine_errors(make_engine, text_image):
    engine       = make_engine(responses = [RecognitionEngineError("crashed")])
    orchestrator = MultiPassOrchestrator(engine = engine)

    with pytest.raises(RecognitionEngineError):
        await orchestrator.recognize_single_pass(text_image)

    assert orchestrator.state == OrchestratorState.FAILED

@pytest.mark.asyncio
async def test_scans_sharing_an_engine_are_rejected(make_engine, text_image):
    gate   = asyncio.Event()
    engine = make_engine(gate = gate)
    first  = asyncio.create_task(recognize_multi_pass(text_image, engine, try_rotations = False))

    await asyncio.sleep(0)
    assert engine.scan_active

    with pytest.raises(ScanInProgressError):
        await recognize_multi_pass(text_image, engine, try_rotations = False)
    with pytest.raises(ScanInProgressError):
        await MultiPassOrchestrator(engine = engine).recognize_single_pass(text_image)

    gate.set()
    await first

    assert not engine.scan_active
    assert len(engine.seen) == 3

@pytest.mark.asyncio
async def test_engine_is_released_after_a_failed_scan(stub_engine, text_image):
    with pytest.raises(DecodeError):
        await recognize_multi_pass(b'not an image', stub_engine)

    assert not stub_engine.scan_active

    best = await recognize_multi_pass(text_image, stub_engine, try_rotations = False, try_preprocessing = False)

    assert best.method == 'Original'
