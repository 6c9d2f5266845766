import asyncio

import pytest

from src.wakeword.detector import WakeWordDetector


def test_matches_case_insensitive_substring():
    detector = WakeWordDetector(on_detected=lambda: None, wake_word="Panda")
    assert detector.matches("hey PANDA, what's up")
    assert detector.matches("pandas are cute")
    assert not detector.matches("hello there")


def test_empty_wake_word_is_rejected():
    with pytest.raises(ValueError):
        WakeWordDetector(on_detected=lambda: None, wake_word="  ")


@pytest.mark.asyncio
async def test_fed_transcripts_trigger_callback():
    detected = asyncio.Event()
    calls = []

    async def on_detected():
        calls.append(True)
        detected.set()

    detector = WakeWordDetector(on_detected=on_detected)
    detector.start()
    detector.start()
    assert detector.is_listening

    detector.feed("nothing to see")
    detector.feed("ok panda")
    await asyncio.wait_for(detected.wait(), timeout=1)

    await detector.stop()
    await detector.stop()
    assert not detector.is_listening
    assert calls == [True]


@pytest.mark.asyncio
async def test_process_returns_whether_matched():
    calls = []
    detector = WakeWordDetector(on_detected=lambda: calls.append(True), wake_word="computer")

    assert await detector.process("Computer, lights on")
    assert not await detector.process("lights off")
    assert calls == [True]


@pytest.mark.asyncio
async def test_source_failure_is_reported():
    failed = asyncio.Event()
    errors = []

    async def broken_source():
        yield "hello"
        raise OSError("microphone unavailable")

    async def on_error(exc):
        errors.append(exc)
        failed.set()

    detector = WakeWordDetector(on_detected=lambda: None, on_error=on_error, source=broken_source)
    detector.start()
    await asyncio.wait_for(failed.wait(), timeout=1)

    assert isinstance(errors[0], OSError)
    assert not detector.is_listening
