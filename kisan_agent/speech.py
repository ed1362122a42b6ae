"""
Speech capture and playback around platform speech engines.

The engines themselves are external: anything implementing SpeechRecognizer or
SpeechSynthesizer can be plugged in (browser bridge, desktop engine, test fake).
"""
import threading
from typing import Callable, List, Optional, Protocol

from loguru import logger

from kisan_agent.languages import speech_locale

IDLE = "idle"
LISTENING = "listening"

SUBMIT_DELAY_SECONDS = 0.3
UNSUPPORTED_NOTICE = (
    "Speech recognition is not supported on this device. Please use text input instead."
)

Scheduler = Callable[[float, Callable[[], None]], None]


class SpeechRecognizer(Protocol):
    def start(
        self,
        locale: str,
        on_result: Callable[[List[str]], None],
        on_error: Callable[[str], None],
        on_end: Callable[[], None],
    ) -> None:
        ...

    def stop(self) -> None:
        ...

    def abort(self) -> None:
        ...


class SpeechSynthesizer(Protocol):
    def speak(self, text: str, locale: str, rate: float, pitch: float, volume: float) -> None:
        ...

    def cancel(self) -> None:
        ...


def _timer_schedule(delay: float, fn: Callable[[], None]) -> None:
    t = threading.Timer(delay, fn)
    t.daemon = True
    t.start()


class SpeechCapture:
    """idle -> listening -> idle, one listening session at a time."""

    def __init__(
        self,
        recognizer: Optional[SpeechRecognizer],
        language: str,
        on_transcript: Callable[[str], None],
        submit_delay: float = SUBMIT_DELAY_SECONDS,
        schedule: Optional[Scheduler] = None,
    ):
        self.recognizer = recognizer
        self.language = language
        self.on_transcript = on_transcript
        self.submit_delay = submit_delay
        self.schedule = schedule or _timer_schedule
        self.state = IDLE
        self.error = ""
        self.notice = ""
        self.last_transcript = ""

    @property
    def supported(self) -> bool:
        return self.recognizer is not None

    @property
    def listening(self) -> bool:
        return self.state == LISTENING

    def start(self) -> bool:
        if not self.supported:
            self.notice = UNSUPPORTED_NOTICE
            return False
        if self.listening:
            return False
        self.error = ""
        self.state = LISTENING
        try:
            self.recognizer.start(
                speech_locale(self.language),
                on_result=self._handle_result,
                on_error=self._handle_error,
                on_end=self._handle_end,
            )
        except Exception as e:
            logger.warning("Could not start speech recognition: {}", e)
            self.error = "Could not start recording. Please try again."
            self.state = IDLE
            return False
        logger.debug("Listening started ({})", speech_locale(self.language))
        return True

    def stop(self) -> None:
        if self.supported and self.listening:
            self.recognizer.stop()
        self.state = IDLE

    def toggle(self) -> bool:
        """Voice button: stop when listening, start otherwise. Returns listening state."""
        if self.listening:
            self.stop()
        else:
            self.start()
        return self.listening

    def abort(self) -> None:
        if self.supported:
            self.recognizer.abort()
        self.state = IDLE

    def _handle_result(self, segments: List[str]) -> None:
        transcript = "".join(segments).strip()
        self.state = IDLE
        if not transcript:
            return
        self.last_transcript = transcript
        logger.debug("Final transcript: {}", transcript)
        self.schedule(self.submit_delay, lambda: self.on_transcript(transcript))

    def _handle_error(self, code: str) -> None:
        logger.warning("Recognition error: {}", code)
        self.error = f"Error: {code}"
        self.state = IDLE

    def _handle_end(self) -> None:
        self.state = IDLE


class SpeechPlayback:
    def __init__(self, synthesizer: SpeechSynthesizer, language: str):
        self.synthesizer = synthesizer
        self.language = language

    def speak(self, text: str) -> None:
        try:
            self.synthesizer.cancel()
            self.synthesizer.speak(
                text, locale=speech_locale(self.language), rate=1.0, pitch=1.0, volume=1.0
            )
            logger.debug("Speaking: {}", text[:50])
        except Exception:
            logger.exception("Error speaking reply")
