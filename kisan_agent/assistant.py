import threading
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional, Protocol

import httpx
from loguru import logger

from kisan_agent.schemas import Message
from kisan_agent.speech import Scheduler, SpeechCapture, SpeechPlayback, SpeechRecognizer

CHAT_PATH = "/api/groq-query"
APOLOGY = "Sorry, there was an error. Please try again."
EMPTY_REPLY = "No response from AI"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Transcript:
    """Ordered in-memory messages of one session."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._lock = threading.Lock()
        self._messages: List[Message] = []
        self._last_id = 0
        self._clock = clock

    def append(self, role: str, content: str) -> Message:
        with self._lock:
            ts = self._clock()
            # ids follow creation time in ms, bumped to stay unique
            seq = max(int(ts.timestamp() * 1000), self._last_id + 1)
            self._last_id = seq
            msg = Message(id=str(seq), role=role, content=content, timestamp=ts)
            self._messages.append(msg)
            return msg

    def messages(self) -> List[Message]:
        with self._lock:
            return list(self._messages)

    def clear(self) -> None:
        with self._lock:
            self._messages = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages())


class ChatTransport(Protocol):
    def send(self, query: str, language: str) -> Optional[str]:
        ...


class HttpChatTransport:
    """Posts chat turns to the chat endpoint. Raises on transport errors and non-2xx."""

    def __init__(self, client: httpx.Client, path: str = CHAT_PATH):
        self.client = client
        self.path = path

    def send(self, query: str, language: str) -> Optional[str]:
        resp = self.client.post(self.path, json={"query": query, "language": language})
        resp.raise_for_status()
        return resp.json().get("response")


class AgentSession:
    """
    Session-scoped state of the voice/chat agent: transcript, busy flag,
    mute flag and the speech adapters. One request in flight at a time.
    """

    def __init__(
        self,
        transport: ChatTransport,
        language: str = "en",
        playback: Optional[SpeechPlayback] = None,
        recognizer: Optional[SpeechRecognizer] = None,
        schedule: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.transport = transport
        self.language = language
        self.playback = playback
        self.transcript = Transcript(clock=clock)
        self.muted = False
        self.closed = False
        self._busy = threading.Lock()
        self.capture = SpeechCapture(recognizer, language, on_transcript=self.submit, schedule=schedule)

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def toggle_mute(self) -> bool:
        self.muted = not self.muted
        return self.muted

    def submit(self, text: str) -> Optional[str]:
        """Send one user turn. Returns the assistant reply, or None when suppressed."""
        if self.closed or not (text or "").strip():
            return None
        if not self._busy.acquire(blocking=False):
            logger.debug("Submission suppressed, request already in flight")
            return None
        try:
            self.transcript.append("user", text)
            try:
                reply = self.transport.send(text, self.language)
            except Exception as e:
                logger.warning("Chat request failed: {}", e)
                if self.closed:
                    return None
                self.transcript.append("assistant", APOLOGY)
                return APOLOGY

            if self.closed:
                logger.debug("Session closed, dropping late reply")
                return None
            content = reply or EMPTY_REPLY
            self.transcript.append("assistant", content)
            if reply and not self.muted and self.playback is not None:
                self.playback.speak(reply)
            return content
        finally:
            self._busy.release()

    def close(self) -> None:
        self.closed = True
        self.capture.abort()
        self.transcript.clear()
