"""
Speech I/O adapters.

The recognition and synthesis engines live in the browser; this module holds
the engine-agnostic state around them:

- SpeechCapture: microphone session lifecycle, interim/final transcript
  accumulation, recognition error-code translation. Sessions drive it
  with browser events through RelayedRecognitionEngine.
- SpeechPlayback: TTS settings, voice selection, speak/cancel with
  start/end/error reporting.
- QueuedSpeechEngine: a synthesis engine that queues utterances so an HTTP
  response can hand them to the browser for playback.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

RECOGNITION_ERROR_MESSAGES: Dict[str, str] = {
    "no-speech": "No speech detected. Please ensure your microphone is active and try speaking clearly.",
    "audio-capture": "Microphone problem. Please check your microphone connection and permissions.",
    "not-allowed": (
        "Permission to use the microphone was denied or has not been granted. "
        "Please enable microphone access in your browser settings for this site."
    ),
    "network": (
        "A network error occurred during speech recognition. "
        "Please check your internet connection and try again."
    ),
    "service-not-available": "The speech recognition service is temporarily unavailable. Please try again later.",
    "aborted": "Speech recognition was aborted. If this was unintentional, please try again.",
    "bad-grammar": "Speech recognition had trouble understanding the audio. Please try speaking clearly.",
    "language-not-supported": "The configured language for speech recognition is not supported by your browser.",
}
RECOGNITION_ERROR_DEFAULT = "An unexpected speech recognition error occurred. Please try again."
RECOGNITION_UNSUPPORTED = "Speech recognition not supported in this browser."
RECOGNITION_START_FAILED = "Could not start speech recognition."

SYNTHESIS_UNSUPPORTED = "Text-to-Speech not supported in this browser."
SYNTHESIS_FAILED = "Error speaking text."


def describe_recognition_error(code: str) -> str:
    """Translate a recognition error code into a user-facing message."""
    return RECOGNITION_ERROR_MESSAGES.get(code, RECOGNITION_ERROR_DEFAULT)


# =============================================================================
# SPEECH CAPTURE (speech-to-text)
# =============================================================================


class RecognitionEngine(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


@dataclass
class RecognitionResult:
    transcript: str
    is_final: bool = False


@dataclass
class RelayedRecognitionEngine:
    """Recognition runs in the browser; start/stop become commands it picks up."""

    commands: List[str] = field(default_factory=list)

    def start(self) -> None:
        self.commands.append("start")

    def stop(self) -> None:
        self.commands.append("stop")

    def drain(self) -> List[str]:
        commands, self.commands = self.commands, []
        return commands


class SpeechCapture:
    """State for one microphone capture session.

    ``compose_input`` builds the text that should sit in the input field:
    whatever was typed before listening started, then the finalized
    transcript, then the interim transcript.
    """

    def __init__(self, engine: Optional[RecognitionEngine] = None, lang: str = "en-US"):
        self.engine = engine
        self.lang = lang
        self.listening = False
        self.base_text = ""
        self.final_transcript = ""
        self.interim_transcript = ""
        self.error: Optional[str] = None if engine else RECOGNITION_UNSUPPORTED

    @property
    def supported(self) -> bool:
        return self.engine is not None

    def start(self, base_text: str = "") -> bool:
        """Begin listening. Returns True when the engine accepted the start."""
        if not self.supported or self.listening:
            return False

        self.base_text = base_text
        self.final_transcript = ""
        self.interim_transcript = ""
        self.error = None
        try:
            self.engine.start()
        except Exception as e:
            logger.error(f"Error starting recognition: {e}")
            self.error = RECOGNITION_START_FAILED
            self.listening = False
            return False

        self.listening = True
        return True

    def stop(self) -> None:
        if self.supported and self.listening:
            self.engine.stop()
            self.listening = False

    def handle_result(self, results: Sequence[RecognitionResult], result_index: int = 0) -> None:
        """Fold an engine result event into the transcripts.

        Results before ``result_index`` were already reported in earlier
        events and are skipped.
        """
        interim = ""
        final = ""
        for result in results[result_index:]:
            if result.is_final:
                final += result.transcript
            else:
                interim += result.transcript
        self.interim_transcript = interim
        if final:
            self.final_transcript += final

    def handle_error(self, code: str) -> str:
        logger.warning(f"Speech recognition error: {code}")
        self.error = describe_recognition_error(code)
        self.listening = False
        return self.error

    def handle_end(self) -> None:
        self.listening = False

    def compose_input(self) -> str:
        parts = (self.base_text, self.final_transcript, self.interim_transcript)
        return " ".join(p.strip() for p in parts if p and p.strip())


# =============================================================================
# SPEECH PLAYBACK (text-to-speech)
# =============================================================================


@dataclass
class Voice:
    voice_uri: str
    name: str = ""
    lang: str = ""


@dataclass
class Utterance:
    text: str
    voice_uri: Optional[str] = None


class SynthesisEngine(Protocol):
    @property
    def speaking(self) -> bool: ...

    def get_voices(self) -> List[Voice]: ...

    def speak(self, utterance: Utterance) -> None: ...

    def cancel(self) -> None: ...


@dataclass
class QueuedSpeechEngine:
    """Synthesis engine that queues utterances for the browser to play."""

    voices: List[Voice] = field(default_factory=list)
    queue: List[Utterance] = field(default_factory=list)

    @property
    def speaking(self) -> bool:
        return bool(self.queue)

    def get_voices(self) -> List[Voice]:
        return list(self.voices)

    def speak(self, utterance: Utterance) -> None:
        self.queue.append(utterance)

    def cancel(self) -> None:
        self.queue.clear()

    def drain(self) -> List[Dict[str, Optional[str]]]:
        """Return queued utterances as wire dicts and empty the queue."""
        drained = [{"text": u.text, "voiceURI": u.voice_uri} for u in self.queue]
        self.queue.clear()
        return drained


class SpeechPlayback:
    """TTS settings plus speak/cancel over a synthesis engine.

    Callbacks ``on_start``, ``on_end`` and ``on_error`` mirror the
    utterance events a browser engine reports; engines call
    ``handle_start``/``handle_end``/``handle_error`` to deliver them.
    """

    def __init__(
        self,
        engine: Optional[SynthesisEngine] = None,
        enabled: bool = False,
        voice_uri: Optional[str] = None,
        on_start: Optional[Callable[[], None]] = None,
        on_end: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        self.engine = engine
        self.enabled = enabled
        self.voice_uri = voice_uri
        self.speaking = False
        self.error: Optional[str] = None if engine else SYNTHESIS_UNSUPPORTED
        self.voices: List[Voice] = []
        self._on_start = on_start
        self._on_end = on_end
        self._on_error = on_error
        if engine:
            self.refresh_voices()

    @property
    def supported(self) -> bool:
        return self.engine is not None

    def refresh_voices(self) -> None:
        """Reload voices and pick a default when no saved voice applies."""
        self.voices = self.engine.get_voices() if self.engine else []
        self.voice_uri = select_voice(self.voices, self.voice_uri)

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled

    def set_voice(self, voice_uri: Optional[str]) -> None:
        self.voice_uri = voice_uri

    def speak(self, text: str) -> bool:
        """Speak text, interrupting anything in progress. Returns True if submitted."""
        if not self.supported or not self.enabled or not text:
            return False

        if self.engine.speaking:
            self.engine.cancel()

        voice_uri = self.voice_uri if any(v.voice_uri == self.voice_uri for v in self.voices) else None
        self.engine.speak(Utterance(text=text, voice_uri=voice_uri))
        return True

    def cancel(self) -> None:
        if self.supported and self.engine.speaking:
            self.engine.cancel()
            self.speaking = False

    def handle_start(self) -> None:
        self.speaking = True
        if self._on_start:
            self._on_start()

    def handle_end(self) -> None:
        self.speaking = False
        if self._on_end:
            self._on_end()

    def handle_error(self, detail: str = "") -> None:
        logger.error(f"Speech synthesis error {detail}".rstrip())
        self.error = SYNTHESIS_FAILED
        self.speaking = False
        if self._on_error:
            self._on_error(self.error)


def select_voice(voices: Sequence[Voice], saved_uri: Optional[str]) -> Optional[str]:
    """Choose the voice to use.

    A saved voice is kept even when the engine has not listed it yet; with
    nothing saved, prefer the first English voice, then the first voice.
    """
    if saved_uri:
        return saved_uri
    if not voices:
        return None
    default = next((v for v in voices if v.lang.startswith("en")), voices[0])
    return default.voice_uri
