# ============================================================================
# src/labsync/ai/voice.py
# ============================================================================
"""
Voice input.

There is no speech-to-text backend yet: transcribe() returns a fixed
transcription for any recording long enough to contain speech.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MIN_AUDIO_BYTES = 1000
TRANSCRIPTION_CONFIDENCE = 0.92

TOO_SHORT_MESSAGE = "I couldn't understand the audio. The recording was too short."
SIMULATED_TRANSCRIPTION = (
    "This is a simulated transcription. Please integrate a real speech-to-text service."
)


@dataclass
class Transcription:
    text: str
    confidence: float
    recognized: bool

    def to_dict(self) -> dict:
        return {"text": self.text, "confidence": self.confidence}


def transcribe(audio: bytes) -> Transcription:
    size = len(audio or b"")
    if size < MIN_AUDIO_BYTES:
        logger.info(f"Audio too short to transcribe ({size} bytes)")
        return Transcription(TOO_SHORT_MESSAGE, 0.0, recognized=False)

    logger.info(f"Simulated transcription for {size} bytes of audio")
    return Transcription(SIMULATED_TRANSCRIPTION, TRANSCRIPTION_CONFIDENCE, recognized=True)
