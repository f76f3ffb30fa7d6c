"""Speech synthesis client, content-addressed cache and prefetching."""

from .cache import SpeechCache, SpeechCacheEntry, speech_cache_key
from .client import SpeechSynthesizer, SynthesisClient, SynthesisError
from .prefetch import SpeechRequest, prefetch_speech
from .voices import DEFAULT_VOICE_ID, VOICE_MAP, normalize_speaker, voice_for_speaker

__all__ = [
    "DEFAULT_VOICE_ID",
    "SpeechCache",
    "SpeechCacheEntry",
    "SpeechRequest",
    "SpeechSynthesizer",
    "SynthesisClient",
    "SynthesisError",
    "VOICE_MAP",
    "normalize_speaker",
    "prefetch_speech",
    "speech_cache_key",
    "voice_for_speaker",
]
