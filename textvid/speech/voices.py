"""Speaker name to synthesis voice-id mapping."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

VOICE_MAP: Final[Mapping[str, str]] = MappingProxyType(
    {
        "adam": "pNInz6obpgDQGcFmaJgB",
        "alex": "yl2ZDV1MzN4HbQJbMihG",
        "bill": "pqHfZKP75CvOlQylNhV4",
        "brian": "nPczCjzI2devNBz1zQrb",
        "callum": "N2lVS1w4EtoT3dr4eOWO",
        "charlie": "IKne3meq5aSn9XLyUdCD",
        "chris": "iP95p4xoKVk53GoZ742B",
        "daniel": "onwK4e9ZLuTAKqWW03F9",
        "eric": "cjVigY5qzO86Huf0OWal",
        "george": "JBFqnCBsd6RMkjVDRZzb",
        "harry": "SOYHLrjzK2X1ezoPC6cr",
        "krishna": "m5qndnI7u4OAdXhH0Mr5",
        "liam": "TX3LPaxmHKxFdv7VOQHJ",
        "mark": "UgBBYS2sOqTuMpoF3BR0",
        "niraj": "zgqefOY5FPQ3bB7OZTVR",
        "roger": "CwhRBWXzGAHq8TQ4Fs17",
        "will": "bIHbv24MWmeRgasZH58o",
        "antoine": "ErXwobaYiN019PkySvjV",
        "alice": "Xb7hH8MSUJpSbSDYk0k2",
        "bella": "hpp4J3VqNfWAUOO0d1Us",
        "jessica": "cgSgspJ2msm6clMCkdW9",
        "laura": "FGY2WhTYpPnrIDTdsKH5",
        "lily": "pFZP5JQG7iQjIQuC4Bku",
        "matilda": "XrExE9yKIg1WjnnlVkGX",
        "muskan": "xoV6iGVuOGYHLWjXhVC7",
        "sarah": "EXAVITQu4vr4xnSDxMaL",
        "patrick": "qwaVDEGNsBllYcZO1ZOJ",
        "cassidy": "56AoDkrOh6qfVPDXZ7Pt",
        "river": "SAz9YHcvj6GT2YYXdXww",
        "arnold": "VR6AewLTigWG4xSOukaG",
        "clyde": "2EiwWnXFnvU5JabPnv8n",
        "james": "ZQe5CZNOzWyzPSCn5a3c",
        "josh": "TxGEqnHWrfWFTfGW9XjX",
        "sam": "yoZ06aMxZJJ28mfd3POQ",
        "thomas": "GBv7mTt0atIp3Br8iCZE",
        "charlotte": "XB0fDUnXU5powFXDhCwa",
        "dorothy": "ThT5KcBeYPX3keUQqHPh",
        "emily": "LcfcDJNUP1GQjkzn1xUU",
        "ella": "MF3mGyEYCl7XYWbV9V6O",
        "nancy": "S9E1QZkJ9KpFqk6Gz7pB",
        "rachel": "21m00Tcm4TlvDq8ikWAM",
        "sophie": "bML4oZ8ZkR6kF5pQWZyN",
        "robot": "D38z5RcWu1voky8WS1ja",
    }
)

DEFAULT_VOICE_ID: Final[str] = VOICE_MAP["adam"]


def normalize_speaker(speaker: str) -> str:
    """Canonical speaker key used for voice lookup and cache keys."""
    return speaker.strip().lower()


def voice_for_speaker(speaker: str) -> str:
    """Returns the voice id for ``speaker``, falling back to the default voice."""
    return VOICE_MAP.get(normalize_speaker(speaker), DEFAULT_VOICE_ID)
