"""HTTP client for the speech-synthesis collaborator.

The service answers a synthesis request either with the audio payload
directly or with a task id that has to be polled until it reports ``done``
(with a downloadable ``audio_url``) or ``error``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

import requests

from textvid.config import SynthesisConfig
from textvid.speech.voices import voice_for_speaker
from textvid.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


class SynthesisError(RuntimeError):
    """Raised when the synthesis collaborator fails; aborts the job."""


class SpeechSynthesizer(Protocol):
    """Anything that turns one spoken line into encoded audio bytes."""

    def synthesize(self, speaker: str, text: str) -> bytes:
        """Returns the encoded audio for ``text`` in ``speaker``'s voice."""
        ...


class SynthesisClient:
    """Synthesizes speech through the remote text-to-speech API."""

    def __init__(
        self,
        settings: SynthesisConfig,
        api_key: str,
        *,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key.strip():
            raise ValueError("A synthesis API key is required.")
        self._settings = settings
        self._session = session or requests.Session()
        self._sleep = sleep
        self._headers = {"xi-api-key": api_key, "Content-Type": "application/json"}

    def synthesize(self, speaker: str, text: str) -> bytes:
        voice_id: str = voice_for_speaker(speaker)
        url = (
            f"{self._settings.base_url}/v1/text-to-speech/{voice_id}"
            f"?output_format={self._settings.output_format}"
        )
        payload: dict[str, Any] = {
            "text": text,
            "model_id": self._settings.model_id,
            "voice_settings": dict(self._settings.voice_settings),
            "with_transcript": False,
        }
        logger.debug("Requesting synthesis for speaker=%s voice=%s", speaker, voice_id)
        response = self._request(
            "post",
            url,
            json=payload,
            timeout=self._settings.request_timeout_seconds,
        )
        content_type = response.headers.get("Content-Type", "")
        if content_type.startswith("audio/"):
            return response.content

        body = self._json(response)
        task_id = body.get("task_id")
        if not task_id:
            raise SynthesisError(
                f"Synthesis response for speaker {speaker!r} carried neither audio nor a task id."
            )
        audio_url = self._wait_for_task(str(task_id))
        download = self._request(
            "get",
            audio_url,
            authenticated=False,
            timeout=self._settings.download_timeout_seconds,
        )
        if not download.content:
            raise SynthesisError(f"Synthesis task {task_id} produced an empty download.")
        return download.content

    def _wait_for_task(self, task_id: str) -> str:
        """Polls one task on a fixed interval until it is done or fails."""
        task_url = f"{self._settings.base_url}/v1/task/{task_id}"
        for _attempt in range(self._settings.max_polls):
            self._sleep(self._settings.poll_interval_seconds)
            data = self._json(
                self._request(
                    "get", task_url, timeout=self._settings.request_timeout_seconds
                )
            )
            status = data.get("status")
            if status == "done":
                audio_url = (data.get("metadata") or {}).get("audio_url")
                if not audio_url:
                    raise SynthesisError(f"Synthesis task {task_id} finished without audio_url.")
                return str(audio_url)
            if status == "error":
                raise SynthesisError(
                    f"Synthesis task {task_id} failed: {data.get('error_message', 'unknown error')}"
                )
        raise SynthesisError(
            f"Synthesis task {task_id} did not finish after {self._settings.max_polls} polls."
        )

    def _request(
        self, method: str, url: str, *, authenticated: bool = True, **kwargs: Any
    ) -> requests.Response:
        headers = self._headers if authenticated else None
        try:
            response = self._session.request(method, url, headers=headers, **kwargs)
        except requests.Timeout as err:
            raise SynthesisError(f"Synthesis request timed out: {url}") from err
        except requests.RequestException as err:
            raise SynthesisError(f"Synthesis request failed: {err}") from err
        if not response.ok:
            raise SynthesisError(
                f"Synthesis request to {url} failed with HTTP {response.status_code}: "
                f"{response.text[:500]}"
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as err:
            raise SynthesisError("Synthesis service returned a non-JSON body.") from err
        if not isinstance(data, dict):
            raise SynthesisError("Synthesis service returned an unexpected JSON payload.")
        return data
