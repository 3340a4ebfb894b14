"""Sends a finalized command to the server and turns the reply into display text."""

import asyncio
import concurrent.futures
import json
import logging
import tempfile
import threading
from dataclasses import dataclass
from http import HTTPStatus
from pathlib import Path
from typing import Optional, Union

import aiohttp
from yarl import URL

from ..audio.playback import AudioPlayback
from ..models.session import DispatchResult
from ..models.settings import AdvancedSettings
from .auth import authorization_header

logger = logging.getLogger(__name__)

ENDPOINT = "offline-communicator"
AUDIO_CONTENT_TYPE = "application/octet-stream"
AUDIO_FILE_NAME = "speech_file.wav"

# Seconds each kind of reply stays on screen
NETWORK_ERROR_DELAY = 3
INVALID_RESPONSE_DELAY = 3
TIMEOUT_DELAY = 3
CONFIG_ERROR_DELAY = 3
SERVER_ERROR_DELAY = 4
RAW_TEXT_DELAY = 4
DETAIL_DELAY = 7
AUDIO_PLAYED_DELAY = 1
AUDIO_ERROR_DELAY = 5


@dataclass(frozen=True)
class RawResponse:
    """Status, content type and body of a completed HTTP exchange."""
    status: int
    reason: str
    content_type: str
    body: bytes


def endpoint_url(server_url: str) -> Optional[URL]:
    """Return ``{server_url}/offline-communicator``, or None if the server URL is unusable."""
    try:
        base = URL(server_url.strip().rstrip("/"))
    except (TypeError, ValueError):
        return None
    if base.scheme not in ("http", "https") or not base.host:
        return None
    return URL(f"{base}/{ENDPOINT}")


class RequestDispatcher:
    """Performs one POST per command with a bounded wait on the reply.

    The HTTP call runs as a coroutine on a private asyncio loop thread; the
    calling thread waits on the resulting future for at most
    ``settings.request_timeout`` seconds and then classifies the reply.
    Every failure is reported through the returned ``DispatchResult``.
    """

    def __init__(self, player: Optional[AudioPlayback] = None, audio_dir: Optional[str] = None):
        self.player = player
        self.audio_dir = Path(audio_dir or tempfile.gettempdir())
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._start_lock:
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                self._loop_thread = threading.Thread(target=self._loop.run_forever, daemon=True)
                self._loop_thread.name = "dispatcher_loop"
                self._loop_thread.start()
                logger.info("Request dispatcher event loop started")
            return self._loop

    def dispatch(self,
                 server_url: str,
                 credential: str,
                 transit_protection: bool,
                 command: str,
                 settings: AdvancedSettings) -> DispatchResult:
        """Send ``command`` and block until the reply is classified or the deadline passes."""
        url = endpoint_url(server_url)
        if url is None:
            logger.error(f"Invalid server URL: {server_url!r}")
            return DispatchResult("❌ Invalid URL", CONFIG_ERROR_DELAY)

        payload = {
            "command": command,
            "native_audio": settings.native_audio,
            "speech_timeout": settings.speech_timeout,
        }
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            return DispatchResult(f"❌ Failed to encode JSON: {e}", CONFIG_ERROR_DELAY)

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": authorization_header(credential, transit_protection),
        }

        logger.info(f"Server request: {command}")
        future = asyncio.run_coroutine_threadsafe(
            self._post(url, headers, body), self._ensure_loop())
        try:
            outcome = future.result(timeout=settings.request_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning(f"Request timed out after {settings.request_timeout}s")
            return DispatchResult(
                f"❌ Request timed out after {settings.request_timeout} seconds", TIMEOUT_DELAY)

        if isinstance(outcome, DispatchResult):
            return outcome
        return self._classify(outcome)

    async def _post(self, url: URL, headers: dict, body: str) -> Union[RawResponse, DispatchResult]:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, headers=headers, data=body) as response:
                    data = await response.read()
                    return RawResponse(
                        status=response.status,
                        reason=response.reason or "",
                        content_type=response.content_type,
                        body=data,
                    )
        except (aiohttp.ClientResponseError, aiohttp.ClientPayloadError) as e:
            logger.error(f"Invalid response from server: {e}")
            return DispatchResult("❌ Invalid response", INVALID_RESPONSE_DELAY)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Network error: {e}")
            return DispatchResult(f"❌ Network error: {e}", NETWORK_ERROR_DELAY)

    def _classify(self, response: RawResponse) -> DispatchResult:
        if response.status != 200:
            reason = response.reason or _status_phrase(response.status)
            return DispatchResult(f"❌ Server response: [{response.status}]: {reason}", SERVER_ERROR_DELAY)

        logger.debug("✅ Server request successful")
        if not response.body:
            return DispatchResult("❌ Empty response body.", RAW_TEXT_DELAY)
        if response.content_type == AUDIO_CONTENT_TYPE:
            return self._play_audio(response.body)
        return self._parse_text(response.body)

    def _parse_text(self, body: bytes) -> DispatchResult:
        try:
            decoded = json.loads(body)
        except ValueError:
            decoded = None
        if isinstance(decoded, dict) and isinstance(decoded.get("detail"), str):
            return DispatchResult(decoded["detail"], DETAIL_DELAY)
        try:
            return DispatchResult(body.decode("utf-8"), RAW_TEXT_DELAY)
        except UnicodeDecodeError:
            return DispatchResult("❌ JSON parsing failed and response is undecodable.", RAW_TEXT_DELAY)

    def _play_audio(self, body: bytes) -> DispatchResult:
        if self.player is None:
            return DispatchResult("❌ Audio error: no audio output available", AUDIO_ERROR_DELAY)

        audio_file = self.audio_dir / AUDIO_FILE_NAME
        try:
            audio_file.write_bytes(body)
            logger.debug(f"✅ Audio file saved to {audio_file}")
            self.player.play(str(audio_file))
            logger.debug("✅ Audio finished playing.")
        except Exception as e:
            logger.error(f"Audio error: {e}")
            return DispatchResult(f"❌ Audio error: {e}", AUDIO_ERROR_DELAY)
        finally:
            try:
                audio_file.unlink()
                logger.debug("✅ Audio file deleted after playback.")
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.debug(f"❌ Failed to delete audio file: {e}")
        return DispatchResult("✅ Played and deleted audio file", AUDIO_PLAYED_DELAY)

    def shutdown(self) -> None:
        """Stop the dispatcher's event loop thread."""
        with self._start_lock:
            loop, self._loop = self._loop, None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if self._loop_thread:
            self._loop_thread.join(timeout=2.0)
        loop.close()
        logger.info("Request dispatcher shut down")


def _status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase.lower()
    except ValueError:
        return "unknown"
