"""Synchronous playback of audio replies."""

import logging
import time
import wave
from typing import Optional, Protocol

import pyaudio

from ..errors import PlaybackError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1


class AudioPlayback(Protocol):
    """Plays an audio file and returns once playback has finished."""

    def play(self, file_path: str) -> None:
        ...


class PyAudioPlayer:
    """Plays WAV files on the default output device."""

    def play(self, file_path: str) -> None:
        """Play ``file_path`` to completion.

        Raises:
            PlaybackError: If the file cannot be decoded or no output device opens
        """
        instance: Optional[pyaudio.PyAudio] = None
        stream = None
        try:
            wf = wave.open(file_path, 'rb')
        except (wave.Error, EOFError, OSError) as e:
            raise PlaybackError(f"Unsupported audio data: {e}") from e

        with wf:
            def callback(in_data, frame_count, time_info, status):
                data = wf.readframes(frame_count)
                flag = pyaudio.paContinue if len(data) > 0 else pyaudio.paComplete
                return data, flag

            try:
                instance = pyaudio.PyAudio()
                stream = instance.open(
                    format=instance.get_format_from_width(wf.getsampwidth()),
                    channels=wf.getnchannels(),
                    rate=wf.getframerate(),
                    output=True,
                    stream_callback=callback,
                )
                # Block until the stream drains; we are already off the owner thread
                while stream.is_active():
                    time.sleep(POLL_INTERVAL_SECONDS)
            except (IOError, OSError) as e:
                raise PlaybackError(str(e)) from e
            finally:
                if stream is not None:
                    stream.stop_stream()
                    stream.close()
                if instance is not None:
                    instance.terminate()
        logger.debug(f"Finished playing {file_path}")
