"""Microphone capture that publishes audio chunks while acquired."""

import pyaudio
import logging
from threading import Thread, Event
from typing import Optional, Callable

from ..errors import CaptureError
from ..models.audio import InputFormat
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)


class AudioCapture:
    """Acquire/release wrapper around a PyAudio input stream.

    ``acquire`` opens the default input device on the calling thread so setup
    failures surface immediately as ``CaptureError``; chunks are then read on
    a background thread and handed to ``callback``.
    """
    
    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture with specified parameters.
        
        Args:
            callback: Receives every captured AudioEvent
            sample_rate: Audio sample rate (16kHz for speech recognition)
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
        """
        self.audio_event_callback = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_acquired = False
        self.total_chunks = 0
        self.on_error: Optional[Callable[[str], None]] = None
        
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None
    
    @staticmethod
    def is_available() -> bool:
        """Check whether this environment has a usable input device."""
        instance = None
        try:
            instance = pyaudio.PyAudio()
            instance.get_default_input_device_info()
            return True
        except (IOError, OSError) as e:
            logger.debug(f"Microphone not available: {e}")
            return False
        finally:
            if instance is not None:
                instance.terminate()
    
    def acquire(self, on_error: Optional[Callable[[str], None]] = None) -> InputFormat:
        """Open the input stream and start publishing chunks.
        
        Args:
            on_error: Called with a message if reading fails after acquisition
            
        Returns:
            The input format of the opened device
            
        Raises:
            CaptureError: If no microphone is available or the format is invalid
        """
        if self.is_acquired:
            raise CaptureError("Audio capture already acquired")
        
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            device = self.pyaudio_instance.get_default_input_device_info()
            input_format = InputFormat(
                sample_rate=self.sample_rate,
                channels=min(self.channels, int(device.get('maxInputChannels', 0))),
                device_name=str(device.get('name', '')),
            )
            logger.info(f"Input Format: sampleRate = {input_format.sample_rate}, "
                        f"channels = {input_format.channels}")
            if not input_format.is_valid:
                raise CaptureError("Invalid microphone input format.")
            
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=input_format.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except CaptureError:
            self._terminate()
            raise
        except (IOError, OSError) as e:
            self._terminate()
            raise CaptureError(str(e)) from e
        
        self.stop_event.clear()
        self.total_chunks = 0
        self.on_error = on_error
        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_acquired = True
        logger.info(f"Audio capture acquired: {self.sample_rate}Hz, {self.chunk_size} samples/chunk")
        return input_format
    
    def release(self) -> None:
        """Stop reading and close the input stream. Safe to call when not acquired."""
        if not self.is_acquired:
            return
        
        logger.info("Releasing audio capture")
        self.stop_event.set()
        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")
        
        self._terminate()
        self.is_acquired = False
        logger.info(f"Audio capture released. Total chunks: {self.total_chunks}")
    
    def _terminate(self) -> None:
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except (IOError, OSError) as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
    
    def _record_continuously(self) -> None:
        """Read chunks until released; a read failure is reported through on_error."""
        try:
            while not self.stop_event.is_set():
                audio_chunk = self.stream.read(self.chunk_size, exception_on_overflow=False)
                self.total_chunks += 1
                self.audio_event_callback(AudioEvent(audio_data=audio_chunk))
        except (IOError, OSError) as e:
            if self.stop_event.is_set():
                return
            logger.error(f"Audio engine error: {e}")
            if self.on_error:
                self.on_error(str(e))
