"""Google Speech-to-Text streaming transcription source."""

import logging
import queue
from typing import Iterator, Optional

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account
from pubsub import pub

from .base import AbstractTranscriptionSource
from ..errors import RecognitionError
from ..models.events import AudioEvent, AUDIO_TOPIC
from ..models.transcription import ErrorInfo, TranscriptionUpdate

logger = logging.getLogger(__name__)


class GoogleStreamingSource(AbstractTranscriptionSource):
    """Streams captured audio to Google Speech-to-Text and yields interim and final results."""
    
    def __init__(self, 
                 credentials_path: Optional[str] = None,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 model: str = "latest_short",
                 topic: str = AUDIO_TOPIC):
        """Initialize Google streaming source.
        
        Args:
            credentials_path: Service account JSON file; application default credentials if None
            sample_rate: Sample rate of the published audio in Hz
            language: Default language code (e.g., 'en-US')
            model: Recognition model name
            topic: Pub/sub topic carrying AudioEvents
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.model = model
        self.topic = topic
        self.service_name = "Google Speech-to-Text"
        self.client: Optional[speech.SpeechClient] = None
        self._audio_queue: Optional[queue.Queue] = None
        self._subscribed = False
    
    def _get_client(self) -> speech.SpeechClient:
        if self.client is None:
            if self.credentials_path:
                logger.info(f"Loading Google credentials from: {self.credentials_path}")
                credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
                self.client = speech.SpeechClient(credentials=credentials)
            else:
                self.client = speech.SpeechClient()
            logger.info("Google Speech-to-Text client initialized successfully")
        return self.client
    
    def _streaming_config(self, locale: str) -> speech.StreamingRecognitionConfig:
        return speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=self.sample_rate,
                language_code=locale,
                enable_automatic_punctuation=True,
                model=self.model,
            ),
            interim_results=True,
            single_utterance=True,
        )
    
    def start(self, locale: Optional[str] = None) -> Iterator[TranscriptionUpdate]:
        try:
            client = self._get_client()
        except (gax_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError, ValueError, OSError) as e:
            raise RecognitionError(f"Speech recognizer unavailable: {e}") from e
        
        self.stop()
        self._audio_queue = queue.Queue()
        pub.subscribe(self._on_audio_event, self.topic)
        self._subscribed = True
        logger.info(f"Started streaming recognition ({locale or self.language})")
        return self._stream(client, self._streaming_config(locale or self.language), self._audio_queue)
    
    def _on_audio_event(self, event: AudioEvent) -> None:
        audio_queue = self._audio_queue
        if audio_queue is not None and event.audio_data:
            audio_queue.put(event.audio_data)
    
    def _requests(self, audio_queue: queue.Queue) -> Iterator[speech.StreamingRecognizeRequest]:
        while True:
            chunk = audio_queue.get()
            if chunk is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)
    
    def _stream(self,
                client: speech.SpeechClient,
                config: speech.StreamingRecognitionConfig,
                audio_queue: queue.Queue) -> Iterator[TranscriptionUpdate]:
        try:
            responses = client.streaming_recognize(config, self._requests(audio_queue))
            for response in responses:
                results = [r for r in response.results if r.alternatives]
                if not results:
                    continue
                final = next((r for r in results if r.is_final), None)
                if final is not None:
                    text = final.alternatives[0].transcript.strip()
                    logger.debug(f"📝 FINAL: '{text}'")
                    yield TranscriptionUpdate(text=text, is_final=True)
                    return
                text = "".join(r.alternatives[0].transcript for r in results).strip()
                logger.debug(f"Partial: {text}")
                yield TranscriptionUpdate(text=text, is_final=False)
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Recognition error: {e}")
            yield TranscriptionUpdate(error=ErrorInfo(message=str(e), source=self.service_name))
        finally:
            # A newer stream may already own the audio feed
            if self._audio_queue is audio_queue:
                self.stop()
    
    def stop(self) -> None:
        if self._subscribed:
            try:
                pub.unsubscribe(self._on_audio_event, self.topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe: {e}")
            self._subscribed = False
        audio_queue, self._audio_queue = self._audio_queue, None
        if audio_queue is not None:
            audio_queue.put(None)
