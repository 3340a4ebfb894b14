"""Audio publisher module for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.events import AudioEvent, AUDIO_TOPIC

logger = logging.getLogger(__name__)


class AudioPublisher:
    """Publishes captured audio chunks so recognizers can subscribe to them."""
    
    def __init__(self, topic: str = AUDIO_TOPIC):
        self.topic = topic
        logger.info(f"AudioPublisher initialized with topic: {topic}")
    
    def publish_audio_event(self, audio_event: AudioEvent) -> None:
        """Publish an audio event to the pub/sub topic."""
        pub.sendMessage(self.topic, event=audio_event)
