"""Main application entry point for the Jarvis client."""

import sys
import argparse
import getpass
import logging
from pathlib import Path
from typing import Optional

from . import __version__
from .audio.audio_pub import AudioPublisher
from .audio.capture import AudioCapture
from .audio.playback import PyAudioPlayer
from .config import JarvisConfig
from .errors import ConfigError
from .models.session import LoginInfo
from .services.recording_service import RecordingService
from .services.request_dispatcher import RequestDispatcher, endpoint_url
from .storage.credential_store import CredentialStore
from .transcription.google_backend import GoogleStreamingSource
from .ui.console_screen import VoiceCommandScreen

logger = logging.getLogger(__name__)


class Client:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        self.config = JarvisConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.credential_store = CredentialStore(self.config.get_data_directory())
        self.recorder: Optional[RecordingService] = None

    def init(self) -> None:
        logger.info("Initializing services...")
        
        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        locale = self.config.get('server.locale', 'en-US')
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")
        
        audio_publisher = AudioPublisher()
        capture = AudioCapture(
            callback=audio_publisher.publish_audio_event,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels
        )
        source = GoogleStreamingSource(
            credentials_path=self.config.get_credentials_path(),
            sample_rate=sample_rate,
            language=locale,
            model=self.config.get('speech.model', 'latest_short'),
            topic=audio_publisher.topic
        )
        self.recorder = RecordingService(
            capture=capture,
            source=source,
            dispatcher=RequestDispatcher(player=PyAudioPlayer()),
            locale=locale
        )

    def login(self, server_url: str, password: str) -> None:
        if endpoint_url(server_url) is None:
            raise ConfigError(f"Invalid server URL: {server_url}")
        self.credential_store.save_session(server_url, password)
        self.credential_store.add_known_server(server_url)

    def logout(self, clear_known_servers: bool = False) -> None:
        self.credential_store.delete_session()
        if clear_known_servers:
            self.credential_store.delete_known_servers()

    def load_login(self, transit_protection: bool) -> Optional[LoginInfo]:
        session = self.credential_store.load_session()
        if not session or "password" not in session:
            return None
        return LoginInfo(
            server_url=session["serverURL"],
            password=session["password"],
            transit_protection=transit_protection
        )

    def run(self, login: LoginInfo) -> None:
        screen = VoiceCommandScreen(self.recorder, self.config.advanced_settings_editor(), login)
        try:
            if screen.run():
                self.logout()
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        if self.recorder:
            self.recorder.shutdown()
            self.recorder = None


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/jarvis.log')
    console_output = config.get('logging.console_output', True)
    
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)
    
    handlers = []
    
    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)
    
    # Console handler - warnings only, the screen owns stdout
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)
    
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)
    
    logger.info("="*50)
    logger.info("Jarvis client starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for the Jarvis client."""
    parser = argparse.ArgumentParser(
        description="Jarvis - voice commands for a Jarvis server",
        epilog="Keys: space/enter=start/stop recording, n/t/r=advanced settings, l=log out, q=quit"
    )
    
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: jarvis.yaml)"
    )
    
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )
    
    parser.add_argument(
        "--server-url",
        type=str,
        help="Server URL for --login (default: server.url from config)"
    )
    
    parser.add_argument(
        "--login",
        action="store_true",
        help="Prompt for the server password and save the session"
    )
    
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Delete the saved session and exit"
    )
    
    parser.add_argument(
        "--no-transit-protection",
        action="store_true",
        help="Send the password as-is instead of hex-escaped"
    )
    
    parser.add_argument(
        "--version",
        action="version",
        version=f"Jarvis client v{__version__}"
    )
    
    args = parser.parse_args()

    try:
        client = Client(args.config, args.log_level)
        if args.logout:
            client.logout(clear_known_servers=True)
            print("👋 Logged out")
            return

        transit_protection = (not args.no_transit_protection
                              and bool(client.config.get('server.transit_protection', True)))
        if args.login:
            server_url = args.server_url or client.config.get('server.url')
            if not server_url:
                parser.error("--login needs --server-url or server.url in the config")
            client.login(server_url, getpass.getpass(f"Password for {server_url}: "))

        login = client.load_login(transit_protection)
        if login is None:
            parser.error("No saved session; run with --login first")

        client.init()
        client.run(login)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (ConfigError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
