"""File-backed storage for saved login material and known servers."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_KNOWN_SERVERS = 5


class CredentialStore:
    """Persists the saved session and the list of known servers as JSON.

    Files are written with owner-only permissions. This is storage, not a
    vault: the password is kept as entered.
    """
    
    def __init__(self, data_dir: str = "./data"):
        """Initialize credential store.
        
        Args:
            data_dir: Base directory for storing client data
        """
        self.data_dir = Path(data_dir)
        self.session_file = self.data_dir / "saved_session.json"
        self.servers_file = self.data_dir / "known_servers.json"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"CredentialStore initialized with data_dir: {self.data_dir}")
    
    def save_session(self, server_url: str, password: Optional[str] = None) -> None:
        """Save the session, replacing any previous one."""
        session = {"serverURL": server_url}
        if password is not None:
            session["password"] = password
        self._write_json(self.session_file, session)
        logger.info(f"Saved session for {server_url}")
    
    def load_session(self) -> Optional[Dict[str, str]]:
        """Load the saved session, or None if there is none or it is unreadable."""
        session = self._read_json(self.session_file)
        if not isinstance(session, dict) or "serverURL" not in session:
            return None
        return {k: str(v) for k, v in session.items()}
    
    def delete_session(self) -> None:
        logger.info("Deleting saved session information")
        self.session_file.unlink(missing_ok=True)
    
    def load_known_servers(self) -> List[str]:
        servers = self._read_json(self.servers_file)
        if not isinstance(servers, list):
            return []
        return [str(s) for s in servers]
    
    def save_known_servers(self, servers: List[str]) -> None:
        self._write_json(self.servers_file, servers)
    
    def add_known_server(self, server_url: str) -> bool:
        """Remember a server. Returns False when the list is already full."""
        servers = self.load_known_servers()
        if server_url in servers:
            return True
        if len(servers) >= MAX_KNOWN_SERVERS:
            logger.warning(f"Known server list is full ({MAX_KNOWN_SERVERS}); not adding {server_url}")
            return False
        servers.append(server_url)
        self.save_known_servers(servers)
        return True
    
    def delete_known_server(self, server_url: str) -> None:
        servers = [s for s in self.load_known_servers() if s != server_url]
        self.save_known_servers(servers)
    
    def delete_known_servers(self) -> None:
        self.servers_file.unlink(missing_ok=True)
    
    def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading {path.name}: {e}")
            return None
    
    def _write_json(self, path: Path, data) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
