# testgenius/core/utils.py
import logging
import time
import threading
import uuid
from typing import Callable, Dict, Any, List, Optional
from datetime import datetime, timezone
from .config import config

logger = logging.getLogger(__name__)

class SessionRegistry:
    """In-memory registry of active wizard sessions with expiry"""

    def __init__(self, expiration_seconds: int = None):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.expiration_seconds = expiration_seconds or config.SESSION_EXPIRATION_SECONDS
        self._lock = threading.Lock()
        self._cleanup_thread = None
        self._stop_event = threading.Event()
        self._expiry_listeners: List[Callable[[str], None]] = []

    def start_cleanup_thread(self):
        """Start background cleanup thread"""
        if self._cleanup_thread and self._cleanup_thread.is_alive():
            return

        self._stop_event.clear()
        self._cleanup_thread = threading.Thread(target=self._periodic_cleanup, daemon=True)
        self._cleanup_thread.start()
        logger.info("✅ Session cleanup thread started")

    def stop_cleanup_thread(self):
        self._stop_event.set()

    def add_expiry_listener(self, listener: Callable[[str], None]):
        """Call listener with each session id the cleanup pass drops"""
        self._expiry_listeners.append(listener)

    def _periodic_cleanup(self):
        """Periodic cleanup of expired sessions"""
        while not self._stop_event.wait(config.SESSION_CLEANUP_INTERVAL):
            try:
                self.cleanup_expired()
            except Exception as e:
                logger.error(f"Cleanup thread error: {e}")

    def cleanup_expired(self) -> List[str]:
        """Drop sessions idle for longer than the expiration window"""
        current_time = time.time()
        with self._lock:
            expired = [
                session_id for session_id, record in self.sessions.items()
                if current_time - record["last_activity"] > self.expiration_seconds
            ]
            for session_id in expired:
                self.sessions.pop(session_id, None)

        if expired:
            logger.info(f"🧹 Cleanup: removed {len(expired)} expired sessions")
            for session_id in expired:
                for listener in self._expiry_listeners:
                    try:
                        listener(session_id)
                    except Exception as e:
                        logger.error(f"Expiry listener failed for {session_id}: {e}")
        return expired

    def create(self, state: Any) -> str:
        session_id = generate_id()
        now = time.time()
        with self._lock:
            self.sessions[session_id] = {
                "state": state,
                "created_at": now,
                "last_activity": now,
                "extras": {},
            }
        logger.info(f"✅ Session created: {session_id}")
        return session_id

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self.sessions.get(session_id)
            if record:
                record["last_activity"] = time.time()
            return record

    def update_state(self, session_id: str, state: Any) -> bool:
        with self._lock:
            record = self.sessions.get(session_id)
            if not record:
                return False
            record["state"] = state
            record["last_activity"] = time.time()
            return True

    def remove(self, session_id: str) -> bool:
        with self._lock:
            removed = self.sessions.pop(session_id, None) is not None
        if removed:
            logger.info(f"✅ Session removed: {session_id}")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics"""
        with self._lock:
            active = len(self.sessions)
        return {
            "active_sessions": active,
            "cleanup_thread_alive": self._cleanup_thread.is_alive() if self._cleanup_thread else False
        }

class ValidationUtils:
    """Utility functions for data validation"""

    @staticmethod
    def validate_session_id(session_id: str) -> bool:
        """Validate session ID format"""
        try:
            uuid.UUID(session_id)
            return True
        except (ValueError, TypeError):
            return False

class DateTimeUtils:
    """Utility functions for date/time operations"""

    @staticmethod
    def get_current_timestamp() -> float:
        """Get current timestamp"""
        return time.time()

    @staticmethod
    def utc_now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def format_timestamp(value: datetime, format_str: str = "%Y-%m-%d %H:%M") -> str:
        """Format a datetime for reports"""
        try:
            return value.strftime(format_str)
        except (ValueError, AttributeError):
            return "Invalid timestamp"

    @staticmethod
    def format_duration(seconds: Optional[int]) -> str:
        if not seconds:
            return "None"
        minutes, secs = divmod(int(seconds), 60)
        if secs:
            return f"{minutes} min {secs} s"
        return f"{minutes} min"

class ResponseFormatter:
    """Utility functions for formatting API responses"""

    @staticmethod
    def format_error_response(message: str, error: str, error_type: str) -> Dict[str, Any]:
        return {
            "error": error,
            "message": message,
            "type": error_type,
            "timestamp": time.time()
        }

def generate_id() -> str:
    """Generate unique identifier"""
    return str(uuid.uuid4())
