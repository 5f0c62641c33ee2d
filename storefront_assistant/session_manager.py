import threading
import time
from typing import Any, Dict, List, Optional

import httpx

from .logger import get_logger
from .models import ConversationTurn

logger = get_logger("session_manager")

ANONYMOUS_SESSION = "anonymous"


class SessionManager:
    """In-process conversation store, used when no Supabase project is configured."""

    def __init__(self, max_turns: int = 200, max_sessions: int = 1000):
        # {session_id: {'turns': [...], 'category': str, 'updated_at': float}}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.max_turns = max_turns
        self.max_sessions = max_sessions
        self._lock = threading.Lock()

    def read_conversation(self, session_id: str) -> Optional[List[ConversationTurn]]:
        session = self.sessions.get(session_id)
        return list(session["turns"]) if session else None

    def get_category(self, session_id: str) -> Optional[str]:
        session = self.sessions.get(session_id)
        return session.get("category") if session else None

    def upsert(self, session_id: str, turns: List[ConversationTurn], category: Optional[str], updated_at: float) -> None:
        with self._lock:
            if session_id not in self.sessions and len(self.sessions) >= self.max_sessions:
                self._evict_oldest()
            session = self.sessions.setdefault(session_id, {"turns": [], "category": None})
            session["turns"] = list(turns)[-self.max_turns:]
            if category:
                session["category"] = category
            session["updated_at"] = updated_at

    def _evict_oldest(self) -> None:
        oldest = min(self.sessions, key=lambda sid: self.sessions[sid].get("updated_at", 0.0))
        del self.sessions[oldest]
        logger.info(f"🧹 Session store full, dropped {oldest}")


class SupabaseConversationStore:
    """
    Conversation logs in a Supabase (PostgREST) table with columns
    session_id (unique), messages (jsonb), category, updated_at.
    """

    def __init__(self, url: str, key: str, table: str = "conversations", client: Optional[httpx.Client] = None):
        self.table = table
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        self.client = client or httpx.Client(base_url=url, timeout=30.0)

    def read_conversation(self, session_id: str) -> Optional[List[ConversationTurn]]:
        response = self.client.get(
            f"/rest/v1/{self.table}",
            params={"select": "messages", "session_id": f"eq.{session_id}", "limit": "1"},
            headers=self.headers,
        )
        response.raise_for_status()
        rows = response.json()
        if not rows:
            return None
        return [ConversationTurn(**m) for m in rows[0].get("messages") or []]

    def upsert(self, session_id: str, turns: List[ConversationTurn], category: Optional[str], updated_at: float) -> None:
        row = {
            "session_id": session_id,
            "messages": [t.model_dump() for t in turns],
            "updated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(updated_at)),
        }
        if category:
            row["category"] = category
        response = self.client.post(
            f"/rest/v1/{self.table}",
            params={"on_conflict": "session_id"},
            headers={**self.headers, "Prefer": "resolution=merge-duplicates,return=minimal"},
            json=row,
        )
        response.raise_for_status()


def append_turns(store, session_id: Optional[str], new_turns: List[ConversationTurn], category: Optional[str] = None) -> None:
    """
    Read-modify-write of one conversation. Best effort: storage failures are
    logged and never reach the caller.
    """
    session_id = session_id or ANONYMOUS_SESSION
    try:
        turns = store.read_conversation(session_id) or []
        turns.extend(new_turns)
        store.upsert(session_id, turns, category, time.time())
    except Exception as e:
        logger.error(f"❌ Could not persist conversation {session_id}: {e}")
