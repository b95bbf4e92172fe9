"""
VitaFlow — JSON Store (Persistence Collaborator)
================================================
- No database server
- One JSON document, per-user tables
- Every call is an independent round-trip; there are no cross-table
  transactions, so callers order their writes (see agents/nutrition_agent.py)

Tables: profiles, meals, water_logs, workouts, chat_messages
"""

import json
import os
import threading
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import config
from tools.errors import PersistenceFailure
from tools.models import MealEntry, UserProfile, WaterEntry, WaterLog

RECORD_TABLES = ("meals", "water_logs", "workouts", "chat_messages")

ID_PREFIXES = {
    "meals": "meal",
    "water_logs": "water",
    "workouts": "workout",
    "chat_messages": "msg",
}


# =============================================================================
# JSON STORE
# =============================================================================
class JsonStore:
    """Reads and writes all user data to a JSON file."""

    def __init__(self, filepath: Optional[str] = None):
        self.filepath = filepath or config.STORE_FILE
        self._lock = threading.RLock()
        self.data = self._load()

    def _load(self) -> Dict[str, Any]:
        empty = {"profiles": {}, **{table: {} for table in RECORD_TABLES}}
        if not os.path.exists(self.filepath):
            return empty
        try:
            with open(self.filepath, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Could not read store {self.filepath}: {e}") from e
        for key, value in empty.items():
            loaded.setdefault(key, value)
        return loaded

    def save(self):
        """Write the whole document to disk (atomic replace)."""
        tmp_path = f"{self.filepath}.tmp"
        try:
            directory = os.path.dirname(self.filepath)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2, default=str)
            os.replace(tmp_path, self.filepath)
        except OSError as e:
            print(f"⚠️ Save failed: {e}")
            raise PersistenceFailure(f"Could not write store: {e}") from e

    def _rows(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        if table not in RECORD_TABLES:
            raise ValueError(f"Unknown table: {table}")
        return self.data[table].setdefault(user_id, [])

    # -------------------------------------------------------------------------
    # Generic records
    # -------------------------------------------------------------------------
    def create(self, table: str, user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record; assigns id and created_at. Raises PersistenceFailure."""
        with self._lock:
            rows = self._rows(table, user_id)
            row = dict(record)
            row["id"] = f"{ID_PREFIXES[table]}_{uuid.uuid4().hex[:8]}"
            row.setdefault("created_at", datetime.now().isoformat())
            row["user_id"] = user_id

            rows.append(row)
            try:
                self.save()
            except PersistenceFailure:
                rows.remove(row)
                raise
            return dict(row)

    def read_by_owner(self, table: str, user_id: str, day: Optional[date] = None) -> List[Dict[str, Any]]:
        """Records of one user in insertion order, optionally only those created on `day`."""
        with self._lock:
            rows = [dict(r) for r in self._rows(table, user_id)]
        if day is None:
            return rows
        return [r for r in rows if _created_on(r, day)]

    def delete(self, table: str, user_id: str, record_id: str) -> bool:
        with self._lock:
            rows = self._rows(table, user_id)
            for index, row in enumerate(rows):
                if row.get("id") == record_id:
                    removed = rows.pop(index)
                    try:
                        self.save()
                    except PersistenceFailure:
                        rows.insert(index, removed)
                        raise
                    return True
            return False

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------
    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            raw = self.data["profiles"].get(user_id)
        return UserProfile.model_validate(raw) if raw else None

    def create_profile(self, user_id: str, name: str = "", now: Optional[datetime] = None) -> UserProfile:
        """Signup: stamp created_at once. Returns the existing profile if present."""
        with self._lock:
            existing = self.get_profile(user_id)
            if existing is not None:
                return existing
            profile = UserProfile(
                id=user_id,
                name=name,
                created_at=now or datetime.now(timezone.utc),
                water_goal=config.DEFAULT_WATER_GOAL_ML,
            )
            return self.upsert_profile(user_id, profile)

    def upsert_profile(self, user_id: str, profile: UserProfile) -> UserProfile:
        """Write a profile; an existing created_at is never overwritten."""
        with self._lock:
            previous = self.data["profiles"].get(user_id)
            row = profile.model_dump(mode="json")
            row["id"] = user_id
            if previous and previous.get("created_at"):
                row["created_at"] = previous["created_at"]

            self.data["profiles"][user_id] = row
            try:
                self.save()
            except PersistenceFailure:
                if previous is None:
                    self.data["profiles"].pop(user_id, None)
                else:
                    self.data["profiles"][user_id] = previous
                raise
        return UserProfile.model_validate(row)

    def modify_profile(self, user_id: str, change: Callable[[UserProfile], UserProfile]) -> UserProfile:
        """
        Read-modify-write of one profile under the store lock.

        `change` receives the stored profile and returns the new one, so
        concurrent edits and XP awards never overwrite each other.

        Raises:
            PersistenceFailure: no profile for `user_id`, or the write failed.
        """
        with self._lock:
            current = self.get_profile(user_id)
            if current is None:
                raise PersistenceFailure(f"No profile for user {user_id}")
            return self.upsert_profile(user_id, change(current))

    # -------------------------------------------------------------------------
    # Typed views
    # -------------------------------------------------------------------------
    def meals_for_day(self, user_id: str, day: Optional[date] = None) -> List[MealEntry]:
        day = day or date.today()
        return [MealEntry.model_validate(r) for r in self.read_by_owner("meals", user_id, day)]

    def water_log_for_day(self, user_id: str, goal: int, day: Optional[date] = None) -> WaterLog:
        day = day or date.today()
        entries = [WaterEntry.model_validate(r) for r in self.read_by_owner("water_logs", user_id, day)]
        return WaterLog(goal=goal, entries=entries)


def _created_on(row: Dict[str, Any], day: date) -> bool:
    try:
        return datetime.fromisoformat(str(row.get("created_at"))).date() == day
    except ValueError:
        return False


# =============================================================================
# SHARED INSTANCE
# =============================================================================
_STORE: Optional[JsonStore] = None


def get_store() -> JsonStore:
    """Process-wide store backed by config.STORE_FILE."""
    global _STORE
    if _STORE is None:
        _STORE = JsonStore()
        print(f"📂 Storage: {_STORE.filepath}")
    return _STORE


__all__ = [
    "JsonStore",
    "RECORD_TABLES",
    "get_store",
]
