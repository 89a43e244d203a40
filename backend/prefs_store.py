"""Small per-client key-value store: role, onboarding flag and role notes."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict

ROLES = ("student", "coach")
DEFAULT_ROLE = "student"


def normalize_role(role: Any) -> str:
    return role if role in ROLES else DEFAULT_ROLE


class PreferenceStore:
    """JSON file keyed by client id. Unknown clients read as defaults."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    # -------- role ----------
    def get_role(self, client_id: str) -> str:
        return normalize_role(self._client(client_id).get("role"))

    def set_role(self, client_id: str, role: str) -> str:
        role = normalize_role(role)
        self._update(client_id, role=role)
        return role

    # -------- onboarding ----------
    def has_seen_onboarding(self, client_id: str) -> bool:
        return self._client(client_id).get("onboarding_seen") is True

    def mark_onboarding_seen(self, client_id: str) -> None:
        self._update(client_id, onboarding_seen=True)

    def reset_onboarding(self, client_id: str) -> None:
        with self._lock:
            data = self._read()
            data.get(client_id, {}).pop("onboarding_seen", None)
            self._write(data)

    # -------- notes ----------
    def get_notes(self, client_id: str, role: str) -> str:
        notes = self._client(client_id).get("notes") or {}
        return notes.get(normalize_role(role), "")

    def save_notes(self, client_id: str, role: str, text: str) -> None:
        with self._lock:
            data = self._read()
            entry = data.setdefault(client_id, {})
            entry.setdefault("notes", {})[normalize_role(role)] = text or ""
            self._write(data)

    def snapshot(self, client_id: str) -> Dict[str, Any]:
        return {
            "role": self.get_role(client_id),
            "has_seen_onboarding": self.has_seen_onboarding(client_id),
            "notes_student": self.get_notes(client_id, "student"),
            "notes_coach": self.get_notes(client_id, "coach"),
        }

    # -------- storage ----------
    def _client(self, client_id: str) -> Dict[str, Any]:
        with self._lock:
            entry = self._read().get(client_id)
        return entry if isinstance(entry, dict) else {}

    def _update(self, client_id: str, **values: Any) -> None:
        with self._lock:
            data = self._read()
            entry = data.get(client_id)
            if not isinstance(entry, dict):
                entry = data[client_id] = {}
            entry.update(values)
            self._write(data)

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except (json.JSONDecodeError, OSError):
            print(f"[PREFS] CORRUPT {self._path}, starting empty")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as fp:
            json.dump(data, fp, ensure_ascii=False, indent=2)
        tmp_path.replace(self._path)
