# cli/core/session.py
import json
import os
from typing import Optional

from .config import APP_DIR, SESSION_FILE


def save_session(access_token: str, refresh_token: str, employee_id: Optional[str] = None) -> None:
    """
    Stores the token pair in SESSION_FILE, readable only by the current user.
    """
    APP_DIR.mkdir(parents=True, exist_ok=True)
    data = {"access_token": access_token, "refresh_token": refresh_token}
    if employee_id:
        data["employee_id"] = employee_id
    with open(SESSION_FILE, "w", encoding="utf-8") as f:
        json.dump(data, f)
    os.chmod(SESSION_FILE, 0o600)


def load_session() -> Optional[dict]:
    """
    Reads the session file. Returns None if it is missing or unreadable.
    """
    if not SESSION_FILE.exists():
        return None

    try:
        with open(SESSION_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        # An unreadable file is treated as no session
        return None
    return data if isinstance(data, dict) else None


def load_token() -> Optional[str]:
    session = load_session()
    return session.get("access_token") if session else None


def load_refresh_token() -> Optional[str]:
    session = load_session()
    return session.get("refresh_token") if session else None


def clear_session() -> None:
    """
    Deletes the session file, ending the local session.
    """
    if SESSION_FILE.exists():
        SESSION_FILE.unlink()


def is_logged_in() -> bool:
    return load_token() is not None
