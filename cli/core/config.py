# cli/core/config.py
from pathlib import Path
import os

# Backend base URL
BASE_URL = os.environ.get("PROJECTOR_URL", "http://localhost:8000")

# Request timeout in seconds
TIMEOUT = float(os.environ.get("PROJECTOR_TIMEOUT", "10"))

# Local folder for CLI state
APP_DIR = Path(os.environ.get("PROJECTOR_HOME", Path.home() / ".projector"))

# Access + refresh token pair of the current session
SESSION_FILE = APP_DIR / "session.json"
