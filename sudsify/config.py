"""Configuration: env, database path, stop policy, background intervals."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of sudsify package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SUDSIFY_* overrides are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = BASE_DIR / "data"
DB_PATH = Path(os.getenv("SUDSIFY_DB_PATH", str(DATA_DIR / "sudsify.sqlite3")))

# API
API_HOST = os.getenv("SUDSIFY_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("SUDSIFY_API_PORT", "8000"))

# Insert the default fleet (3 washers, 2 dryers) when the machines table is empty
SEED_MACHINES = os.getenv("SUDSIFY_SEED_MACHINES", "1").lower() in ("1", "true", "yes")

# Who may stop a running cycle: "anyone" (shared-room courtesy) or "owner" (starter or admin)
STOP_POLICY_ANYONE = "anyone"
STOP_POLICY_OWNER = "owner"
STOP_POLICY = os.getenv("SUDSIFY_STOP_POLICY", STOP_POLICY_ANYONE).lower()

# Background sweep that flips expired in-use machines to done
SWEEP_INTERVAL_SEC = float(os.getenv("SUDSIFY_SWEEP_INTERVAL_SEC", "30"))

# Admin usage listing
USAGE_DEFAULT_LIMIT = int(os.getenv("SUDSIFY_USAGE_DEFAULT_LIMIT", "50"))
USAGE_MAX_LIMIT = 500

# SSE keep-alive comment when no change arrived for this long
SSE_KEEPALIVE_SEC = float(os.getenv("SUDSIFY_SSE_KEEPALIVE_SEC", "15"))


def ensure_data_dir() -> None:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
