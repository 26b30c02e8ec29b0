"""Application configuration and constants."""
import os
from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parent.parent
DATABASE_PATH = Path(os.environ.get("RUNVAULT_DATABASE_PATH", str(BASE_DIR / "vault.db")))
STORAGE_DIR = BASE_DIR / "storage"

# Base URL configuration (for running under a subpath like /vault)
BASE_URL = os.environ.get("RUNVAULT_BASE_URL", "").strip("/")
ROOT_PATH = f"/{BASE_URL}" if BASE_URL else ""

LOG_LEVEL = os.environ.get("RUNVAULT_LOG_LEVEL", "INFO").upper()

# Server bind address for `python -m runvault`
HOST = os.environ.get("RUNVAULT_HOST", "127.0.0.1")
PORT = int(os.environ.get("RUNVAULT_PORT", "8000"))

# Authentication happens upstream; the gateway forwards the user id in this header
USER_HEADER = os.environ.get("RUNVAULT_USER_HEADER", "X-Vault-User")

# Paths that don't require a user (without BASE_URL prefix)
PUBLIC_PATHS = {"/health"}

# Vault root node
ROOT_FOLDER_NAME = "Vault"
ROOT_FOLDER_SLUG = "vault"

# Folder kinds
FOLDER_ROOT = "root"
FOLDER_EVENT = "event"
FOLDER_CUSTOM = "custom"

# Tree traversal
TREE_MAX_DEPTH = int(os.environ.get("RUNVAULT_TREE_MAX_DEPTH", "1000"))
PREVIEW_PROBE_LIMIT = int(os.environ.get("RUNVAULT_PREVIEW_PROBE_LIMIT", "5"))
EVENT_FOLDER_ATTEMPTS = int(os.environ.get("RUNVAULT_EVENT_FOLDER_ATTEMPTS", "10"))

# Object storage
PENDING_PREFIX = "events/pending"
STORAGE_CONCURRENCY = int(os.environ.get("RUNVAULT_STORAGE_CONCURRENCY", "8"))
UPLOAD_URL_EXPIRES = int(os.environ.get("RUNVAULT_UPLOAD_URL_EXPIRES", "120"))  # 2 minutes
DOWNLOAD_URL_EXPIRES = int(os.environ.get("RUNVAULT_DOWNLOAD_URL_EXPIRES", "3600"))  # 1 hour

# Roles
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
