"""Configuration settings for coderelay."""

import os
from pathlib import Path

# Paths
WORKSPACE_DIR = Path(os.environ.get("CODERELAY_WORKSPACE", os.getcwd())).expanduser()

# Server
HOST = "127.0.0.1"
PORT = 7979

# API
API_PREFIX = "/api"

# Model endpoint
OLLAMA_BASE_URL = os.environ.get("CODERELAY_OLLAMA_URL", "http://localhost:11434")
DEFAULT_MODEL = os.environ.get("CODERELAY_MODEL", "llama3.2:latest")
TEMPERATURE = float(os.environ.get("CODERELAY_TEMPERATURE", "0.1"))
MAX_TOKENS = int(os.environ.get("CODERELAY_MAX_TOKENS", "4000"))
REQUEST_TIMEOUT = 30.0

# Recommendations
RECOMMENDATION_TTL_SECONDS = 30 * 60
BODY_COMMENT_SCAN_LINES = 5
MIN_CODE_LENGTH = 50
