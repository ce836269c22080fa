"""Centralized assistant configuration.

Reads from environment variables with sensible defaults so that the assistant
works out of the box while remaining fully customizable.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# ── Project ───────────────────────────────────────────────────────────────────
PROJECT_ROOT: str = os.path.abspath(os.getenv("AGENT_PROJECT_ROOT", os.getcwd()))

# ── LLM Settings ──────────────────────────────────────────────────────────────
LLM_PROVIDER: str = os.getenv("AGENT_LLM_PROVIDER", "gemini")
MODEL_NAME: str = os.getenv("AGENT_MODEL", "")  # empty: the provider's default model
LLM_BASE_URL: str = os.getenv("AGENT_LLM_BASE_URL", "")
TEMPERATURE: float = float(os.getenv("AGENT_TEMPERATURE", "0.0"))
HISTORY_WINDOW: int = int(os.getenv("AGENT_HISTORY_WINDOW", "10"))

# ── Code index ────────────────────────────────────────────────────────────────
INDEX_DIR: str = os.getenv("AGENT_INDEX_DIR", os.path.join(PROJECT_ROOT, ".agent_index"))
INDEX_EMBEDDER: str = os.getenv("AGENT_INDEX_EMBEDDER", "histogram")
EMBEDDING_MODEL: str = os.getenv("AGENT_EMBEDDING_MODEL", "all-MiniLM-L6-v2")

# ── Safety & execution ────────────────────────────────────────────────────────
COMMAND_TIMEOUT: float = float(os.getenv("AGENT_COMMAND_TIMEOUT", "60"))  # seconds

TOOL_LOG_DIR: str = os.getenv("AGENT_TOOL_LOG_DIR", os.path.join(PROJECT_ROOT, ".tool_logs"))

# ── API Keys ──────────────────────────────────────────────────────────────────
# Overrides the provider-specific variables (GOOGLE_API_KEY, OPENAI_API_KEY, ...)
LLM_API_KEY: str = os.getenv("AGENT_LLM_API_KEY", "")

# ── System prompt ─────────────────────────────────────────────────────────────
SYSTEM_PROMPT: str = os.getenv(
    "AGENT_SYSTEM_PROMPT",
    (
        "You are an adaptive software assistant comfortable working across all "
        "languages. Provide concise, actionable guidance grounded in the "
        "project context."
    ),
)
