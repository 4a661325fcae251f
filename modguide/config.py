import os
from dotenv import load_dotenv
from pathlib import Path

# Load environment variables from .env file with explicit path
load_dotenv(dotenv_path=Path(__file__).parent.parent / '.env')

# OpenAI Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1536"))
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30"))

# Force the deterministic mock embedder/generator even when a key is present
USE_MOCK_AI = os.getenv("USE_MOCK_AI", "false").lower() == "true"

# Content store: directory holding guide/, penalties/, commands/, procedures/, templates/
CONTENT_DIR = os.getenv(
    "CONTENT_DIR",
    str(Path(__file__).parent / "resources" / "content"),
)

# Retrieval defaults
RAG_TOP_K = int(os.getenv("RAG_TOP_K", "5"))
RAG_MIN_RELEVANCE = float(os.getenv("RAG_MIN_RELEVANCE", "0.3"))
RAG_MAX_CONTEXT_TOKENS = int(os.getenv("RAG_MAX_CONTEXT_TOKENS", "2000"))

# Chunking (characters)
CHUNK_MAX_SIZE = int(os.getenv("CHUNK_MAX_SIZE", "500"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "50"))
CHUNK_MIN_SIZE = int(os.getenv("CHUNK_MIN_SIZE", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
