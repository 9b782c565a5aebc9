"""Application configuration with sensible defaults."""
import os

# OpenAI-compatible API
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or None  # process-wide fallback credential
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "500"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))
EMBEDDING_BATCH_SIZE = int(os.getenv("EMBEDDING_BATCH_SIZE", "512"))

# Credentials
API_KEY_HEADER = "X-OpenAI-API-Key"
API_KEY_PREFIX = "sk-"

# Chunking (character-based)
DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 100
MIN_CHUNK_SIZE = 100
MAX_CHUNK_SIZE = 2000
MAX_CHUNKS = 10_000  # memory ceiling, further text is dropped

# Retrieval
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "3"))
KEYWORD_COUNT = 5

# Upload limits
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_TEXT_LENGTH = 10 * 1024 * 1024
MAX_REQUEST_BYTES = 50 * 1024 * 1024

# Sessions (memory only, oldest evicted past the cap)
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "100"))

# HTTP server
API_PREFIX = os.getenv("API_PREFIX", "/api")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
