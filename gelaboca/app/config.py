#!/usr/bin/env python3
"""
Configuration management for the GelaBoca ordering backend.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration class for the application."""

    # Language-model service (OpenAI-compatible REST API)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
    CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
    EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-large")
    EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", 3072))
    LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", 60))

    # Vector index (pinecone|local)
    VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "pinecone").lower()
    PINECONE_API_KEY = os.getenv("PINECONE_API_KEY", "")
    PINECONE_INDEX_NAME = os.getenv("PINECONE_INDEX_NAME", "gelaboca")
    PINECONE_INDEX_HOST = os.getenv("PINECONE_INDEX_HOST", "")
    PINECONE_TIMEOUT = float(os.getenv("PINECONE_TIMEOUT", 30))
    LOCAL_INDEX_PATH = os.getenv("LOCAL_INDEX_PATH", "data/processed/products.json")

    # Session storage (redis|memory)
    SESSION_BACKEND = os.getenv("SESSION_BACKEND", "redis").lower()
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB = int(os.getenv("REDIS_DB", 0))

    # Application Configuration
    RETRIEVAL_TOP_K = 8
    CATALOG_TOP_K = 1000
    PROMOTIONAL_LIMIT = 10
    MAX_HISTORY_MESSAGES = 20
    CART_CACHE_SIZE = int(os.getenv("CART_CACHE_SIZE", 1024))
    SELECT_FALLBACK_FIRST = _flag("SELECT_FALLBACK_FIRST", "true")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def has_real_key(cls, key: str) -> bool:
        return bool(key) and key not in ("test", "dev")

    @classmethod
    def validate(cls):
        """Validate that all required configuration is present."""
        missing = []

        # Allow 'test'/'dev' sentinels so local runs do not need real credentials
        if cls.has_real_key(cls.OPENAI_API_KEY) and cls.VECTOR_BACKEND == "pinecone":
            if not cls.PINECONE_API_KEY:
                missing.append("PINECONE_API_KEY")
        if cls.VECTOR_BACKEND not in ("pinecone", "local"):
            missing.append("VECTOR_BACKEND (pinecone|local)")
        if cls.SESSION_BACKEND not in ("redis", "memory"):
            missing.append("SESSION_BACKEND (redis|memory)")
        if cls.EMBEDDING_DIMENSIONS <= 0:
            missing.append("EMBEDDING_DIMENSIONS")

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

# Validate configuration on import
Config.validate()
