"""Test environment: no Redis, no hosted index, no real credentials."""
import os

os.environ.setdefault("SESSION_BACKEND", "memory")
os.environ.setdefault("VECTOR_BACKEND", "local")
os.environ.setdefault("LOCAL_INDEX_PATH", os.path.join(os.path.dirname(__file__), "missing-index.json"))
os.environ.setdefault("OPENAI_API_KEY", "test")
os.environ.setdefault("PINECONE_API_KEY", "test")
os.environ.setdefault("EMBEDDING_DIMENSIONS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")
