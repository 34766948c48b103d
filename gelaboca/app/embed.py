#!/usr/bin/env python3
"""
Embedding module for the GelaBoca assistant.

This module turns text into vectors using the language-model service's
embeddings endpoint. The vector length must match the product index.
"""

import requests
from typing import List, Optional
from .config import Config
from .errors import EmbeddingError
from ..utils.logger import get_logger

logger = get_logger()


class EmbeddingClient:
    """Client for generating text embeddings over the OpenAI REST API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 dimensions: Optional[int] = None, session: Optional[requests.Session] = None):
        """Initialize the embedding client."""
        self.api_key = api_key if api_key is not None else Config.OPENAI_API_KEY
        self.model = model or Config.EMBEDDING_MODEL
        self.dimensions = dimensions or Config.EMBEDDING_DIMENSIONS
        self.api_url = f"{Config.OPENAI_BASE_URL}/embeddings"
        self.http = session or requests.Session()

    def _post(self, inputs) -> List[List[float]]:
        if not self.api_key:
            raise EmbeddingError("OPENAI_API_KEY is not configured")

        payload = {
            "model": self.model,
            "input": inputs,
            "dimensions": self.dimensions,
        }
        try:
            response = self.http.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=Config.LLM_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error("Embedding request failed: %s", e)
            raise EmbeddingError(str(e)) from e
        except ValueError as e:
            raise EmbeddingError(f"invalid JSON in embedding response: {e}") from e

        try:
            rows = sorted(data["data"], key=lambda row: row.get("index", 0))
            vectors = [[float(x) for x in row["embedding"]] for row in rows]
        except (KeyError, TypeError) as e:
            raise EmbeddingError(f"unexpected embedding response: {e}") from e

        for vector in vectors:
            if len(vector) != self.dimensions:
                raise EmbeddingError(
                    f"expected {self.dimensions} dimensions, got {len(vector)}"
                )
        return vectors

    def generate_embedding(self, text: str) -> List[float]:
        """
        Generate embedding for a text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as a list of floats
        """
        return self._post(text)[0]

    def generate_embeddings_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a batch of text strings.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, in input order
        """
        if not texts:
            return []
        return self._post(list(texts))

    def zero_vector(self) -> List[float]:
        return [0.0] * self.dimensions
