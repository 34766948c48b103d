#!/usr/bin/env python3
"""
Retrieval module for the GelaBoca assistant.

Products live in a vector index. Two backings share one ``query`` contract:

- ``PineconeIndex``: the hosted index, reached over its REST data plane.
- ``LocalProductIndex``: an in-process FAISS index over products that carry
  embeddings, used for development and tests.

``ProductRetriever`` implements the retrieval step of the chat pipeline on
top of either.
"""

import json
import os
from typing import Any, Dict, Iterable, List, Optional

import faiss
import numpy as np
import requests

from .config import Config
from .embed import EmbeddingClient
from .errors import VectorIndexError
from ..data.models import Product, product_from_match
from ..utils.logger import get_logger

logger = get_logger()

ACTIVE_FILTER = {"ativado": {"$eq": True}}

PINECONE_CONTROL_URL = "https://api.pinecone.io"
PINECONE_API_VERSION = "2024-07"


class PineconeIndex:
    """Thin REST client for one Pinecone index."""

    def __init__(self, api_key: Optional[str] = None, index_name: Optional[str] = None,
                 host: Optional[str] = None, session: Optional[requests.Session] = None):
        self.api_key = api_key if api_key is not None else Config.PINECONE_API_KEY
        self.index_name = index_name or Config.PINECONE_INDEX_NAME
        self._host = host or Config.PINECONE_INDEX_HOST
        self.http = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Api-Key": self.api_key,
            "Content-Type": "application/json",
            "X-Pinecone-API-Version": PINECONE_API_VERSION,
        }

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        if not self.api_key:
            raise VectorIndexError("PINECONE_API_KEY is not configured")
        try:
            response = self.http.request(
                method, url, headers=self._headers(), timeout=Config.PINECONE_TIMEOUT, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise VectorIndexError(str(e)) from e
        except ValueError as e:
            raise VectorIndexError(f"invalid JSON from index: {e}") from e

    @property
    def host(self) -> str:
        """Data-plane host, looked up once from the control plane when not configured."""
        if not self._host:
            described = self._request("GET", f"{PINECONE_CONTROL_URL}/indexes/{self.index_name}")
            host = described.get("host")
            if not host:
                raise VectorIndexError(f"index {self.index_name!r} has no host")
            self._host = host
        if not self._host.startswith("http"):
            self._host = f"https://{self._host}"
        return self._host

    def query(self, vector: List[float], top_k: int, include_metadata: bool = True,
              filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        payload: Dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": include_metadata,
        }
        if filter:
            payload["filter"] = filter
        data = self._request("POST", f"{self.host}/query", json=payload)
        return data.get("matches") or []

    def upsert(self, vectors: List[Dict[str, Any]]) -> int:
        data = self._request("POST", f"{self.host}/vectors/upsert", json={"vectors": vectors})
        return int(data.get("upsertedCount", len(vectors)))


def _matches_filter(metadata: Dict[str, Any], flt: Optional[Dict[str, Any]]) -> bool:
    if not flt:
        return True
    for field, condition in flt.items():
        expected = condition.get("$eq") if isinstance(condition, dict) else condition
        if metadata.get(field) != expected:
            return False
    return True


def _normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


class LocalProductIndex:
    """FAISS inner-product index over normalized product embeddings."""

    def __init__(self, dimension: int):
        self.dimension = dimension
        self.faiss_index = faiss.IndexFlatIP(dimension)
        self.ids: List[str] = []
        self.metadata: List[Dict[str, Any]] = []

    @classmethod
    def from_products(cls, products: Iterable[Product], dimension: Optional[int] = None) -> "LocalProductIndex":
        """Index every product that carries an embedding of the index dimension."""
        products = [p for p in products if p.text_embedding]
        if dimension is None:
            dimension = len(products[0].text_embedding) if products else Config.EMBEDDING_DIMENSIONS
        index = cls(dimension)
        index.upsert([
            {"id": p.id, "values": p.text_embedding, "metadata": p.index_metadata()}
            for p in products
        ])
        return index

    @classmethod
    def load(cls, path: str) -> "LocalProductIndex":
        """Load products (with ``textoEmbedding``) written by the ingest script."""
        if not os.path.exists(path):
            logger.warning("No local product index at %s", path)
            return cls(Config.EMBEDDING_DIMENSIONS)
        with open(path, "r", encoding="utf-8") as f:
            rows = json.load(f)
        index = cls.from_products(Product.model_validate(row) for row in rows)
        logger.info("Loaded local product index with %d vectors", index.faiss_index.ntotal)
        return index

    def upsert(self, vectors: List[Dict[str, Any]]) -> int:
        added = 0
        for row in vectors:
            values = row.get("values") or []
            if len(values) != self.dimension:
                logger.warning("Skipping %s: %d dimensions, index has %d",
                               row.get("id"), len(values), self.dimension)
                continue
            vector = _normalize(np.array([values], dtype="float32"))
            self.faiss_index.add(vector)
            self.ids.append(str(row["id"]))
            self.metadata.append(dict(row.get("metadata") or {}))
            added += 1
        return added

    def query(self, vector: List[float], top_k: int, include_metadata: bool = True,
              filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if self.faiss_index.ntotal == 0:
            return []
        if len(vector) != self.dimension:
            raise VectorIndexError(f"query has {len(vector)} dimensions, index has {self.dimension}")

        query_vector = _normalize(np.array([vector], dtype="float32"))
        # filter after scoring, so search everything
        scores, indices = self.faiss_index.search(query_vector, self.faiss_index.ntotal)

        matches = []
        for score, idx in zip(scores[0], indices[0]):
            if idx == -1:
                continue
            meta = self.metadata[idx]
            if not _matches_filter(meta, filter):
                continue
            match = {"id": self.ids[idx], "score": float(score)}
            if include_metadata:
                match["metadata"] = dict(meta)
            matches.append(match)
            if len(matches) >= top_k:
                break
        return matches


def create_index():
    """Build the configured vector index backing."""
    if Config.VECTOR_BACKEND == "local":
        return LocalProductIndex.load(Config.LOCAL_INDEX_PATH)
    return PineconeIndex()


class ProductRetriever:
    """Similarity search over active products."""

    def __init__(self, index, embed_client: EmbeddingClient, top_k: Optional[int] = None):
        self.index = index
        self.embed_client = embed_client
        self.top_k = top_k or Config.RETRIEVAL_TOP_K

    def _to_products(self, matches: List[Dict[str, Any]], keep_embedding: bool) -> List[Product]:
        products = []
        for match in matches:
            product = product_from_match(match, keep_embedding=keep_embedding)
            # the index filter is trusted, but inactive products must never surface
            if product is not None and product.active:
                products.append(product)
        return products

    def find_similar(self, text: str) -> List[Product]:
        """
        Find the products closest to ``text``.

        Falls back to a broad zero-vector query when embedding or the
        similarity query fails, and to an empty list when that fails too.

        Args:
            text: Rewritten user message

        Returns:
            Up to ``top_k`` active products
        """
        try:
            vector = self.embed_client.generate_embedding(text)
            matches = self.index.query(
                vector=vector, top_k=self.top_k, include_metadata=True, filter=ACTIVE_FILTER
            )
            products = self._to_products(matches, keep_embedding=True)
            logger.info("[WORKFLOW] 2a. Found %d similar products: %s",
                        len(products), ", ".join(p.name for p in products))
            return products[:self.top_k]
        except Exception as e:
            logger.error("Similarity search failed: %s", e)

        try:
            matches = self.index.query(
                vector=self.embed_client.zero_vector(), top_k=self.top_k,
                include_metadata=True, filter=ACTIVE_FILTER,
            )
            products = self._to_products(matches, keep_embedding=False)[:self.top_k]
            logger.info("[WORKFLOW] 2b. Fallback found %d active products: %s",
                        len(products), ", ".join(p.name for p in products))
            return products
        except Exception as e:
            logger.error("Fallback product search failed: %s", e)
            return []
