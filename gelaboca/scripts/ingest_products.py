#!/usr/bin/env python3
"""
Product ingestion script for the GelaBoca assistant.

Reads a JSON list of products (catalog field names: nome, categoria, valor,
...), embeds each product's text and writes it to the vector index.

Usage:
    python -m gelaboca.scripts.ingest_products products.json
    python -m gelaboca.scripts.ingest_products products.json --local data/processed/products.json
"""

import argparse
import json
import os
import sys
from typing import List

from ..app.embed import EmbeddingClient
from ..app.retrieval import PineconeIndex
from ..data.models import Product
from ..utils.logger import get_logger

logger = get_logger()

BATCH_SIZE = 50


def load_products(path: str) -> List[Product]:
    with open(path, "r", encoding="utf-8") as f:
        rows = json.load(f)
    if isinstance(rows, dict):
        # sample_products.json layout; promotional samples reuse menu ids
        rows = rows.get("menu", [])
    return [Product.model_validate(row) for row in rows]


def embed_products(products: List[Product], client: EmbeddingClient) -> List[Product]:
    """Return copies of ``products`` carrying their text embedding."""
    embedded = []
    for start in range(0, len(products), BATCH_SIZE):
        batch = products[start:start + BATCH_SIZE]
        vectors = client.generate_embeddings_batch([p.embedding_text() for p in batch])
        for product, vector in zip(batch, vectors):
            embedded.append(product.model_copy(update={"text_embedding": vector}))
        logger.info("Embedded %d/%d products", len(embedded), len(products))
    return embedded


def upsert_products(products: List[Product], index) -> int:
    total = 0
    for start in range(0, len(products), BATCH_SIZE):
        batch = products[start:start + BATCH_SIZE]
        total += index.upsert([
            {"id": p.id, "values": p.text_embedding, "metadata": p.index_metadata()}
            for p in batch
        ])
    return total


def write_local(products: List[Product], path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([p.to_api() for p in products], f, ensure_ascii=False)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Embed products and load them into the vector index.")
    parser.add_argument("source", help="JSON file with the products to ingest")
    parser.add_argument("--local", metavar="PATH",
                        help="write a local index file instead of upserting to Pinecone")
    args = parser.parse_args(argv)

    products = load_products(args.source)
    if not products:
        logger.warning("No products found in %s", args.source)
        return 1

    try:
        products = embed_products(products, EmbeddingClient())
        if args.local:
            write_local(products, args.local)
            logger.info("Wrote %d products to %s", len(products), args.local)
        else:
            count = upsert_products(products, PineconeIndex())
            logger.info("Upserted %d products", count)
    except Exception as e:
        logger.error("Ingestion failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
