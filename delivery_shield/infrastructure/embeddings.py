"""Deterministic text embeddings for policy similarity search"""

import hashlib
import math
import re
from typing import List, Sequence

from delivery_shield.config import settings

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


class HashingEmbedder:
    """
    Hashed bag-of-words embedder.

    Each token is hashed into one of `dimensions` buckets with a signed
    weight; the vector is L2-normalised so dot product equals cosine
    similarity. Identical text always yields an identical vector.
    """

    def __init__(self, dimensions: int | None = None):
        self.dimensions = dimensions or settings.embedding_dimensions

    def embed(self, text: str) -> List[float]:
        vector = [0.0] * self.dimensions
        for token in TOKEN_PATTERN.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "big") % self.dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[index] += sign

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)
