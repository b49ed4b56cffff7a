"""Embedding model used for more-like-this similarity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from desksearch.utils.text import chunk_text

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    device: str | None = None
    # Only the head of long documents takes part in similarity
    max_document_chars: int = 20000
    chunk_chars: int = 1200
    overlap: int = 200


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` producing one vector per document."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info("Loaded embedding model %s (dimension %d)", self.config.model_name, self.dimension)

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        embeddings = self._model.encode(
            sentences,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    def embed_document(self, text: str) -> np.ndarray | None:
        """Mean of the chunk embeddings of a document, unit length. None for empty text."""
        head = text[: self.config.max_document_chars]
        chunks = [chunk for chunk in chunk_text(head, max_chars=self.config.chunk_chars, overlap=self.config.overlap) if chunk.strip()]
        if not chunks:
            return None
        vector = self.embed(chunks).mean(axis=0)
        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector = vector / norm
        return vector.astype("float32", copy=False)
