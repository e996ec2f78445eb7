"""
Embedding Service - Generate semantic embeddings using sentence-transformers.

The model is loaded lazily and cached on the service instance. Callers on the
matching path use ``embed_texts_or_none`` so that a missing model, a failed
download or an encoding error degrades to "no similarity" instead of failing
the pipeline.

References:
- https://www.sbert.net/docs/pretrained_models.html
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
from loguru import logger

from config import get_settings
from studyunlock.core.clock import utcnow

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer


def build_extracted_text(concept_text: str, definition: str | None = None) -> str:
    """Text embedded for an extracted concept: ``"name: definition"``."""
    if definition:
        return f"{concept_text}: {definition}"
    return concept_text


def build_syllabus_text(concept_text: str, category: str | None = None) -> str:
    """Text embedded for a syllabus concept: ``"name — category"``."""
    if category:
        return f"{concept_text} — {category}"
    return concept_text


@dataclass
class EmbeddingResult:
    """Result of embedding generation for a single text."""

    text: str
    embedding: np.ndarray
    model_name: str
    generated_at: datetime | None

    @property
    def dimension(self) -> int:
        """Get embedding dimension."""
        return len(self.embedding)


class EmbeddingService:
    """
    Generate semantic embeddings for concept text.

    Example:
        >>> service = EmbeddingService()
        >>> vectors = service.embed_texts_or_none(["Photosynthesis", "Cell respiration"])
        >>> EmbeddingService.cosine_similarity(vectors[0], vectors[1])
    """

    def __init__(self, model_name: str | None = None, model: SentenceTransformer | None = None):
        """
        Initialize the embedding service.

        Args:
            model_name: Sentence transformer model to use.
                        Defaults to the configured embedding model.
            model: Pre-built model (skips lazy loading).
        """
        settings = get_settings()
        self.model_name = model_name or settings.embedding_model
        self.expected_dimension = settings.embedding_dimension
        self.batch_size = settings.embedding_batch_size
        self.show_progress = settings.embedding_show_progress
        self._model = model

    @property
    def model(self) -> SentenceTransformer:
        """
        Lazy load the model on first use.

        The model is downloaded from HuggingFace Hub on first run.
        Subsequent runs use the cached version.
        """
        if self._model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
            logger.info(
                f"Embedding model loaded: {self.model_name} ({self.expected_dimension}-dim)"
            )
        return self._model

    def generate_embedding(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text."""
        embedding = self.model.encode(text, convert_to_numpy=True)

        return EmbeddingResult(
            text=text,
            embedding=embedding,
            model_name=self.model_name,
            generated_at=utcnow(),
        )

    def generate_embeddings_batch(
        self,
        texts: list[str],
        batch_size: int | None = None,
        show_progress: bool | None = None,
    ) -> list[EmbeddingResult]:
        """
        Generate embeddings for multiple texts efficiently.

        Args:
            texts: List of texts to generate embeddings for.
            batch_size: Override default batch size.
            show_progress: Override default progress bar setting.

        Returns:
            List of EmbeddingResult objects, in input order.
        """
        if not texts:
            return []

        batch_size = batch_size or self.batch_size
        show_progress = show_progress if show_progress is not None else self.show_progress

        logger.debug(f"Generating embeddings for {len(texts)} texts (batch_size={batch_size})")

        embeddings = self.model.encode(
            texts,
            batch_size=batch_size,
            show_progress_bar=show_progress,
            convert_to_numpy=True,
        )

        now = utcnow()
        return [
            EmbeddingResult(
                text=text,
                embedding=emb,
                model_name=self.model_name,
                generated_at=now,
            )
            for text, emb in zip(texts, embeddings)
        ]

    def embed_texts_or_none(self, texts: list[str]) -> list[np.ndarray] | None:
        """
        Embed texts, returning None if the embedding backend is unavailable.

        An empty input yields an empty list, not None.
        """
        if not texts:
            return []
        try:
            results = self.generate_embeddings_batch(texts, show_progress=False)
        except Exception as exc:  # Intentionally broad - any backend failure degrades to no similarity
            logger.warning(f"Embeddings unavailable; falling back to null similarity: {exc}")
            return None
        return [np.asarray(r.embedding, dtype=np.float32) for r in results]

    @staticmethod
    def cosine_similarity(emb1: np.ndarray, emb2: np.ndarray) -> float:
        """
        Calculate cosine similarity between two embeddings.

        Returns:
            Score between -1 and 1; 0.0 when either vector has zero norm.
        """
        dot_product = np.dot(emb1, emb2)
        norm1 = np.linalg.norm(emb1)
        norm2 = np.linalg.norm(emb2)

        if norm1 == 0 or norm2 == 0:
            return 0.0

        return float(dot_product / (norm1 * norm2))

    @staticmethod
    def cosine_distance(emb1: np.ndarray, emb2: np.ndarray) -> float:
        """Cosine distance (1 - similarity), between 0 and 2."""
        return 1.0 - EmbeddingService.cosine_similarity(emb1, emb2)

    def similarity_matrix(
        self, left: list[np.ndarray] | None, right: list[np.ndarray] | None, rows: int, cols: int
    ) -> list[list[float]]:
        """
        Pairwise cosine similarities, ``rows x cols``.

        Missing embeddings on either side produce an all-zero matrix.
        """
        if left is None or right is None:
            return [[0.0] * cols for _ in range(rows)]
        return [[self.cosine_similarity(a, b) for b in right] for a in left]

    def get_model_info(self) -> dict:
        """Get information about the configured model."""
        return {
            "model_name": self.model_name,
            "dimension": self.expected_dimension,
            "is_loaded": self._model is not None,
            "batch_size": self.batch_size,
        }
