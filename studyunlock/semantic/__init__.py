"""
Semantic module for embedding-based concept similarity.

Technology:
- sentence-transformers (multilingual MiniLM, 384-dim) so that concepts
  extracted in one language still land near their syllabus counterpart
- numpy cosine similarity computed in Python
"""

from studyunlock.semantic.embedding_service import (
    EmbeddingResult,
    EmbeddingService,
    build_extracted_text,
    build_syllabus_text,
)

__all__ = [
    "EmbeddingService",
    "EmbeddingResult",
    "build_extracted_text",
    "build_syllabus_text",
]
