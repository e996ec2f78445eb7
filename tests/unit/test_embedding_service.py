"""
Unit tests for the Embedding Service.

The sentence-transformers model is replaced with a mock so these run offline.
"""
from unittest.mock import Mock

import numpy as np
import pytest

from studyunlock.semantic.embedding_service import (
    EmbeddingResult,
    EmbeddingService,
    build_extracted_text,
    build_syllabus_text,
)


class TestEmbeddingText:
    """Tests for the text that gets embedded."""

    def test_extracted_text_joins_definition(self):
        assert build_extracted_text("Osmosis", "Diffusion of water") == "Osmosis: Diffusion of water"

    def test_extracted_text_without_definition(self):
        assert build_extracted_text("Osmosis", None) == "Osmosis"

    def test_syllabus_text_joins_category(self):
        assert build_syllabus_text("Osmosis", "Biology") == "Osmosis — Biology"

    def test_syllabus_text_without_category(self):
        assert build_syllabus_text("Osmosis") == "Osmosis"


class TestEmbeddingService:
    """Tests for EmbeddingService class."""

    @pytest.fixture
    def model(self):
        model = Mock()
        model.encode.side_effect = lambda texts, **kwargs: (
            np.ones(4, dtype=np.float32)
            if isinstance(texts, str)
            else np.stack([np.full(4, i + 1, dtype=np.float32) for i in range(len(texts))])
        )
        return model

    @pytest.fixture
    def service(self, model):
        return EmbeddingService(model_name="test-model", model=model)

    def test_generate_embedding(self, service):
        result = service.generate_embedding("What is osmosis?")

        assert isinstance(result, EmbeddingResult)
        assert result.dimension == 4
        assert result.model_name == "test-model"

    def test_batch_preserves_order(self, service):
        results = service.generate_embeddings_batch(["a", "b", "c"], show_progress=False)

        assert [r.text for r in results] == ["a", "b", "c"]
        assert results[2].embedding[0] == 3.0

    def test_batch_empty_skips_model(self, service, model):
        assert service.generate_embeddings_batch([]) == []
        model.encode.assert_not_called()

    def test_model_not_loaded_until_used(self):
        service = EmbeddingService(model_name="lazy-model")

        assert service.get_model_info()["is_loaded"] is False

    def test_embed_texts_or_none_empty_input(self, service):
        assert service.embed_texts_or_none([]) == []

    def test_embed_texts_or_none_on_backend_failure(self, model):
        model.encode.side_effect = RuntimeError("model download failed")
        service = EmbeddingService(model=model)

        assert service.embed_texts_or_none(["Osmosis"]) is None

    def test_cosine_similarity_identical(self):
        v = np.array([0.3, 0.4, 0.5])
        assert EmbeddingService.cosine_similarity(v, v) == pytest.approx(1.0)

    def test_cosine_similarity_orthogonal(self):
        assert EmbeddingService.cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == 0.0

    def test_cosine_similarity_zero_vector(self):
        assert EmbeddingService.cosine_similarity(np.zeros(3), np.array([1.0, 2.0, 3.0])) == 0.0

    def test_cosine_distance(self):
        v = np.array([1.0, 0.0])
        assert EmbeddingService.cosine_distance(v, -v) == pytest.approx(2.0)

    def test_similarity_matrix_shape(self, service):
        left = [np.array([1.0, 0.0]), np.array([0.0, 1.0])]
        right = [np.array([1.0, 0.0]), np.array([1.0, 1.0]), np.array([0.0, 2.0])]

        matrix = service.similarity_matrix(left, right, 2, 3)

        assert len(matrix) == 2
        assert all(len(row) == 3 for row in matrix)
        assert matrix[0][0] == pytest.approx(1.0)
        assert matrix[1][2] == pytest.approx(1.0)

    def test_similarity_matrix_without_embeddings_is_zero(self, service):
        matrix = service.similarity_matrix(None, [np.array([1.0])], 2, 1)

        assert matrix == [[0.0], [0.0]]
