"""
Text embedding generation using Vertex AI.

Provides:
- VertexEmbedder: one vector per summary text, via the configured model
- embedding_dim(): probe the model's vector size

There is no retry here: a failed call surfaces as EmbeddingRequestFailed
and the caller may retry the whole operation.
"""
from __future__ import annotations
import time
from typing import List, Optional, Protocol
from functools import lru_cache

from google.cloud import aiplatform
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import DefaultCredentialsError
from vertexai.language_models import TextEmbeddingModel

from core.config import config
from core.errors import ConfigurationError, UpstreamFailure
from core.logger import get_logger

log = get_logger("elastic/embedding")


class EmbeddingUnavailable(ConfigurationError):
    """The embedding credential/configuration is missing."""


class EmbeddingRequestFailed(UpstreamFailure):
    """The embedding model answered with a non-success status."""


class Embedder(Protocol):
    def embed(self, text: str) -> List[float]:
        """Return the embedding vector for one text."""


@lru_cache(maxsize=4)
def _load_model(project_id: str, location: str, model_name: str) -> TextEmbeddingModel:
    """
    Load and cache Vertex AI embedding model.

    Only the model handle is cached; vectors never are.
    """
    log.info(
        f"Initializing Vertex AI embedding model: "
        f"project={project_id} location={location} model={model_name}"
    )
    aiplatform.init(project=project_id, location=location)
    model = TextEmbeddingModel.from_pretrained(model_name)
    log.info(f"Vertex AI embedding model loaded successfully: {model_name}")
    return model


class VertexEmbedder:
    """
    Embedding client backed by a Vertex AI text-embedding model.

    Args:
        project_id: GCP project (defaults to GCP_PROJECT_ID)
        location: GCP region (defaults to GCP_LOCATION)
        model_name: Embedding model (defaults to VERTEX_MODEL_EMBED)
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> None:
        self._project_id = project_id if project_id is not None else config.gcp_project_id
        self._location = location or config.gcp_location
        self._model_name = model_name or config.vertex_model_embed

    @property
    def model_name(self) -> str:
        return self._model_name

    def _model(self) -> TextEmbeddingModel:
        if not self._project_id:
            error_msg = "GCP_PROJECT_ID is not configured; cannot generate embeddings"
            log.error(error_msg)
            raise EmbeddingUnavailable(error_msg)
        try:
            return _load_model(self._project_id, self._location, self._model_name)
        except DefaultCredentialsError as e:
            log.error(f"No Google credentials available for Vertex AI: {e}")
            raise EmbeddingUnavailable(f"No Google credentials available: {e}") from e
        except GoogleAPIError as e:
            status = getattr(e, "code", None)
            log.error(f"Failed to load embedding model {self._model_name}: {e}")
            raise EmbeddingRequestFailed(f"Failed to load embedding model: {e}", status=status) from e

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts, in input order.

        Raises:
            ValueError: If texts is empty or contains non-strings
            EmbeddingUnavailable: If GCP_PROJECT_ID is not configured
            EmbeddingRequestFailed: If Vertex AI returns an error
        """
        if not texts:
            raise ValueError("texts list cannot be empty")
        if not all(isinstance(t, str) for t in texts):
            raise ValueError("All items in texts must be strings")

        model = self._model()
        start_time = time.time()
        log.debug(
            f"Generating embeddings: count={len(texts)} "
            f"model={self._model_name} total_chars={sum(len(t) for t in texts)}"
        )

        try:
            response = model.get_embeddings(texts)
        except DefaultCredentialsError as e:
            log.error(f"No Google credentials available for Vertex AI: {e}")
            raise EmbeddingUnavailable(f"No Google credentials available: {e}") from e
        except GoogleAPIError as e:
            status = getattr(e, "code", None)
            log.error(f"Vertex AI embedding request failed: status={status} error={e}")
            raise EmbeddingRequestFailed(f"Vertex AI embedding failed: {e}", status=status) from e

        vectors = [list(embedding.values) for embedding in response]
        if len(vectors) != len(texts):
            raise EmbeddingRequestFailed(
                f"Vertex AI returned {len(vectors)} embeddings for {len(texts)} texts"
            )

        elapsed = time.time() - start_time
        log.info(
            f"Generated embeddings: count={len(vectors)} "
            f"dim={len(vectors[0])} elapsed={elapsed:.2f}s"
        )
        return vectors

    def embed(self, text: str) -> List[float]:
        return self.embed_many([text])[0]


def embedding_dim(*, embedder: Optional[Embedder] = None) -> int:
    """
    Determine embedding dimension by generating a probe embedding.

    Examples:
        >>> embedding_dim()
        768
    """
    client = embedder or VertexEmbedder()
    dimension = len(client.embed("probe"))
    log.info(f"Embedding dimension determined: {dimension}")
    return dimension
