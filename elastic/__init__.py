from .client import es_client, health_check
from .embedding import EmbeddingRequestFailed, EmbeddingUnavailable, VertexEmbedder, embedding_dim
from .indexer import Collection, ensure_collection, reset_collection
