def mapping_collection(vector_dim: int):
    """Index body for one logical collection of (id, embedding, metadata, document) rows."""
    return {
        "mappings": {
            "properties": {
                "embedding": {"type": "dense_vector", "dims": vector_dim, "index": True, "similarity": "cosine"},
                "document": {"type": "text"},
                # flat string metadata, kept in _source only; itemsJson can exceed keyword limits
                "metadata": {"type": "object", "enabled": False},
            }
        }
    }
