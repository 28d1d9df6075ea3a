"""Reply pipeline: classify, retrieve, assemble, generate, record."""
