"""Core infrastructure: models, providers and the generation client."""
