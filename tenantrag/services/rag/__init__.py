"""Retrieval, context composition and retrieval-augmented chat."""
