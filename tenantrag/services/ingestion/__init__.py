"""Document ingestion: chunking, enrichment, indexing and versioning."""
