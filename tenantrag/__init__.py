"""tenantrag -- a multi-tenant retrieval-augmented-generation engine.

Documents are loaded, chunked, enriched and indexed as versioned vector
records scoped to a tenant; queries are answered by a tenant-isolated
similarity search whose results are folded back into a chat prompt.
"""

__version__ = "0.1.0"
