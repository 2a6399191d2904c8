"""Command-line interface for ingesting, versioning and querying documents.

Usage::

    python -m tenantrag.cli ingest docs/guide.md docs/faq.md \\
        --tenant acme --doc-id guide --strategy markdown_aware

    python -m tenantrag.cli ingest https://example.com/page.html \\
        --tenant acme --doc-id page --update

    python -m tenantrag.cli versions --tenant acme --doc-id guide

    python -m tenantrag.cli query "how do I reset my password" \\
        --tenant acme --top-k 3 --where heading=Accounts

    python -m tenantrag.cli tenants

Exit status is 0 on success and 1 on any failure.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from tenantrag.config.settings import Settings
from tenantrag.models.filters import VectorFilter, VectorFilterBuilder
from tenantrag.models.ingestion import ChunkOptions, ChunkStrategy, IndexOptions, UpdateMode
from tenantrag.models.metadata import MetadataValue, get_heading
from tenantrag.utils.errors import TenantRagError


def _parse_where_value(raw: str) -> MetadataValue:
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def parse_where(clauses: list[str] | None) -> VectorFilter | None:
    """Turn ``field=value`` clauses into an equality filter (AND of all clauses)."""
    if not clauses:
        return None
    builder = VectorFilterBuilder()
    for clause in clauses:
        field, sep, value = clause.partition("=")
        if not sep or not field:
            raise ValueError(f"--where expects field=value, got '{clause}'")
        builder = builder.equal(field.strip(), _parse_where_value(value.strip()))
    return builder.build()


# ------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, services: dict[str, Any]) -> int:
    defaults: ChunkOptions = services["chunk_options"]
    chunk_options = ChunkOptions(
        max_size=args.max_size or defaults.max_size,
        overlap=args.overlap if args.overlap is not None else defaults.overlap,
        strategy=ChunkStrategy(args.strategy) if args.strategy else defaults.strategy,
    )
    options = IndexOptions(
        tenant_id=args.tenant,
        doc_id=args.doc_id,
        collection_name=args.collection,
        update_mode=UpdateMode.UPDATE if args.update else UpdateMode.UPSERT,
        delete_old_versions=args.update,
    )
    settings: Settings = services["settings"]
    concurrency = args.concurrency or settings.ingest_max_concurrency or None

    print(f"Ingesting {len(args.uris)} document(s) for tenant '{args.tenant}'")
    batch = await services["pipeline"].ingest_batch(
        args.uris, options, chunk_options, max_concurrency=concurrency
    )

    print("\nIngestion complete:")
    print(f"  Documents ok:    {len(batch.results)}")
    print(f"  Documents failed: {len(batch.errors)}")
    print(f"  Chunks indexed:  {batch.total_chunks_indexed}")
    print(f"  Vectors created: {batch.total_vectors_created}")
    for error in batch.errors:
        print(f"  ! {error.source_uri}: {error.error_message}", file=sys.stderr)
    index_errors = [e for r in batch.results for e in (r.errors or [])]
    for message in index_errors:
        print(f"  ! {message}", file=sys.stderr)
    return 0 if not batch.errors and not index_errors else 1


async def _handle_versions(args: argparse.Namespace, services: dict[str, Any]) -> int:
    versions = await services["version_manager"].list_versions(
        args.tenant, args.doc_id, args.collection
    )
    if not versions:
        print(f"No versions stored for '{args.doc_id}'")
        return 0
    print(f"Versions of '{args.doc_id}' (newest first):")
    for version in versions:
        print(f"  {version.version_id}  {version.created_at.isoformat()}  chunks={version.chunk_count}")
    return 0


async def _handle_query(args: argparse.Namespace, services: dict[str, Any]) -> int:
    settings: Settings = services["settings"]
    result = await services["retriever"].retrieve(
        args.text,
        args.tenant,
        top_k=args.top_k or settings.retrieval_top_k,
        filter=parse_where(args.where),
        collection=args.collection,
    )
    if not result.chunks:
        print("No matches.")
        return 0
    for n, rag_chunk in enumerate(result.chunks, start=1):
        source = rag_chunk.source_uri or rag_chunk.doc_id or "?"
        preview = " ".join(rag_chunk.chunk.text.split())[:200]
        heading = get_heading(rag_chunk.chunk.metadata)
        label = f"{source} > {heading}" if heading else source
        print(f"{n}. [{rag_chunk.score:.3f}] {label}")
        print(f"   {preview}")
    return 0


async def _handle_tenants(services: dict[str, Any]) -> int:
    tenants = await services["tenant_manager"].list_tenants()
    for tenant in tenants:
        quotas = tenant.quotas.model_dump(exclude_none=True) if tenant.quotas else {}
        print(f"{tenant.tenant_id:<20} {tenant.name:<30} {quotas or 'unlimited'}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the tenantrag CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m tenantrag.cli",
        description="Ingest, version and query tenant-scoped documents.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest files or URLs")
    ingest_parser.add_argument("uris", nargs="+", help="File paths, file:// or http(s):// URIs")
    ingest_parser.add_argument("--tenant", default="default", help="Tenant id")
    ingest_parser.add_argument("--doc-id", dest="doc_id", help="Logical document id")
    ingest_parser.add_argument(
        "--strategy",
        choices=[s.value for s in ChunkStrategy],
        help="Chunking strategy (default from settings)",
    )
    ingest_parser.add_argument("--max-size", dest="max_size", type=int, help="Max chunk size")
    ingest_parser.add_argument("--overlap", type=int, help="Chunk overlap")
    ingest_parser.add_argument(
        "--update",
        action="store_true",
        help="Replace older versions of --doc-id",
    )
    ingest_parser.add_argument(
        "--concurrency", type=int, help="Documents ingested in parallel"
    )
    ingest_parser.add_argument("--collection", help="Target collection")

    # -- versions --
    versions_parser = subparsers.add_parser("versions", help="List stored document versions")
    versions_parser.add_argument("--tenant", default="default", help="Tenant id")
    versions_parser.add_argument("--doc-id", dest="doc_id", required=True, help="Document id")
    versions_parser.add_argument("--collection", help="Collection")

    # -- query --
    query_parser = subparsers.add_parser("query", help="Retrieve the closest chunks")
    query_parser.add_argument("text", help="Query text")
    query_parser.add_argument("--tenant", default="default", help="Tenant id")
    query_parser.add_argument("--top-k", dest="top_k", type=int, help="Number of matches")
    query_parser.add_argument(
        "--where",
        action="append",
        metavar="FIELD=VALUE",
        help="Metadata equality filter (repeatable)",
    )
    query_parser.add_argument("--collection", help="Collection")

    # -- tenants --
    subparsers.add_parser("tenants", help="List configured tenants")

    return parser


async def _dispatch(args: argparse.Namespace, services: dict[str, Any]) -> int:
    if args.command == "ingest":
        return await _handle_ingest(args, services)
    if args.command == "versions":
        return await _handle_versions(args, services)
    if args.command == "query":
        return await _handle_query(args, services)
    if args.command == "tenants":
        return await _handle_tenants(services)
    return 1


def _build_services(app_settings: Settings) -> dict[str, Any]:
    from tenantrag.main import build_services

    return build_services(app_settings)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse arguments, build services, dispatch, exit."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    try:
        services = _build_services(app_settings)
        exit_code = asyncio.run(_dispatch(args, services))
    except (TenantRagError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
