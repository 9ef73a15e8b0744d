#!/usr/bin/env python3
"""
chromabox CLI: browse the collections, edit the records.

Every command has a short name and standard aliases:

    NAME        ALIASES             WHAT IT DOES
    ----        -------             ----------------------------------
    ring        ping, status        Connect and check the server is up
    tenants     tenant-ls           Show the tenant you are scoped to
    dbs         databases           List databases in a tenant
    cols        ls, collections     List collections with record counts
    rows        records             Page through records in a collection
    get         show                Show one record
    add         insert              Add a record (collection auto-created)
    edit        update              Partially update a record
    rm          delete              Delete a record
    query       search, find        Similarity search
    mkcol       create-collection   Create a collection
    rmcol       drop-collection     Delete a collection
    mvcol       rename-collection   Rename a collection
    mktenant    create-tenant       Create a tenant
    mkdb        create-database     Create a database
    rmdb        drop-database       Delete a database
    use         scope               Remember a tenant/database scope
    info        config              Show configuration at a glance
"""

import argparse
import asyncio
import json
import logging
import sys

from chromabox import __version__

BANNER = r"""
    ╔══════════════════════════════════════════╗
    ║   c h r o m a b o x                      ║
    ║   Browse the collections.                ║
    ║   Edit the records.              v""" + __version__ + r"""  ║
    ╚══════════════════════════════════════════╝
"""


def _setup_logging(cfg: dict, verbose: bool = False):
    log_cfg = cfg.get("logging", {}) or {}
    level = getattr(logging, str(log_cfg.get("level", "WARNING")).upper(), logging.WARNING)
    if verbose:
        level = logging.DEBUG
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        from pathlib import Path
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _json_arg(raw: str | None, what: str):
    """Parse a JSON option value, exiting with a readable message on error."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"  ✗  --{what} is not valid JSON: {e}")
        sys.exit(2)


def _scope(args):
    """tenant/database from flags, else None so the facade uses its config."""
    return args.tenant, args.database


async def _connected_facade(args):
    from chromabox.config import get_connection_config
    from chromabox.facade import VectorStoreFacade

    cfg = get_connection_config()
    facade = VectorStoreFacade()
    if not await facade.connect(cfg):
        print(f"  ✗  Dead line — nothing at {cfg.host}:{cfg.port}")
        sys.exit(1)
    return facade


def _run_mutation(coro_fn):
    """Run a mutating command; failures are printed and exit non-zero."""
    from chromabox.facade import NotConnectedError

    try:
        return asyncio.run(coro_fn())
    except NotConnectedError:
        print("  ✗  Not connected")
        sys.exit(1)
    except Exception as e:
        print(f"  ✗  Failed: {e}")
        sys.exit(1)


def _print_record(rec, indent="  "):
    doc = rec.document or ""
    if len(doc) > 200:
        doc = doc[:200] + "..."
    emb = rec.embedding or []
    emb_str = f"[{len(emb)} dims]" if len(emb) > 4 else str(emb)
    print(f"{indent}▸ {rec.id}")
    print(f"{indent}    document:  {doc}")
    if rec.metadata:
        print(f"{indent}    metadata:  {json.dumps(rec.metadata, ensure_ascii=False)}")
    print(f"{indent}    embedding: {emb_str}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_ring(args):
    """Connect and report."""
    async def run():
        facade = await _connected_facade(args)
        cfg = facade.config
        print(f"  ☎  Ring ring... {cfg.host}:{cfg.port} is UP")
        tenants = await facade.list_tenants()
        print(f"  🏢 Tenant:   {tenants[0] if tenants else '?'}")
        print(f"  🗄  Database: {cfg.database or 'default_database'}")

    asyncio.run(run())


def cmd_tenants(args):
    async def run():
        facade = await _connected_facade(args)
        for name in await facade.list_tenants():
            print(f"  🏢 {name}")

    asyncio.run(run())


def cmd_dbs(args):
    async def run():
        facade = await _connected_facade(args)
        dbs = await facade.list_databases(args.tenant)
        if not dbs:
            print("  No databases found.")
            return
        for name in dbs:
            print(f"  🗄  {name}")

    asyncio.run(run())


def cmd_cols(args):
    async def run():
        facade = await _connected_facade(args)
        cols = await facade.list_collections(*_scope(args))
        if not cols:
            print("  No collections found.")
            return
        print(f"  {'Name':<32} {'Records':>8}  Id")
        print("  " + "─" * 70)
        for col in cols:
            print(f"  {col.name:<32} {col.count:>8}  {col.id}")

    asyncio.run(run())


def cmd_rows(args):
    from chromabox.config import get_browse_config

    limit = args.limit if args.limit is not None else get_browse_config()["page_size"]

    async def run():
        facade = await _connected_facade(args)
        records = await facade.list_records(*_scope(args), args.collection, limit=limit, offset=args.offset)
        if not records:
            print("  No records found.")
            return
        print(f"  📄 {args.collection}: records {args.offset}–{args.offset + len(records) - 1}")
        for rec in records:
            _print_record(rec)

    asyncio.run(run())


def cmd_get(args):
    async def run():
        facade = await _connected_facade(args)
        rec = await facade.get_record(*_scope(args), args.collection, args.id)
        if rec is None:
            print(f"  No record '{args.id}' in {args.collection}.")
            sys.exit(1)
        if args.json:
            print(json.dumps(rec.to_dict(), indent=2, ensure_ascii=False))
        else:
            _print_record(rec)

    asyncio.run(run())


def _record_from_args(args, record_id=None):
    from chromabox.models import Record

    return Record(
        id=record_id,
        document=args.document,
        metadata=_json_arg(args.metadata, "metadata"),
        embedding=_json_arg(args.embedding, "embedding"),
    )


def cmd_add(args):
    record = _record_from_args(args, args.id)

    async def run():
        facade = await _connected_facade(args)
        return await facade.add_record(*_scope(args), args.collection, record)

    record_id = _run_mutation(run)
    print(f"  ✓  Added {record_id} to {args.collection}")


def cmd_edit(args):
    record = _record_from_args(args, args.id)

    async def run():
        facade = await _connected_facade(args)
        return await facade.update_record(*_scope(args), args.collection, record)

    _run_mutation(run)
    print(f"  ✓  Updated {args.id}")


def cmd_rm(args):
    async def run():
        facade = await _connected_facade(args)
        return await facade.delete_record(*_scope(args), args.collection, args.id)

    _run_mutation(run)
    print(f"  ✓  Deleted {args.id} from {args.collection}")


def cmd_query(args):
    from chromabox.config import get_browse_config
    from chromabox.models import QueryRequest

    embedding = _json_arg(args.embedding, "embedding")
    texts = [" ".join(args.text)] if args.text else None
    if texts is None and embedding is None:
        print("  ✗  Give query text or --embedding")
        sys.exit(2)

    n_results = args.results if args.results is not None else get_browse_config()["query_results"]
    try:
        request = QueryRequest(
            query_texts=texts,
            query_embeddings=[embedding] if embedding is not None else None,
            n_results=n_results,
        )
    except ValueError as e:
        print(f"  ✗  {e}")
        sys.exit(2)

    async def run():
        facade = await _connected_facade(args)
        return await facade.query_collection(*_scope(args), args.collection, request)

    result = asyncio.run(run())
    if not result or not result.get("ids") or not result["ids"][0]:
        print("  No signal found.")
        return

    ids = result["ids"][0]
    docs = (result.get("documents") or [[]])[0] or []
    dists = (result.get("distances") or [[]])[0] or []
    for i, record_id in enumerate(ids, 1):
        doc = docs[i - 1] if i - 1 < len(docs) else ""
        dist = dists[i - 1] if i - 1 < len(dists) else None
        dist_str = f"{dist:.4f}" if dist is not None else "?"
        doc = (doc or "")[:200]
        print(f"\n  [{i}] {record_id} | distance: {dist_str}")
        print(f"      {doc}")


def _confirm(args, what: str) -> bool:
    if args.yes:
        return True
    answer = input(f"  Delete {what}? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def cmd_mkcol(args):
    _run_mutation(lambda: _admin_call(args, "create_collection", *_scope(args), args.name))
    print(f"  ✓  Collection '{args.name}' created")


def cmd_rmcol(args):
    if not _confirm(args, f"collection '{args.name}'"):
        print("  Aborted.")
        return
    _run_mutation(lambda: _admin_call(args, "delete_collection", *_scope(args), args.name))
    print(f"  ✓  Collection '{args.name}' deleted")


def cmd_mvcol(args):
    _run_mutation(lambda: _admin_call(args, "rename_collection", *_scope(args), args.old, args.new))
    print(f"  ✓  Collection '{args.old}' renamed to '{args.new}'")


def cmd_mktenant(args):
    _run_mutation(lambda: _admin_call(args, "create_tenant", args.name))
    print(f"  ✓  Tenant '{args.name}' created")


def _tenant_for(args):
    from chromabox.config import get_connection_config
    from chromabox.models import DEFAULT_TENANT

    return args.tenant or get_connection_config().tenant or DEFAULT_TENANT


def cmd_mkdb(args):
    tenant = _tenant_for(args)
    _run_mutation(lambda: _admin_call(args, "create_database", tenant, args.name))
    print(f"  ✓  Database '{args.name}' created in '{tenant}'")


def cmd_rmdb(args):
    tenant = _tenant_for(args)
    if not _confirm(args, f"database '{args.name}' in '{tenant}'"):
        print("  Aborted.")
        return
    _run_mutation(lambda: _admin_call(args, "delete_database", tenant, args.name))
    print(f"  ✓  Database '{args.name}' deleted from '{tenant}'")


async def _admin_call(args, method: str, *call_args):
    facade = await _connected_facade(args)
    return await getattr(facade, method)(*call_args)


def cmd_use(args):
    """Persist tenant/database scope into runtime_config.yaml."""
    from chromabox.config import update_runtime_config

    if not args.tenant and not args.database:
        print("  ✗  Give --tenant and/or --database")
        sys.exit(2)
    for key in ("tenant", "database"):
        value = getattr(args, key)
        if value:
            if not update_runtime_config(key, value):
                print(f"  ✗  Could not save {key}")
                sys.exit(1)
            print(f"  ✓  {key} → {value}")


def cmd_info(args):
    from chromabox.config import config_path, get_browse_config, get_connection_config

    cfg = get_connection_config()
    browse = get_browse_config()
    print(BANNER)
    print("  Configuration")
    print(f"  ├─ File:      {config_path()}")
    print(f"  ├─ Server:    {'https' if cfg.ssl else 'http'}://{cfg.host}:{cfg.port}")
    print(f"  ├─ Tenant:    {cfg.tenant or 'default_tenant'}")
    print(f"  ├─ Database:  {cfg.database or 'default_database'}")
    print(f"  ├─ API key:   {'set (' + cfg.token_header + ')' if cfg.api_key else 'none'}")
    print(f"  ├─ Page size: {browse['page_size']}")
    print(f"  └─ Results:   {browse['query_results']}")


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under multiple names."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def _record_options(p):
    p.add_argument("--document", "-d", default=None, help="Document text")
    p.add_argument("--metadata", "-m", default=None, help="Metadata as a JSON object")
    p.add_argument("--embedding", "-e", default=None, help="Embedding as a JSON array")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chromabox",
        description="chromabox — browse and edit Chroma collections.",
        epilog=(
            "Each command has a short name and standard aliases.\n"
            "Example: 'chromabox cols' and 'chromabox ls' do the same thing.\n"
            "Run 'chromabox <command> --help' for command-specific options."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"chromabox {__version__}",
    )
    parser.add_argument("--tenant", "-t", default=None, help="Tenant scope (default: from config)")
    parser.add_argument("--database", "-D", default=None, help="Database scope (default: from config)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    _add_command(sub, ["ring", "ping", "status"], "Connect and check the server is up", cmd_ring)
    _add_command(sub, ["tenants", "tenant-ls"], "Show the tenant you are scoped to", cmd_tenants)
    _add_command(sub, ["dbs", "databases"], "List databases in a tenant", cmd_dbs)
    _add_command(sub, ["cols", "ls", "collections"], "List collections", cmd_cols)

    def setup_rows(p):
        p.add_argument("collection", help="Collection name")
        p.add_argument("--limit", "-n", type=int, default=None, help="Page size (default: from config)")
        p.add_argument("--offset", "-o", type=int, default=0, help="Records to skip")

    _add_command(sub, ["rows", "records"], "Page through records", cmd_rows, setup_rows)

    def setup_get(p):
        p.add_argument("collection", help="Collection name")
        p.add_argument("id", help="Record id")
        p.add_argument("--json", action="store_true", help="Print the record as JSON")

    _add_command(sub, ["get", "show"], "Show one record", cmd_get, setup_get)

    def setup_add(p):
        p.add_argument("collection", help="Collection name (created if missing)")
        p.add_argument("--id", default=None, help="Record id (default: generated)")
        _record_options(p)

    _add_command(sub, ["add", "insert"], "Add a record", cmd_add, setup_add)

    def setup_edit(p):
        p.add_argument("collection", help="Collection name")
        p.add_argument("id", help="Record id")
        _record_options(p)

    _add_command(sub, ["edit", "update"], "Partially update a record", cmd_edit, setup_edit)

    def setup_rm(p):
        p.add_argument("collection", help="Collection name")
        p.add_argument("id", help="Record id")

    _add_command(sub, ["rm", "delete"], "Delete a record", cmd_rm, setup_rm)

    def setup_query(p):
        p.add_argument("collection", help="Collection name")
        p.add_argument("text", nargs="*", help="Query text")
        p.add_argument("--embedding", "-e", default=None, help="Query embedding as a JSON array")
        p.add_argument("--results", "-n", type=int, default=None, help="Number of results")

    _add_command(sub, ["query", "search", "find"], "Similarity search", cmd_query, setup_query)

    def setup_name(p):
        p.add_argument("name", help="Name")

    def setup_name_yes(p):
        setup_name(p)
        p.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    _add_command(sub, ["mkcol", "create-collection"], "Create a collection", cmd_mkcol, setup_name)
    _add_command(sub, ["rmcol", "drop-collection"], "Delete a collection", cmd_rmcol, setup_name_yes)

    def setup_mvcol(p):
        p.add_argument("old", help="Current name")
        p.add_argument("new", help="New name")

    _add_command(sub, ["mvcol", "rename-collection"], "Rename a collection", cmd_mvcol, setup_mvcol)
    _add_command(sub, ["mktenant", "create-tenant"], "Create a tenant", cmd_mktenant, setup_name)
    _add_command(sub, ["mkdb", "create-database"], "Create a database", cmd_mkdb, setup_name)
    _add_command(sub, ["rmdb", "drop-database"], "Delete a database", cmd_rmdb, setup_name_yes)
    _add_command(sub, ["use", "scope"], "Remember --tenant/--database for later commands", cmd_use)
    _add_command(sub, ["info", "config"], "Show configuration at a glance", cmd_info)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        print(BANNER)
        parser.print_help()
        return

    from chromabox.config import get_config
    _setup_logging(get_config(), verbose=args.verbose)

    args.func(args)


if __name__ == "__main__":
    main()
