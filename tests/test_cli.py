"""
Tests for CLI dispatch.
Commands run against the in-memory fake store via a patched facade.
"""

import json

import pytest
import yaml
from unittest.mock import patch

from chromabox import config
from chromabox.cli import build_parser, main
from chromabox.facade import VectorStoreFacade


@pytest.fixture
def cli(tmp_path, factory):
    """Run `chromabox <argv>` against the fake store."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "connection": {"host": "fake", "port": 8000},
        "browse": {"page_size": 2, "query_results": 3},
        "logging": {"level": "WARNING"},
    }))
    config.reset_config()
    config.load_config(path)

    def run(*argv):
        with patch("chromabox.facade.VectorStoreFacade", lambda: VectorStoreFacade(factory=factory)):
            main(list(argv))

    yield run
    config.reset_config()


def test_aliases_share_handlers():
    parser = build_parser()
    assert parser.parse_args(["ls"]).func is parser.parse_args(["cols"]).func
    assert parser.parse_args(["insert", "docs"]).func is parser.parse_args(["add", "docs"]).func


def test_no_command_prints_help(capsys):
    main([])
    assert "usage" in capsys.readouterr().out


def test_ring(cli, capsys):
    cli("ring")
    out = capsys.readouterr().out
    assert "fake:8000 is UP" in out
    assert "default_tenant" in out


def test_ring_dead_line(cli, factory, capsys):
    factory.down = True
    with pytest.raises(SystemExit) as exc:
        cli("ring")
    assert exc.value.code == 1
    assert "Dead line" in capsys.readouterr().out


def test_add_get_rm(cli, factory, capsys):
    cli("add", "docs", "--id", "r1", "--document", "hello", "--metadata", '{"lang": "en"}')
    assert "Added r1" in capsys.readouterr().out

    cli("get", "docs", "r1", "--json")
    rec = json.loads(capsys.readouterr().out)
    assert rec == {"id": "r1", "document": "hello", "metadata": {"lang": "en"}, "embedding": [0.0]}

    cli("rm", "docs", "r1")
    assert "Deleted r1" in capsys.readouterr().out
    assert factory.collection("docs").rows == {}


def test_rows_uses_page_size(cli, capsys):
    for i in range(3):
        cli("add", "docs", "--id", f"r{i}")
    capsys.readouterr()

    cli("rows", "docs")
    out = capsys.readouterr().out
    assert "r0" in out and "r1" in out
    assert "r2" not in out


def test_rows_explicit_limit_overrides_page_size(cli, factory, capsys):
    """--limit 0 is passed through as-is, not replaced by page_size."""
    for i in range(3):
        cli("add", "docs", "--id", f"r{i}")
    capsys.readouterr()

    cli("rows", "docs", "--limit", "0")
    assert "No records found." in capsys.readouterr().out

    cli("rows", "docs", "--limit", "3")
    out = capsys.readouterr().out
    assert "r0" in out and "r1" in out and "r2" in out


def test_query_zero_results_rejected(cli, factory, capsys):
    cli("add", "docs", "--id", "r1", "--document", "hello")
    capsys.readouterr()
    with pytest.raises(SystemExit) as exc:
        cli("query", "docs", "hello", "--results", "0")
    assert exc.value.code == 2
    assert "n_results must be >= 1" in capsys.readouterr().out
    assert factory.collection("docs").calls[-1][0] == "add"


def test_edit_keeps_embedding(cli, factory, capsys):
    cli("add", "docs", "--id", "r1", "--embedding", "[0.5, 0.25]")
    cli("edit", "docs", "r1", "--document", "new")
    assert "Updated r1" in capsys.readouterr().out
    row = factory.collection("docs").rows["r1"]
    assert row["document"] == "new"
    assert row["embedding"] == [0.5, 0.25]


def test_mutation_failure_exits(cli, capsys):
    with pytest.raises(SystemExit) as exc:
        cli("rmcol", "ghost", "--yes")
    assert exc.value.code == 1
    assert "Failed" in capsys.readouterr().out


def test_bad_json_option(cli, capsys):
    with pytest.raises(SystemExit) as exc:
        cli("add", "docs", "--metadata", "{nope")
    assert exc.value.code == 2


def test_collections_listing(cli, capsys):
    cli("mkcol", "docs")
    cli("mvcol", "docs", "papers")
    capsys.readouterr()
    cli("ls")
    out = capsys.readouterr().out
    assert "papers" in out
    assert "docs" not in out


def test_query(cli, factory, capsys):
    cli("add", "docs", "--id", "r1", "--document", "hello")
    capsys.readouterr()
    cli("query", "docs", "hello", "there")
    out = capsys.readouterr().out
    assert "r1" in out
    assert factory.collection("docs").calls[-1] == ("query", {"n_results": 3, "query_texts": ["hello there"]})


def test_tenant_and_database_admin(cli, factory, capsys):
    cli("mktenant", "acme")
    cli("--tenant", "acme", "mkdb", "main")
    capsys.readouterr()
    cli("--tenant", "acme", "dbs")
    assert "main" in capsys.readouterr().out

    cli("--tenant", "acme", "rmdb", "main", "--yes")
    assert factory.admin.databases["acme"] == []


def test_use_persists_scope(cli, capsys):
    cli("--tenant", "acme", "--database", "main", "use")
    conn = config.get_connection_config()
    assert conn.tenant == "acme"
    assert conn.database == "main"
