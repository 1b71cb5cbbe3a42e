import json

import pytest

import main


def _run(tmp_path, *argv):
    main.main(["--backend", "file", "--data-dir", str(tmp_path), *argv])


def _stored_ids(tmp_path, tier):
    document = json.loads((tmp_path / f"{tier}.json").read_text(encoding="utf-8"))
    return [entry["id"] for entry in document["snippets"]]


def test_add_list_search_and_move(tmp_path, capsys):
    _run(tmp_path, "add", "buy milk")
    _run(tmp_path, "add", "sell car", "--tier", "sync")
    capsys.readouterr()

    _run(tmp_path, "list")
    listing = capsys.readouterr().out
    assert "buy milk" in listing
    assert "sell car" not in listing

    _run(tmp_path, "search", "milk")
    assert "buy milk" in capsys.readouterr().out

    snippet_id = _stored_ids(tmp_path, "local")[0]
    _run(tmp_path, "move", snippet_id, "--tier", "local")

    assert _stored_ids(tmp_path, "local") == []
    assert snippet_id in _stored_ids(tmp_path, "sync")


def test_clear_and_usage(tmp_path, capsys):
    _run(tmp_path, "add", "temporary", "--tier", "sync")
    _run(tmp_path, "clear", "--tier", "sync", "--yes")
    _run(tmp_path, "usage", "--tier", "sync")

    output = capsys.readouterr().out
    assert "Synced storage:" in output
    assert _stored_ids(tmp_path, "sync") == []


def test_vault_errors_exit_non_zero(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        _run(tmp_path, "delete", "does-not-exist", "--tier", "local")

    assert exc_info.value.code == 1
    assert "not found" in capsys.readouterr().err


def test_blank_search_lists_requested_tier(tmp_path, capsys):
    _run(tmp_path, "add", "only synced", "--tier", "sync")
    capsys.readouterr()

    _run(tmp_path, "search", "  ", "--tier", "sync")

    output = capsys.readouterr().out
    assert "only synced" in output
    assert "[Synced]" in output
