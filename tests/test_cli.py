import json

import pytest

from coderag.app import cli
from coderag.errors import MissingCredentialsError

from conftest import HashEmbedder


@pytest.fixture
def fake_embedder(monkeypatch):
    emb = HashEmbedder()
    monkeypatch.setattr(cli, "Embedder", lambda: emb)
    return emb


def run(tmp_path, *args):
    return cli.main(["--backend", "numpy", "--persist-dir", str(tmp_path / "db"), *args])


def test_index_then_search_as_json(code_tree, tmp_path, fake_embedder, capsys):
    assert run(tmp_path, "index", str(code_tree)) == 0
    capsys.readouterr()

    assert run(tmp_path, "search", "handleError err error", "-k", "2", "--json") == 0
    results = json.loads(capsys.readouterr().out)

    assert len(results) == 2
    assert set(results[0]) == {"content", "metadata"}
    assert results[0]["metadata"]["file_path"].endswith("b.go")
    assert results[0]["metadata"]["language"] == "go"


def test_search_prints_human_readable_results(code_tree, tmp_path, fake_embedder, capsys):
    run(tmp_path, "index", str(code_tree))
    capsys.readouterr()

    assert run(tmp_path, "search", "retryDelay", "-k", "1") == 0
    out = capsys.readouterr().out

    assert "--- Result 1 ---" in out
    assert "Chunk 1 of 1" in out


def test_sync_mode_writes_manifest(code_tree, tmp_path, fake_embedder):
    manifest = tmp_path / "m.json"
    assert run(tmp_path, "index", str(code_tree), "--sync", "--manifest", str(manifest)) == 0
    assert manifest.exists()


def test_index_failure_exits_1(tmp_path, fake_embedder):
    assert run(tmp_path, "index", str(tmp_path / "missing")) == 1


def test_bad_limit_exits_1(tmp_path, fake_embedder):
    assert run(tmp_path, "search", "x", "-k", "0") == 1


def test_missing_credentials_exit_2(tmp_path, monkeypatch):
    def no_key():
        raise MissingCredentialsError("OPENAI_API_KEY not found in environment or .env file")

    monkeypatch.setattr(cli, "Embedder", no_key)
    assert run(tmp_path, "search", "x") == 2


def test_expired_deadline_exits_130(code_tree, tmp_path, fake_embedder):
    assert run(tmp_path, "--timeout", "0", "index", str(code_tree)) == 130


def test_negative_timeout_exits_1(tmp_path, fake_embedder):
    assert run(tmp_path, "--timeout", "-1", "search", "x") == 1


def test_malformed_embedder_setting_is_not_reported_as_missing_key(tmp_path, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("CODERAG_EMBED_MAX_RETRIES", "lots")
    assert run(tmp_path, "search", "x") == 1


def test_sync_into_another_collection_uses_its_own_manifest(code_tree, tmp_path, fake_embedder, capsys):
    assert run(tmp_path, "index", str(code_tree), "--sync") == 0
    assert run(tmp_path, "--collection", "other", "index", str(code_tree), "--sync") == 0
    assert (tmp_path / "db" / "numpy-code-snippets.manifest.json").exists()
    assert (tmp_path / "db" / "numpy-other.manifest.json").exists()
    capsys.readouterr()

    assert run(tmp_path, "--collection", "other", "search", "x", "-k", "10", "--json") == 0
    assert len(json.loads(capsys.readouterr().out)) == 4
