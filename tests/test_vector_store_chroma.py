import pytest

from coderag.ingestion.vector_store import EmbeddingVectorStore, open_vector_store
from coderag.ingestion.vector_store_chroma import ChromaBackend

from conftest import HashEmbedder


def meta(path, idx=0):
    return {"file_path": path, "chunk_index": idx, "total_chunks": 1, "language": path.rsplit(".", 1)[-1]}


@pytest.fixture
def backend(tmp_path):
    b = ChromaBackend(persist_dir=str(tmp_path / "chroma"), collection_name="test-snippets")
    yield b
    b.close()


def test_empty_collection_query(backend):
    assert backend.count() == 0
    assert backend.query([1.0, 0.0, 0.0], k=5) == ([], [])


def test_upsert_query_delete_roundtrip(backend):
    backend.upsert(
        ["x", "y", "z"],
        [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        ["doc x", "doc y", "doc z"],
        [meta("x.py"), meta("y.go"), meta("z.rs")],
    )
    assert backend.count() == 3

    docs, metas = backend.query([0.0, 0.95, 0.05], k=2)
    assert docs[0] == "doc y"
    assert metas[0] == meta("y.go")
    assert len(docs) == 2

    backend.delete(["y"])
    assert backend.count() == 2
    docs, _ = backend.query([0.0, 1.0, 0.0], k=1)
    assert docs != ["doc y"]


def test_limit_larger_than_collection_returns_everything(backend):
    backend.upsert(["x"], [[1.0, 0.0]], ["doc x"], [meta("x.py")])
    docs, metas = backend.query([1.0, 0.0], k=10)
    assert docs == ["doc x"]
    assert metas == [meta("x.py")]


def test_upsert_is_idempotent_for_same_id(backend):
    for _ in range(3):
        backend.upsert(["x"], [[1.0, 0.0]], ["doc x"], [meta("x.py")])
    assert backend.count() == 1


def test_collection_survives_reopen(tmp_path):
    path = str(tmp_path / "chroma")
    first = ChromaBackend(persist_dir=path, collection_name="persisted")
    first.upsert(["x"], [[1.0, 0.0]], ["doc x"], [meta("x.py")])
    first.close()

    again = ChromaBackend(persist_dir=path, collection_name="persisted")
    assert again.count() == 1
    again.close()


def test_store_over_chroma_end_to_end(tmp_path):
    store = open_vector_store(HashEmbedder(), str(tmp_path / "db"), "e2e", backend="chroma")
    assert isinstance(store, EmbeddingVectorStore)
    with store:
        store.add(
            ["def parse_config(path)", "func handleError(err error)"],
            [meta("a.py"), meta("b.go")],
            ["id-a", "id-b"],
        )
        docs, metas = store.query("handleError err error", 1)
    assert docs == ["func handleError(err error)"]
    assert metas[0]["file_path"] == "b.go"
