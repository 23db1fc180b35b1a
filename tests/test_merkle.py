import threading

from databridge.merkle import MerkleTree, hash_content

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
ABC_SHA256 = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_hash_content_known_digests():
    assert hash_content(b"") == EMPTY_SHA256
    assert hash_content(b"abc") == ABC_SHA256


def test_hash_content_text_equals_utf8_bytes():
    text = "héllo wörld"
    assert hash_content(text) == hash_content(text.encode("utf-8"))
    assert len(hash_content(text)) == 64


def test_get_missing_returns_none():
    tree = MerkleTree()
    assert tree.get("nope.go") is None
    assert "nope.go" not in tree


def test_set_then_get():
    tree = MerkleTree()
    tree.set("a.go", "h1")
    tree.set("a.go", "h2")
    assert tree.get("a.go") == "h2"
    assert len(tree) == 1


def test_mark_deleted_removes_hash():
    tree = MerkleTree()
    tree.set("a.go", "h1")
    tree.mark_deleted("a.go")
    assert tree.is_deleted("a.go") is True
    assert tree.get("a.go") is None
    assert tree.paths() == []


def test_set_clears_deleted_mark():
    tree = MerkleTree()
    tree.mark_deleted("a.go")
    tree.set("a.go", "h1")
    assert tree.is_deleted("a.go") is False
    assert tree.get("a.go") == "h1"


def test_paths_lists_tracked_files():
    tree = MerkleTree()
    tree.set("a.go", "1")
    tree.set("b.py", "2")
    tree.set("c.md", "3")
    tree.mark_deleted("b.py")
    assert sorted(tree.paths()) == ["a.go", "c.md"]


def test_snapshot_is_a_copy():
    tree = MerkleTree()
    tree.set("a.go", "h1")
    snap = tree.snapshot()
    snap["b.go"] = "h2"
    assert tree.get("b.go") is None
    assert tree.snapshot() == {"a.go": "h1"}


def test_load_replaces_contents_and_clears_deletions():
    tree = MerkleTree()
    tree.set("old.go", "x")
    tree.mark_deleted("gone.go")
    source = {"a.go": "h1", "b.go": "h2"}
    tree.load(source)
    source["c.go"] = "h3"
    assert tree.snapshot() == {"a.go": "h1", "b.go": "h2"}
    assert tree.is_deleted("gone.go") is False


def test_concurrent_sets_are_all_recorded():
    tree = MerkleTree()

    def worker(offset):
        for n in range(200):
            tree.set(f"f{offset}-{n}", hash_content(str(n)))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(tree.paths()) == 800