from __future__ import annotations

from lsrsim.protocol.lsdb import LinkStateDatabase, LspVerdict
from lsrsim.protocol.messages import Lsp


def test_classify_new_duplicate_stale_and_own() -> None:
    db = LinkStateDatabase("A")
    first = Lsp(origin="B", sequence=2, neighbors=(("A", 1),))
    assert db.classify(first) is LspVerdict.NEW
    assert db.install(first)

    assert db.classify(Lsp(origin="B", sequence=2, neighbors=(("A", 1),))) is LspVerdict.DUPLICATE
    assert db.classify(Lsp(origin="B", sequence=1, neighbors=())) is LspVerdict.STALE
    assert db.classify(Lsp(origin="B", sequence=3, neighbors=())) is LspVerdict.NEW
    assert db.classify(Lsp(origin="A", sequence=9, neighbors=())) is LspVerdict.OWN


def test_install_never_goes_backwards() -> None:
    db = LinkStateDatabase("A")
    assert db.install(Lsp(origin="B", sequence=3, neighbors=(("C", 2),), timestamp=7))
    assert not db.install(Lsp(origin="B", sequence=3, neighbors=()))
    assert not db.install(Lsp(origin="B", sequence=1, neighbors=()))

    entry = db.get("B")
    assert entry is not None
    assert entry.sequence == 3
    assert entry.neighbor_costs() == {"C": 2}
    assert entry.to_dict() == {"sequence": 3, "neighbors": [["C", 2]], "timestamp": 7}


def test_entries_are_sorted_by_origin() -> None:
    db = LinkStateDatabase("A")
    for origin in ("D", "B", "C"):
        db.install(Lsp(origin=origin, sequence=1, neighbors=()))
    assert [entry.origin for entry in db.entries()] == ["B", "C", "D"]
    assert "C" in db
    assert len(db) == 3
    assert db.sequence_of("Z") is None
