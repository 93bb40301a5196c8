from svgbinder.ids import compute_document_id


def test_compute_document_id_stability() -> None:
    a = compute_document_id(["a:100x50", "b:10x10"])
    b = compute_document_id(["a:100x50", "b:10x10"])
    assert a == b
    assert len(a) == 32
    int(a, 16)


def test_compute_document_id_depends_on_order() -> None:
    assert compute_document_id(["a", "b"]) != compute_document_id(["b", "a"])


def test_compute_document_id_accepts_generators() -> None:
    assert compute_document_id(p for p in ["x"]) == compute_document_id(["x"])
