import json

import pytest

from product_search.domain import ProductStatus
from product_search.errors import SnapshotUnavailableError
from product_search.importer import build_catalog, load_catalog_file, parse_document
from product_search.snapshot import SnapshotHolder

from conftest import DOCUMENTS


def test_malformed_documents_are_skipped_and_counted(catalog, snapshot):
    assert catalog.skipped == 2
    assert len(catalog.candidates) == len(DOCUMENTS)
    assert snapshot.skipped == 2
    assert len(snapshot) == len(DOCUMENTS)


def test_parse_document_derives_flags():
    candidate = parse_document({"id": "5", "nameEn": "Thing", "discount": 5, "status": "ON_ROUTE"})

    assert candidate.id == 5
    assert candidate.on_sale is True
    assert candidate.in_stock is False
    assert candidate.status is ProductStatus.ON_ROUTE
    assert candidate.price is None


def test_parse_document_rejects_unknown_status():
    with pytest.raises(ValueError):
        parse_document({"id": 1, "status": "SOMETIMES"})


def test_labels_are_collected_from_documents(catalog):
    labels = catalog.labels

    assert labels.category(3, "bg") == "Лаптопи"
    assert labels.manufacturer(4) == "Kingston"
    assert labels.parameter(1, "en") == "RAM"
    assert labels.option(10, "bg") == "8 GB"
    assert labels.category(999, "en") == "999"


def test_duplicate_ids_are_skipped_by_snapshot(catalog):
    holder = SnapshotHolder()
    snapshot = holder.publish(catalog.candidates + catalog.candidates[:1], catalog.labels)

    assert len(snapshot) == len(catalog.candidates)
    assert snapshot.skipped == 1


def test_load_catalog_file_accepts_paginated_export(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"products": DOCUMENTS[:3]}), encoding="utf-8")

    catalog = load_catalog_file(path)

    assert [candidate.id for candidate in catalog.candidates] == [101, 102, 103]


def test_load_catalog_file_ignores_lfs_pointer(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text("version https://git-lfs.github.com/spec/v1\noid sha256:abc\n", encoding="utf-8")

    assert load_catalog_file(path).candidates == ()


def test_holder_without_snapshot_is_unavailable():
    with pytest.raises(SnapshotUnavailableError):
        SnapshotHolder().current_snapshot()


def test_publish_bumps_version_and_swaps_reference(catalog):
    holder = SnapshotHolder()
    first = holder.publish(catalog.candidates[:2], catalog.labels)
    held = holder.current_snapshot()
    second = holder.publish(catalog.candidates, catalog.labels)

    assert (first.version, second.version) == (1, 2)
    assert held is first
    assert len(held) == 2
    assert holder.current_snapshot() is second


def test_build_catalog_keeps_raw_documents():
    catalog = build_catalog(DOCUMENTS[:1])

    assert catalog.documents[101]["referenceNumber"] == "LN-E14-001"


def test_numeric_status_zero_is_not_available():
    candidate = parse_document({"id": 1, "nameEn": "Thing", "status": 0})

    assert candidate.status is ProductStatus.NOT_AVAILABLE
    assert candidate.in_stock is False


def test_missing_status_defaults_to_available():
    candidate = parse_document({"id": 1, "nameEn": "Thing", "status": ""})

    assert candidate.status is ProductStatus.AVAILABLE
    assert candidate.in_stock is True
