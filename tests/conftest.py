"""Shared catalog fixtures."""

import pytest

from product_search.hydrator import DocumentHydrator
from product_search.importer import build_catalog
from product_search.snapshot import CatalogSnapshot, SnapshotHolder

LAPTOPS = {"id": 3, "nameEn": "Laptops", "nameBg": "Лаптопи"}
STORAGE = {"id": 7, "nameEn": "Storage", "nameBg": "Памети"}
MONITORS = {"id": 9, "nameEn": "Monitors", "nameBg": "Монитори"}

LENOVO = {"id": 1, "name": "Lenovo"}
SAMSUNG = {"id": 2, "name": "Samsung"}
DELL = {"id": 3, "name": "Dell"}
KINGSTON = {"id": 4, "name": "Kingston"}


def _ram(option_id, label):
    return {
        "parameterId": 1,
        "parameterNameEn": "RAM",
        "parameterNameBg": "Памет",
        "optionId": option_id,
        "optionNameEn": label,
    }


def _color(option_id, label):
    return {"parameterId": 2, "parameterNameEn": "Color", "optionId": option_id, "optionNameEn": label}


DOCUMENTS = [
    {
        "id": 101,
        "nameEn": "Lenovo ThinkPad E14 Laptop",
        "nameBg": "Лаптоп Lenovo ThinkPad E14",
        "descriptionEn": "14 inch business laptop with SSD",
        "model": "E14",
        "referenceNumber": "LN-E14-001",
        "barcode": "1900000000101",
        "categories": [LAPTOPS],
        "manufacturer": LENOVO,
        "finalPrice": 1299.0,
        "status": "AVAILABLE",
        "featured": True,
        "parameters": [_ram(11, "16 GB"), _color(20, "Black")],
        "warranty": 24,
        "weight": 1.6,
        "flags": ["new"],
        "createdAt": "2024-03-01T10:00:00Z",
        "popularity": 50,
        "primaryImageUrl": "https://cdn.example.com/101.jpg",
    },
    {
        "id": 102,
        "nameEn": "Lenovo IdeaPad 3 Laptop",
        "descriptionEn": "Everyday laptop with SSD storage",
        "model": "IdeaPad3",
        "referenceNumber": "LN-IP3-002",
        "barcode": "1900000000102",
        "categories": [LAPTOPS],
        "manufacturer": LENOVO,
        "finalPrice": 649.0,
        "discount": 10,
        "status": "LIMITED_QUANTITY",
        "parameters": [_ram(10, "8 GB"), _ram(11, "16 GB"), _color(21, "Silver")],
        "warranty": 12,
        "weight": 1.9,
        "createdAt": "2024-01-15T10:00:00Z",
        "popularity": 80,
    },
    {
        "id": 103,
        "nameEn": "Dell XPS 13 Laptop",
        "descriptionEn": "Premium ultrabook",
        "model": "XPS13",
        "referenceNumber": "DL-XPS13",
        "barcode": "1900000000103",
        "categories": [LAPTOPS],
        "manufacturer": DELL,
        "finalPrice": 1899.0,
        "parameters": [_ram(12, "32 GB"), _color(21, "Silver")],
        "warranty": 36,
        "weight": 1.2,
        "createdAt": "2024-05-20T10:00:00Z",
        "popularity": 120,
    },
    {
        "id": 104,
        "nameEn": "Samsung 970 EVO SSD 1TB",
        "descriptionEn": "NVMe SSD drive",
        "model": "970EVO",
        "referenceNumber": "SM-970-1TB",
        "barcode": "8801643628079",
        "categories": [STORAGE],
        "manufacturer": SAMSUNG,
        "finalPrice": 119.99,
        "warranty": 60,
        "weight": 0.05,
        "createdAt": "2023-11-02T10:00:00Z",
        "popularity": 200,
    },
    {
        "id": 105,
        "nameEn": "Kingston A400 SSD 480GB",
        "descriptionEn": "SATA SSD for laptops",
        "model": "A400",
        "referenceNumber": "KS-A400-480",
        "barcode": "740617261196",
        "categories": [STORAGE],
        "manufacturer": KINGSTON,
        "finalPrice": 45.5,
        "onSale": True,
        "warranty": 36,
        "createdAt": "2022-06-10T10:00:00Z",
        "popularity": 90,
    },
    {
        "id": 106,
        "nameEn": "Samsung Odyssey Monitor",
        "descriptionEn": "27 inch curved gaming monitor",
        "model": "G5",
        "referenceNumber": "SM-G5-27",
        "barcode": "8806090000106",
        "categories": [MONITORS],
        "manufacturer": SAMSUNG,
        "finalPrice": 199.0,
        "status": "ON_DEMAND",
        "createdAt": "2024-02-01T10:00:00Z",
        "popularity": 30,
    },
    {
        "id": 107,
        "nameEn": "Samsung T7 Portable SSD",
        "descriptionEn": "USB SSD",
        "model": "T7",
        "referenceNumber": "SM-T7",
        "categories": [STORAGE],
        "manufacturer": SAMSUNG,
        "finalPrice": 99.0,
        "active": False,
    },
    {
        "id": 108,
        "nameEn": "Kingston DataTraveler SSD",
        "model": "DT",
        "referenceNumber": "KS-DT",
        "categories": [STORAGE],
        "manufacturer": KINGSTON,
        "finalPrice": 60.0,
        "show": False,
    },
    {
        "id": 109,
        "nameEn": "Dell UltraSharp Monitor",
        "descriptionEn": "27 inch office monitor",
        "model": "U2723",
        "referenceNumber": "DL-U2723",
        "categories": [MONITORS],
        "manufacturer": DELL,
        "finalPrice": 549.0,
        "popularity": 10,
    },
    {
        "id": 110,
        "nameEn": "Lenovo Laptop Backpack",
        "descriptionEn": "Backpack for 15 inch notebooks",
        "model": "B210",
        "referenceNumber": "LN-B210",
        "categories": [LAPTOPS],
        "manufacturer": LENOVO,
        "finalPrice": 59.9,
        "createdAt": "2024-04-01T10:00:00Z",
        "popularity": 5,
    },
]

MALFORMED_DOCUMENTS = [
    {"id": "not-a-number", "nameEn": "Broken"},
    {"nameEn": "Missing id"},
]


@pytest.fixture(scope="session")
def catalog():
    return build_catalog(DOCUMENTS + MALFORMED_DOCUMENTS)


@pytest.fixture(scope="session")
def snapshot(catalog):
    return CatalogSnapshot(1, catalog.candidates, catalog.labels, skipped=catalog.skipped)


@pytest.fixture
def holder(catalog):
    holder = SnapshotHolder()
    holder.publish(catalog.candidates, catalog.labels, skipped=catalog.skipped)
    return holder


@pytest.fixture
def hydrator(catalog):
    return DocumentHydrator(catalog.documents)
