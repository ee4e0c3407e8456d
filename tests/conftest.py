"""
Shared fixtures: in-memory collaborators, model factories and a SQLite WordPress database.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from shopp_migrator import config
from shopp_migrator.core.media import SideloadResult
from shopp_migrator.core.wp_database import WordPressDatabase
from shopp_migrator.logging_config import LOGGER_NAME
from shopp_migrator.schemas.catalog import TargetProduct, TargetVariation, VariableProduct
from shopp_migrator.schemas.legacy import LegacyImage, LegacyPrice, LegacyProduct, LegacySpec, ProductPage


def make_price(**overrides) -> LegacyPrice:
    values = {
        "id": 1,
        "type": "Shipped",
        "label": "Price & Delivery",
        "price": "20",
        "sale": "off",
        "saleprice": "0",
        "sku": "SKU-1",
        "tax": "on",
    }
    values.update(overrides)
    return LegacyPrice(**values)


def make_product(**overrides) -> LegacyProduct:
    values = {
        "id": 10,
        "name": "Blue Widget",
        "slug": "blue-widget",
        "description": "A widget, in blue.",
        "summary": "Blue widget",
        "created": datetime(2019, 5, 1, 12, 0, 0),
        "modified": datetime(2020, 1, 2, 8, 30, 0),
        "status": "publish",
        "featured": "off",
        "sku": "SKU-1",
        "sold": 4,
        "inventory": "off",
        "comment_status": "closed",
        "prices": [make_price()],
    }
    values.update(overrides)
    return LegacyProduct(**values)


def make_variable_product(**overrides) -> LegacyProduct:
    values = {
        "variants": "on",
        "sku": None,
        "prices": [
            make_price(id=1, label="Blue, S", sku="W-BS", options={"Color": "Blue", "Size": "S"}),
            make_price(id=2, label="Blue, L", sku="W-BL", options={"Color": "Blue", "Size": "L"}),
            make_price(id=3, label="Red, S", sku="W-RS", options={"Color": "Red", "Size": "S"}),
        ],
    }
    values.update(overrides)
    return make_product(**values)


def make_image(image_id: int, **overrides) -> LegacyImage:
    values = {
        "id": image_id,
        "url": f"https://shop.example.com/?siid={image_id}",
        "filename": f"image-{image_id}.jpg",
        "title": f"Image {image_id}",
    }
    values.update(overrides)
    return LegacyImage(**values)


def make_spec(name: str, value: str, sortorder: int) -> LegacySpec:
    return LegacySpec(name=name, value=value, sortorder=sortorder)


class FakeStore:
    """LegacyStore over a dict of products, keyed by id."""

    def __init__(self, products: Optional[List[LegacyProduct]] = None, terms: Optional[Dict[str, int]] = None,
                 backorders: bool = False, writer: Optional["FakeWriter"] = None):
        self.products = {product.id: product for product in products or []}
        self.terms = terms if terms is not None else {}
        self.backorders = backorders
        self.writer = writer

    def _legacy_ids(self) -> List[int]:
        ids = sorted(self.products)
        if self.writer is None:
            return ids
        return [pid for pid in ids if self.writer.post_types.get(pid, "shopp_product") == "shopp_product"]

    def list_products(self, page: int = 1, per_page: int = 50, published_only: bool = False) -> ProductPage:
        items = [self.products[pid] for pid in sorted(self.products)]
        if published_only:
            items = [item for item in items if item.status == "publish"]
        total = len(items)
        start = (page - 1) * per_page
        return ProductPage(
            items=items[start:start + per_page],
            page=page,
            per_page=per_page,
            total=total,
            total_pages=max(1, -(-total // per_page)),
        )

    def count_products(self) -> int:
        return len(self._legacy_ids())

    def list_product_ids(self, limit: int = 50, exclude=()) -> List[int]:
        excluded = set(exclude)
        return [pid for pid in self._legacy_ids() if pid not in excluded][:limit]

    def get_product(self, product_id: int) -> LegacyProduct:
        return self.products[product_id]

    def count_terms(self, taxonomy: str) -> int:
        return self.terms.get(taxonomy, 0)

    def setting_enabled(self, name: str) -> bool:
        return name == "backorders" and self.backorders


class FakeWriter:
    """
    CatalogWriter that keeps everything in memory.

    save_product echoes the product back, assigning ids to variations, after
    passing it through `tamper` (used to simulate a store that changes data).
    """

    def __init__(self, terms: Optional[Dict[str, int]] = None):
        self.post_types: Dict[int, str] = {}
        self.attachments: Dict[int, dict] = {}
        self.deleted_attachments: List[int] = []
        self.variations: Dict[int, List[TargetVariation]] = {}
        self.products: Dict[int, TargetProduct] = {}
        self.terms = terms if terms is not None else {}
        self.cleaned_caches: List[str] = []
        self.calls: List[str] = []
        self.tamper = None
        self._next_id = 1000

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def get_post_type(self, post_id: int) -> Optional[str]:
        return self.post_types.get(post_id, "shopp_product")

    def set_post_type(self, post_id: int, post_type: str) -> None:
        self.calls.append(f"set_post_type:{post_type}")
        self.post_types[post_id] = post_type

    def upload_attachment(self, file_path: str, filename: str, post_id: int, title: str = "") -> int:
        attachment_id = self._new_id()
        self.attachments[attachment_id] = {"filename": filename, "post_id": post_id, "title": title}
        return attachment_id

    def set_attachment_alt(self, attachment_id: int, alt: str) -> None:
        self.attachments[attachment_id]["alt"] = alt

    def delete_attachment(self, attachment_id: int) -> None:
        self.deleted_attachments.append(attachment_id)
        self.attachments.pop(attachment_id, None)

    def save_variation(self, variation: TargetVariation) -> TargetVariation:
        self.calls.append("save_variation")
        saved = variation.model_copy(update={"id": self._new_id()})
        self.variations.setdefault(variation.parent_id, []).append(saved)
        return saved

    def save_product(self, product: TargetProduct) -> TargetProduct:
        self.calls.append("save_product")
        if isinstance(product, VariableProduct):
            product = product.model_copy(update={"variations": self.variations.get(product.id, [])})
        if self.tamper is not None:
            product = self.tamper(product)
        self.products[product.id] = product
        return product

    def variation_ids(self, product_id: int) -> List[int]:
        return [variation.id for variation in self.variations.get(product_id, [])]

    def delete_variation(self, product_id: int, variation_id: int) -> None:
        self.variations[product_id] = [
            variation for variation in self.variations.get(product_id, []) if variation.id != variation_id
        ]

    def count_terms(self, taxonomy: str) -> int:
        return self.terms.get(taxonomy, 0)

    def reassign_terms(self, old_taxonomy: str, new_taxonomy: str) -> int:
        moved = self.terms.pop(old_taxonomy, 0)
        self.terms[new_taxonomy] = self.terms.get(new_taxonomy, 0) + moved
        return moved

    def clean_taxonomy_cache(self, taxonomy: str) -> None:
        self.cleaned_caches.append(taxonomy)


class FakeSideloader:
    """Hands out attachment ids from the writer; URLs in `failing` fail."""

    def __init__(self, writer: FakeWriter, failing=()):
        self.writer = writer
        self.failing = set(failing)
        self.requested: List[str] = []

    def sideload(self, image: LegacyImage, product_id: int) -> SideloadResult:
        self.requested.append(image.url)
        if image.url in self.failing:
            return SideloadResult.failure(image.url, "HTTP 404")
        return SideloadResult.success(self.writer.upload_attachment("/tmp/x", image.filename, product_id))


@pytest.fixture
def writer():
    return FakeWriter()


@pytest.fixture
def sideloader(writer):
    return FakeSideloader(writer)


@pytest.fixture
def wp_db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = WordPressDatabase(engine, table_prefix="wp_")
    db.tables.metadata.create_all(engine)
    yield db
    engine.dispose()


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    monkeypatch.setattr(config, "_settings", None)
    for key in ("DB_URL", "STORE_URL", "CONSUMER_KEY", "CONSUMER_SECRET", "WP_USERNAME",
                "WP_APP_PASSWORD", "LOG_LEVEL", "VERIFY", "PER_PAGE"):
        monkeypatch.delenv(f"SHOPP_MIGRATE_{key}", raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
