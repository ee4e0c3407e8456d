import json
from datetime import datetime

import httpx
import pytest
from sqlalchemy import select

from shopp_migrator.core import woo_client
from shopp_migrator.core.catalog_writer import (
    WooCatalogWriter,
    price_payload,
    product_from_api,
    product_payload,
    variation_payload,
)
from shopp_migrator.core.woo_client import WooClient
from shopp_migrator.core.wp_client import WPClient, WordPressError
from shopp_migrator.schemas.catalog import (
    PriceProps,
    SimpleProduct,
    TargetAttribute,
    TargetVariation,
    VariableProduct,
)

PRODUCT_JSON = {
    "id": 10,
    "type": "simple",
    "name": "Blue Widget",
    "slug": "blue-widget",
    "status": "publish",
    "featured": False,
    "catalog_visibility": "visible",
    "description": "A widget, in blue.",
    "short_description": "Blue widget",
    "sku": "",
    "price": "15",
    "regular_price": "20",
    "sale_price": "15",
    "tax_status": "taxable",
    "date_created_gmt": "2019-05-01T12:00:00",
    "date_modified_gmt": "2024-03-01T09:00:00",
    "total_sales": 4,
    "manage_stock": False,
    "stock_quantity": None,
    "stock_status": "instock",
    "backorders": "no",
    "reviews_allowed": False,
    "parent_id": 0,
    "menu_order": 0,
    "upsell_ids": [],
    "cross_sell_ids": [],
    "virtual": False,
    "downloadable": False,
    "weight": "",
    "dimensions": {"length": "", "width": "", "height": ""},
    "images": [{"id": 501}, {"id": 502}],
    "attributes": [{"id": 0, "name": "Material", "position": 1, "visible": True, "variation": False, "options": ["Oak"]}],
}


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(woo_client.time, "sleep", lambda seconds: None)


def test_sale_price_only_sent_while_on_sale():
    on_sale = price_payload(PriceProps(price="15", regular_price="20", sale_price="15", sku="A"))
    off_sale = price_payload(PriceProps(price="20", regular_price="20", sale_price="15", sku="A"))

    assert on_sale["sale_price"] == "15"
    assert off_sale["sale_price"] == ""
    assert off_sale["regular_price"] == "20"


def test_simple_product_payload():
    product = SimpleProduct(
        id=10,
        name="Blue Widget",
        date_created=datetime(2019, 5, 1, 12, 0, 0, 123456),
        price=PriceProps(price="20", regular_price="20", sku="W-1"),
        image_id=501,
        gallery_image_ids=[502, 503],
        weight="1.5",
        dimensions={"length": "10"},
        attributes=[TargetAttribute(name="Material", options=["Oak"], position=1)],
    )
    payload = product_payload(product)

    assert payload["type"] == "simple"
    assert payload["sku"] == "W-1"
    assert payload["images"] == [{"id": 501}, {"id": 502}, {"id": 503}]
    assert payload["date_created_gmt"] == "2019-05-01T12:00:00"
    assert payload["dimensions"] == {"length": "10", "width": "", "height": ""}
    assert payload["attributes"][0] == {
        "name": "Material", "position": 1, "visible": True, "variation": False, "options": ["Oak"],
    }
    assert "default_attributes" not in payload


def test_variable_product_payload_has_no_price():
    product = VariableProduct(
        id=10,
        variations=[TargetVariation(parent_id=10, price=PriceProps(price="5"), attributes={"size": "S"})],
        default_attributes={"size": "S"},
    )
    payload = product_payload(product)

    assert payload["type"] == "variable"
    assert "regular_price" not in payload
    assert payload["default_attributes"] == [{"name": "size", "option": "S"}]


def test_variation_payload():
    variation = TargetVariation(
        parent_id=10,
        status="private",
        price=PriceProps(price="5", regular_price="5", sku="V-1", tax_status="none"),
        attributes={"color": "Blue", "size": "S"},
        virtual=True,
    )
    payload = variation_payload(variation)

    assert payload["status"] == "private"
    assert payload["virtual"] is True
    assert payload["tax_status"] == "none"
    assert payload["attributes"] == [{"name": "color", "option": "Blue"}, {"name": "size", "option": "S"}]


def test_simple_product_read_back():
    product = product_from_api(PRODUCT_JSON)

    assert isinstance(product, SimpleProduct)
    assert product.sku is None
    assert product.price.sale_price == "15"
    assert product.date_modified == datetime(2024, 3, 1, 9, 0, 0)
    assert product.image_id == 501
    assert product.gallery_image_ids == [502]
    assert product.dimensions is None
    assert product.attributes[0].options == ["Oak"]


def test_variable_product_read_back():
    data = dict(PRODUCT_JSON, type="variable", default_attributes=[{"id": 0, "name": "Size", "option": "S"}])
    variations = [{
        "id": 77,
        "status": "publish",
        "price": "5",
        "regular_price": "5",
        "sale_price": "",
        "sku": "V-1",
        "tax_status": "taxable",
        "virtual": False,
        "downloadable": False,
        "weight": "0.5",
        "dimensions": {"length": "1", "width": "", "height": ""},
        "attributes": [{"id": 0, "name": "Size", "option": "S"}],
    }]
    product = product_from_api(data, variations)

    assert isinstance(product, VariableProduct)
    assert product.default_attributes == {"size": "S"}
    assert product.variations[0].id == 77
    assert product.variations[0].price.sale_price is None
    assert product.variations[0].dimensions == {"length": "1"}
    assert product.variations[0].attributes == {"size": "S"}


def test_save_product_writes_sales_meta_and_reads_back(wp_db):
    requests = []

    def handler(request):
        requests.append((request.method, request.url.path))
        return httpx.Response(200, json=PRODUCT_JSON)

    woo = WooClient(
        "https://shop.example.com", consumer_key="ck", consumer_secret="cs",
        rate_limit_rps=0, transport=httpx.MockTransport(handler),
    )
    writer = WooCatalogWriter(woo, wp=None, db=wp_db)
    product = SimpleProduct(id=10, name="Blue Widget", total_sales=4, price=PriceProps(price="20"))

    stored = writer.save_product(product)

    assert requests == [("PUT", "/wp-json/wc/v3/products/10"), ("GET", "/wp-json/wc/v3/products/10")]
    postmeta = wp_db.tables.postmeta
    with wp_db.engine.connect() as conn:
        values = conn.execute(
            select(postmeta.c.meta_value).where(postmeta.c.post_id == 10, postmeta.c.meta_key == "total_sales")
        ).scalars().all()
    assert values == ["4"]
    assert stored.total_sales == 4


def test_save_variation_returns_new_id():
    def handler(request):
        body = json.loads(request.content)
        assert request.url.path == "/wp-json/wc/v3/products/10/variations"
        return httpx.Response(201, json=dict(body, id=88))

    woo = WooClient(
        "https://shop.example.com", consumer_key="ck", consumer_secret="cs",
        rate_limit_rps=0, transport=httpx.MockTransport(handler),
    )
    writer = WooCatalogWriter(woo, wp=None, db=None)
    saved = writer.save_variation(TargetVariation(parent_id=10, price=PriceProps(price="5")))

    assert saved.id == 88


def test_delete_attachment_raises_when_wordpress_refuses():
    def handler(request):
        return httpx.Response(403, json={"code": "rest_forbidden"})

    wp = WPClient("https://shop.example.com", "admin", "app pass", transport=httpx.MockTransport(handler))
    writer = WooCatalogWriter(woo=None, wp=wp, db=None)

    with pytest.raises(WordPressError):
        writer.delete_attachment(501)
