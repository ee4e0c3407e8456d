from datetime import datetime

import phpserialize
import pytest

from shopp_migrator.core.legacy_store import (
    ShoppDatabaseStore,
    parse_variant_menus,
    unserialize,
    variant_options,
)
from shopp_migrator.schemas.legacy import PriceType


def serialize(value) -> str:
    return phpserialize.dumps(value).decode("utf-8")


def insert(db, table, **values):
    with db.engine.begin() as conn:
        return conn.execute(getattr(db.tables, table).insert().values(**values)).inserted_primary_key[0]


def add_post(db, post_id, **values):
    row = {
        "ID": post_id,
        "post_title": f"Product {post_id}",
        "post_name": f"product-{post_id}",
        "post_content": "Long description",
        "post_excerpt": "Summary",
        "post_status": "publish",
        "comment_status": "open",
        "post_type": "shopp_product",
        "post_date_gmt": datetime(2019, 5, 1, 12, 0),
        "post_modified_gmt": datetime(2020, 1, 2, 8, 30),
    }
    row.update(values)
    insert(db, "posts", **row)


@pytest.fixture
def store(wp_db):
    return ShoppDatabaseStore(wp_db, store_url="https://shop.example.com/")


@pytest.fixture
def simple_product(wp_db):
    add_post(wp_db, 1, post_title="Oak Table", post_name="oak-table")
    insert(wp_db, "shopp_summary", product=1, sold=3, stock=0, inventory="on", featured="on", variants="off")
    price_id = insert(wp_db, "shopp_price", product=1, context="product", type="Shipped", label="Price & Delivery",
                      sku="OAK-1", price="120.500000", saleprice="99.000000", sale="on", tax="off")
    insert(wp_db, "shopp_meta", parent=price_id, context="price", type="meta", name="settings",
           value=serialize({"dimensions": {"weight": "12", "height": "75", "width": "90", "length": "180"}}))
    insert(wp_db, "shopp_meta", parent=1, context="product", type="spec", name="Material", value="Oak", sortorder=1)
    insert(wp_db, "shopp_meta", parent=1, context="product", type="spec", name="Finish", value="Oiled", sortorder=0)
    insert(wp_db, "shopp_meta", parent=1, context="product", type="image", name="original", sortorder=0,
           value=serialize(phpserialize.phpobject("ProductImage", {"filename": "oak.jpg", "title": "Oak", "alt": "Oak table"})))
    return 1


@pytest.fixture
def variable_product(wp_db):
    add_post(wp_db, 2, post_title="Shirt", post_name="shirt")
    insert(wp_db, "shopp_summary", product=2, variants="on")
    menus = {"v": {
        1: {"id": 1, "name": "Color", "options": {1: {"id": 1, "name": "Blue"}, 2: {"id": 2, "name": "Red"}}},
        2: {"id": 2, "name": "Size", "options": {3: {"id": 3, "name": "S"}, 4: {"id": 4, "name": "L"}}},
    }}
    insert(wp_db, "shopp_meta", parent=2, context="product", type="meta", name="options", value=serialize(menus))
    insert(wp_db, "shopp_price", product=2, context="product", type="N/A", label="Price & Delivery")
    insert(wp_db, "shopp_price", product=2, context="variation", type="Shipped", label="Blue, S", sku="S-BS",
           price="10", options="1,3", sortorder=1)
    insert(wp_db, "shopp_price", product=2, context="variation", type="Shipped", label="Red, L", sku="S-RL",
           price="12", options="", sortorder=2)
    return 2


def test_simple_product_is_loaded(store, simple_product):
    product = store.get_product(simple_product)

    assert product.name == "Oak Table"
    assert product.slug == "oak-table"
    assert product.created == datetime(2019, 5, 1, 12, 0)
    assert product.featured == "on"
    assert not product.has_variants
    assert product.sku == "OAK-1"
    assert product.sold == 3
    assert product.stock == 0
    assert product.outofstock is True
    assert product.comment_status == "open"

    price = product.prices[0]
    assert price.type == PriceType.SHIPPED
    assert price.price == "120.5"
    assert price.saleprice == "99"
    assert price.dimensions.weight == "12"
    assert price.options == {}

    assert [(spec.name, spec.sortorder) for spec in product.specs] == [("Finish", 0), ("Material", 1)]

    image = product.images[0]
    assert image.url == f"https://shop.example.com/?siid={image.id}"
    assert image.filename == "oak.jpg"
    assert image.alt == "Oak table"


def test_variable_product_options(store, variable_product):
    product = store.get_product(variable_product)

    assert product.has_variants
    assert product.sku is None
    assert product.stock is None
    assert product.outofstock is False
    assert [price.sku for price in product.prices] == ["S-BS", "S-RL"]
    assert product.prices[0].options == {"Color": "Blue", "Size": "S"}
    # No option ids stored, the label is split against the menus
    assert product.prices[1].options == {"Color": "Red", "Size": "L"}


def test_missing_product(store):
    with pytest.raises(LookupError):
        store.get_product(404)


def test_listing_skips_trash_and_converted_posts(store, wp_db, simple_product, variable_product):
    add_post(wp_db, 3, post_status="trash")
    add_post(wp_db, 4, post_type="product")
    add_post(wp_db, 5, post_status="draft")
    insert(wp_db, "shopp_summary", product=5)

    assert store.list_product_ids() == [1, 2, 5]
    assert store.list_product_ids(limit=2, exclude=[1]) == [2, 5]
    assert store.count_products() == 3

    page = store.list_products(page=2, per_page=2)
    assert [item.id for item in page.items] == [5]
    assert page.total == 3
    assert page.total_pages == 2

    published = store.list_products(published_only=True)
    assert [item.id for item in published.items] == [1, 2]


def test_store_settings(store, wp_db):
    insert(wp_db, "shopp_meta", parent=0, context="shopp", type="setting", name="backorders", value="on")
    insert(wp_db, "shopp_meta", parent=0, context="shopp", type="setting", name="inventory", value="off")

    assert store.setting_enabled("backorders") is True
    assert store.setting_enabled("inventory") is False
    assert store.setting_enabled("missing") is False


def test_unserialize_passes_plain_values_through():
    assert unserialize("plain text") == "plain text"
    assert unserialize("") == ""
    assert unserialize(None) is None
    assert unserialize(serialize({"a": 1})) == {"a": 1}


def test_variant_options_fall_back_to_label():
    menu_names, by_id = parse_variant_menus({"v": {1: {"name": "Size", "options": {}}}})

    assert menu_names == ["Size"]
    assert variant_options("", "XL", menu_names, by_id) == {"Size": "XL"}
    assert variant_options("9", "XL", menu_names, by_id) == {"Size": "XL"}


def test_image_urls_follow_the_configured_template(wp_db, simple_product):
    store = ShoppDatabaseStore(wp_db, image_url_template="{store_url}/images/{id}.jpg", store_url="https://shop.example.com/")

    image = store.get_product(simple_product).images[0]

    assert image.url == f"https://shop.example.com/images/{image.id}.jpg"
