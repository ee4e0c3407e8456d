"""
Read access to the Shopp catalog.

Shopp keeps products as WordPress posts of type "shopp_product" and their
prices, summaries, specs, images and settings in its own tables. Several meta
values are PHP-serialized.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

import phpserialize
from sqlalchemy import select

from shopp_migrator.core.utils import format_decimal, str_to_bool
from shopp_migrator.core.wp_database import WordPressDatabase
from shopp_migrator.schemas.legacy import (
    Dimensions,
    LegacyImage,
    LegacyPrice,
    LegacyProduct,
    LegacySpec,
    ProductPage,
)

logger = logging.getLogger(__name__)

LEGACY_POST_TYPE = "shopp_product"


class LegacyStore(Protocol):
    """Source of Shopp products, term counts and store settings."""

    def list_products(self, page: int = 1, per_page: int = 50, published_only: bool = False) -> ProductPage:
        ...

    def count_products(self) -> int:
        ...

    def list_product_ids(self, limit: int = 50, exclude: Iterable[int] = ()) -> List[int]:
        ...

    def get_product(self, product_id: int) -> LegacyProduct:
        ...

    def count_terms(self, taxonomy: str) -> int:
        ...

    def setting_enabled(self, name: str) -> bool:
        ...


def unserialize(value: Optional[str]) -> Any:
    """
    Decode a PHP-serialized meta value.

    Objects are returned as plain dicts of their properties; values that are
    not serialized come back unchanged.
    """
    if value is None or value == "":
        return value
    try:
        return phpserialize.loads(
            value.encode("utf-8"),
            decode_strings=True,
            object_hook=lambda _name, props: props,
        )
    except ValueError:
        return value


def _as_datetime(value: Any) -> Optional[datetime]:
    """MySQL zero dates ("0000-00-00 00:00:00") have no datetime equivalent."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value and not value.startswith("0000"):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _ordered_values(mapping: Any) -> List[Any]:
    """PHP arrays decode to dicts keyed by index; keep their order."""
    if isinstance(mapping, dict):
        return list(mapping.values())
    if isinstance(mapping, (list, tuple)):
        return list(mapping)
    return []


def parse_variant_menus(options: Any) -> Tuple[List[str], Dict[int, Tuple[str, str]]]:
    """
    Read the variant menus out of a product's "options" meta.

    Returns:
        (menu names in order, {option id: (menu name, option name)})
    """
    menu_names: List[str] = []
    by_option_id: Dict[int, Tuple[str, str]] = {}

    if not isinstance(options, dict):
        return menu_names, by_option_id

    for menu in _ordered_values(options.get("v")):
        if not isinstance(menu, dict):
            continue
        menu_name = str(menu.get("name", ""))
        menu_names.append(menu_name)
        for option in _ordered_values(menu.get("options")):
            if isinstance(option, dict) and "id" in option:
                by_option_id[int(option["id"])] = (menu_name, str(option.get("name", "")))

    return menu_names, by_option_id


def variant_options(
    price_options: str,
    label: str,
    menu_names: List[str],
    by_option_id: Dict[int, Tuple[str, str]]
) -> Dict[str, str]:
    """
    Map a variation price to {menu name: option name}.

    Prefers the price's option ids; falls back to splitting the label
    ("Blue, L") against the menu order.
    """
    selected: Dict[str, str] = {}
    ids = [part.strip() for part in (price_options or "").split(",") if part.strip()]
    if ids and all(part.isdigit() and int(part) in by_option_id for part in ids):
        for part in ids:
            menu_name, option_name = by_option_id[int(part)]
            selected[menu_name] = option_name
        return selected

    values = [part.strip() for part in (label or "").split(",")]
    for menu_name, value in zip(menu_names, values):
        selected[menu_name] = value
    return selected


class ShoppDatabaseStore:
    """LegacyStore backed by the Shopp tables of a WordPress database."""

    def __init__(self, db: WordPressDatabase, image_url_template: str = "{store_url}/?siid={id}", store_url: str = ""):
        """
        Args:
            db: WordPress database access
            image_url_template: Public URL pattern for Shopp image assets
            store_url: Site URL substituted into image_url_template
        """
        self.db = db
        self.tables = db.tables
        self.image_url_template = image_url_template
        self.store_url = store_url.rstrip("/")

    def list_products(self, page: int = 1, per_page: int = 50, published_only: bool = False) -> ProductPage:
        """
        List fully loaded products, paginated.

        Args:
            page: Page number (1-based)
            per_page: Items per page
            published_only: Only products with status "publish"
        """
        statuses = ["publish"] if published_only else None
        total = self.db.count_posts(LEGACY_POST_TYPE, statuses=statuses)
        ids = self.db.list_post_ids(
            LEGACY_POST_TYPE,
            limit=per_page,
            offset=(page - 1) * per_page,
            statuses=statuses,
        )
        return ProductPage(
            items=[self.get_product(product_id) for product_id in ids],
            page=page,
            per_page=per_page,
            total=total,
            total_pages=max(1, math.ceil(total / per_page)) if per_page else 1,
        )

    def count_products(self) -> int:
        return self.db.count_posts(LEGACY_POST_TYPE)

    def list_product_ids(self, limit: int = 50, exclude: Iterable[int] = ()) -> List[int]:
        """First IDs still stored as Shopp products, any status."""
        return self.db.list_post_ids(LEGACY_POST_TYPE, limit=limit, exclude=exclude)

    def get_product(self, product_id: int) -> LegacyProduct:
        """
        Load a product with its summary, prices, specs and images.

        Raises:
            LookupError: If no post exists with that ID.
        """
        post = self.db.get_post(product_id)
        if post is None:
            raise LookupError(f"Shopp product {product_id} not found")

        summary = self._summary(product_id)
        variants = summary.get("variants", "off")
        inventory = summary.get("inventory", "off")
        tracked = str_to_bool(inventory)
        stock = int(summary.get("stock") or 0)

        prices = self._prices(product_id, variations=str_to_bool(variants))

        return LegacyProduct(
            id=post.ID,
            name=post.post_title or "",
            slug=post.post_name or "",
            description=post.post_content or "",
            summary=post.post_excerpt or "",
            created=_as_datetime(post.post_date_gmt),
            modified=_as_datetime(post.post_modified_gmt),
            status=post.post_status,
            featured=summary.get("featured", "off"),
            sku=prices[0].sku if prices and not str_to_bool(variants) else None,
            sold=int(summary.get("sold") or 0),
            inventory=inventory,
            stock=stock if tracked else None,
            outofstock=tracked and stock <= 0,
            comment_status=post.comment_status,
            post_parent=post.post_parent or 0,
            menu_order=post.menu_order or 0,
            variants=variants,
            addons=summary.get("addons", "off"),
            prices=prices,
            specs=self._specs(product_id),
            images=self._images(product_id),
        )

    def count_terms(self, taxonomy: str) -> int:
        return self.db.count_terms(taxonomy)

    def setting_enabled(self, name: str) -> bool:
        """Whether a store-level Shopp setting (e.g. "backorders") is switched on."""
        meta = self.tables.shopp_meta
        query = select(meta.c.value).where(
            meta.c.context == "shopp",
            meta.c.type == "setting",
            meta.c.name == name,
        )
        with self.db.engine.connect() as conn:
            value = conn.execute(query).scalar()
        return str_to_bool(value)

    def _summary(self, product_id: int) -> Dict[str, Any]:
        summary = self.tables.shopp_summary
        with self.db.engine.connect() as conn:
            row = conn.execute(select(summary).where(summary.c.product == product_id)).first()
        return dict(row._mapping) if row is not None else {}

    def _meta_rows(self, parent: int, context: str, meta_type: str, name: Optional[str] = None) -> List[Any]:
        meta = self.tables.shopp_meta
        query = select(meta).where(
            meta.c.parent == parent,
            meta.c.context == context,
            meta.c.type == meta_type,
        )
        if name is not None:
            query = query.where(meta.c.name == name)
        query = query.order_by(meta.c.sortorder, meta.c.id)
        with self.db.engine.connect() as conn:
            return list(conn.execute(query))

    def _prices(self, product_id: int, variations: bool) -> List[LegacyPrice]:
        price = self.tables.shopp_price
        context = "variation" if variations else "product"
        query = (
            select(price)
            .where(price.c.product == product_id, price.c.context == context)
            .order_by(price.c.sortorder, price.c.id)
        )
        with self.db.engine.connect() as conn:
            rows = list(conn.execute(query))

        menu_names: List[str] = []
        by_option_id: Dict[int, Tuple[str, str]] = {}
        if variations:
            options_rows = self._meta_rows(product_id, "product", "meta", "options")
            if options_rows:
                menu_names, by_option_id = parse_variant_menus(unserialize(options_rows[0].value))

        prices = []
        for row in rows:
            prices.append(LegacyPrice(
                id=row.id,
                type=row.type,
                label=row.label or "",
                price=format_decimal(row.price),
                sale=row.sale,
                saleprice=format_decimal(row.saleprice),
                sku=row.sku,
                tax=row.tax,
                dimensions=self._dimensions(row.id),
                options=variant_options(row.options, row.label, menu_names, by_option_id) if variations else {},
            ))
        return prices

    def _dimensions(self, price_id: int) -> Optional[Dimensions]:
        rows = self._meta_rows(price_id, "price", "meta", "settings")
        if not rows:
            return None
        settings = unserialize(rows[0].value)
        if not isinstance(settings, dict) or not isinstance(settings.get("dimensions"), dict):
            return None
        dimensions = settings["dimensions"]
        return Dimensions(**{
            key: format_decimal(dimensions[key])
            for key in ("weight", "height", "width", "length")
            if dimensions.get(key) not in (None, "")
        })

    def _specs(self, product_id: int) -> List[LegacySpec]:
        return [
            LegacySpec(name=row.name, value=row.value or "", sortorder=row.sortorder or 0)
            for row in self._meta_rows(product_id, "product", "spec")
        ]

    def _images(self, product_id: int) -> List[LegacyImage]:
        images = []
        for row in self._meta_rows(product_id, "product", "image"):
            asset = unserialize(row.value)
            if not isinstance(asset, dict):
                logger.warning(f"Image {row.id} of product {product_id} has unreadable metadata, skipping")
                continue
            images.append(LegacyImage(
                id=row.id,
                url=self.image_url_template.format(store_url=self.store_url, id=row.id),
                filename=str(asset.get("filename") or f"image-{row.id}.jpg"),
                title=str(asset.get("title") or ""),
                alt=str(asset["alt"]) if asset.get("alt") else None,
            ))
        return images
