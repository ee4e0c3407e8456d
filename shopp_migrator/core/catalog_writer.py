"""
Write access to the WooCommerce catalog.

Product and variation CRUD goes through the WooCommerce REST API, media
through the WordPress REST API, and the few primitives neither API exposes
(post type marker, read-only meta, term taxonomy rows, cached term
hierarchies) through the database.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from shopp_migrator.core.utils import sanitize_title
from shopp_migrator.core.woo_client import WooClient
from shopp_migrator.core.wp_client import WPClient, WordPressError
from shopp_migrator.core.wp_database import WordPressDatabase
from shopp_migrator.schemas.catalog import (
    PriceProps,
    SimpleProduct,
    TargetAttribute,
    TargetProduct,
    TargetVariation,
    target_product_adapter,
)

logger = logging.getLogger(__name__)


class CatalogWriter(Protocol):
    """Target side of the migration."""

    def get_post_type(self, post_id: int) -> Optional[str]:
        ...

    def set_post_type(self, post_id: int, post_type: str) -> None:
        ...

    def upload_attachment(self, file_path: str, filename: str, post_id: int, title: str = "") -> int:
        ...

    def set_attachment_alt(self, attachment_id: int, alt: str) -> None:
        ...

    def delete_attachment(self, attachment_id: int) -> None:
        ...

    def save_variation(self, variation: TargetVariation) -> TargetVariation:
        ...

    def save_product(self, product: TargetProduct) -> TargetProduct:
        ...

    def variation_ids(self, product_id: int) -> List[int]:
        ...

    def delete_variation(self, product_id: int, variation_id: int) -> None:
        ...

    def count_terms(self, taxonomy: str) -> int:
        ...

    def reassign_terms(self, old_taxonomy: str, new_taxonomy: str) -> int:
        ...

    def clean_taxonomy_cache(self, taxonomy: str) -> None:
        ...


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.replace(microsecond=0).isoformat() if value else None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _dimensions_payload(dimensions: Optional[Dict[str, str]]) -> Dict[str, str]:
    dimensions = dimensions or {}
    return {key: dimensions.get(key, "") for key in ("length", "width", "height")}


def _dimensions_from_api(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    measured = {key: str(value) for key, value in (data or {}).items() if value not in (None, "")}
    return measured or None


def price_payload(props: PriceProps) -> Dict[str, Any]:
    """
    REST fields for a price tuple.

    WooCommerce derives the active price from sale_price, so the sale price is
    only sent while the sale is on.
    """
    on_sale = props.sale_price is not None and props.price == props.sale_price
    return {
        "regular_price": props.regular_price or "",
        "sale_price": props.sale_price if on_sale else "",
        "sku": props.sku or "",
        "tax_status": props.tax_status,
    }


def variation_payload(variation: TargetVariation) -> Dict[str, Any]:
    payload = price_payload(variation.price)
    payload.update({
        "status": variation.status,
        "virtual": variation.virtual,
        "downloadable": variation.downloadable,
        "weight": variation.weight or "",
        "dimensions": _dimensions_payload(variation.dimensions),
        "attributes": [{"name": name, "option": option} for name, option in variation.attributes.items()],
    })
    return payload


def attribute_payload(attribute: TargetAttribute) -> Dict[str, Any]:
    return {
        "name": attribute.name,
        "position": attribute.position,
        "visible": attribute.visible,
        "variation": attribute.variation,
        "options": attribute.options,
    }


def product_payload(product: TargetProduct) -> Dict[str, Any]:
    """Build the WooCommerce REST body for a converted product."""
    images = []
    if product.image_id:
        images.append({"id": product.image_id})
    images.extend({"id": image_id} for image_id in product.gallery_image_ids)

    payload: Dict[str, Any] = {
        "type": product.type,
        "name": product.name,
        "slug": product.slug,
        "status": product.status,
        "featured": product.featured,
        "catalog_visibility": product.catalog_visibility,
        "description": product.description,
        "short_description": product.short_description,
        "sku": product.sku or "",
        "manage_stock": product.manage_stock,
        "stock_quantity": product.stock_quantity,
        "stock_status": product.stock_status,
        "backorders": product.backorders,
        "reviews_allowed": product.reviews_allowed,
        "parent_id": product.parent_id,
        "menu_order": product.menu_order,
        "upsell_ids": product.upsell_ids,
        "cross_sell_ids": product.cross_sell_ids,
        "images": images,
        "attributes": [attribute_payload(attribute) for attribute in product.attributes],
    }
    if product.date_created:
        payload["date_created_gmt"] = _iso(product.date_created)

    if isinstance(product, SimpleProduct):
        payload.update(price_payload(product.price))
        payload.update({
            "virtual": product.virtual,
            "downloadable": product.downloadable,
            "weight": product.weight or "",
            "dimensions": _dimensions_payload(product.dimensions),
        })
    else:
        payload["default_attributes"] = [
            {"name": name, "option": option} for name, option in product.default_attributes.items()
        ]
    return payload


def variation_from_api(parent_id: int, data: Dict[str, Any]) -> TargetVariation:
    return TargetVariation(
        id=data["id"],
        parent_id=parent_id,
        status=data.get("status", "publish"),
        price=PriceProps(
            price=_blank_to_none(data.get("price")),
            regular_price=_blank_to_none(data.get("regular_price")),
            sale_price=_blank_to_none(data.get("sale_price")),
            sku=_blank_to_none(data.get("sku")),
            tax_status=data.get("tax_status") or "taxable",
        ),
        virtual=bool(data.get("virtual")),
        downloadable=bool(data.get("downloadable")),
        weight=_blank_to_none(data.get("weight")),
        dimensions=_dimensions_from_api(data.get("dimensions")),
        attributes={sanitize_title(attr["name"]): attr["option"] for attr in data.get("attributes", [])},
    )


def product_from_api(data: Dict[str, Any], variations: Optional[List[Dict[str, Any]]] = None) -> TargetProduct:
    """
    Read a WooCommerce REST product (and its variations) back into a TargetProduct.

    Raises:
        pydantic.ValidationError: If the stored product does not fit either shape
            (e.g. a variable product without variations).
    """
    images = data.get("images") or []
    fields: Dict[str, Any] = {
        "type": data.get("type", "simple"),
        "id": data["id"],
        "name": data.get("name", ""),
        "slug": data.get("slug", ""),
        "status": data.get("status", "publish"),
        "featured": bool(data.get("featured")),
        "catalog_visibility": data.get("catalog_visibility", "visible"),
        "description": data.get("description", ""),
        "short_description": data.get("short_description", ""),
        "sku": _blank_to_none(data.get("sku")),
        "date_created": _parse_datetime(data.get("date_created_gmt")),
        "date_modified": _parse_datetime(data.get("date_modified_gmt")),
        "total_sales": int(data.get("total_sales") or 0),
        "manage_stock": bool(data.get("manage_stock")),
        "stock_quantity": data.get("stock_quantity"),
        "stock_status": data.get("stock_status", "instock"),
        "backorders": data.get("backorders", "no"),
        "reviews_allowed": bool(data.get("reviews_allowed")),
        "parent_id": data.get("parent_id", 0),
        "menu_order": data.get("menu_order", 0),
        "upsell_ids": data.get("upsell_ids", []),
        "cross_sell_ids": data.get("cross_sell_ids", []),
        "image_id": images[0]["id"] if images else None,
        "gallery_image_ids": [image["id"] for image in images[1:]],
        "attributes": [
            TargetAttribute(
                id=attr.get("id", 0),
                name=attr["name"],
                options=attr.get("options", []),
                position=attr.get("position", 0),
                visible=bool(attr.get("visible", True)),
                variation=bool(attr.get("variation", False)),
            )
            for attr in data.get("attributes", [])
        ],
    }

    if fields["type"] == "variable":
        fields["variations"] = [variation_from_api(data["id"], item) for item in variations or []]
        fields["default_attributes"] = {
            sanitize_title(attr["name"]): attr["option"] for attr in data.get("default_attributes", [])
        }
    else:
        fields["type"] = "simple"
        fields["price"] = PriceProps(
            price=_blank_to_none(data.get("price")),
            regular_price=_blank_to_none(data.get("regular_price")),
            sale_price=_blank_to_none(data.get("sale_price")),
            sku=_blank_to_none(data.get("sku")),
            tax_status=data.get("tax_status") or "taxable",
        )
        fields["virtual"] = bool(data.get("virtual"))
        fields["downloadable"] = bool(data.get("downloadable"))
        fields["weight"] = _blank_to_none(data.get("weight"))
        fields["dimensions"] = _dimensions_from_api(data.get("dimensions"))

    return target_product_adapter.validate_python(fields)


class WooCatalogWriter:
    """CatalogWriter over the WooCommerce and WordPress REST APIs plus the database."""

    def __init__(self, woo: WooClient, wp: Optional[WPClient], db: WordPressDatabase):
        self.woo = woo
        self.wp = wp
        self.db = db

    # Post type marker

    def get_post_type(self, post_id: int) -> Optional[str]:
        return self.db.get_post_type(post_id)

    def set_post_type(self, post_id: int, post_type: str) -> None:
        self.db.set_post_type(post_id, post_type)

    # Media

    def upload_attachment(self, file_path: str, filename: str, post_id: int, title: str = "") -> int:
        """
        Register a local file as an attachment of post_id.

        Raises:
            WordPressError: If the upload is rejected.
        """
        result = self.wp.upload_media(file_path, filename=filename, post_id=post_id, title=title or None)
        if not result.get("id"):
            raise WordPressError(f"Upload of {filename} returned no attachment id")
        return int(result["id"])

    def set_attachment_alt(self, attachment_id: int, alt: str) -> None:
        self.wp.update_media_alt(attachment_id, alt)

    def delete_attachment(self, attachment_id: int) -> None:
        success, message = self.wp.delete_media(attachment_id)
        if not success:
            raise WordPressError(message)
        logger.debug(message)

    # Products

    def save_variation(self, variation: TargetVariation) -> TargetVariation:
        """Create a variation under its parent; returns it with its new id."""
        data = self.woo.create_variation(variation.parent_id, variation_payload(variation))
        return variation.model_copy(update={"id": data["id"]})

    def save_product(self, product: TargetProduct) -> TargetProduct:
        """
        Save the parent product and read it back as stored.

        Sales counts are read-only over REST and are written to the
        total_sales meta directly.
        """
        self.woo.update_product(product.id, product_payload(product))
        self.db.update_post_meta(product.id, "total_sales", product.total_sales)
        return self.load_product(product.id)

    def load_product(self, product_id: int) -> TargetProduct:
        data = self.woo.get_product(product_id)
        variations = None
        if data.get("type") == "variable":
            variations = self.woo.get_product_variations(product_id)
        return product_from_api(data, variations)

    def variation_ids(self, product_id: int) -> List[int]:
        return [item["id"] for item in self.woo.get_product_variations(product_id)]

    def delete_variation(self, product_id: int, variation_id: int) -> None:
        self.woo.delete_variation(product_id, variation_id, force=True)

    # Taxonomies

    def count_terms(self, taxonomy: str) -> int:
        return self.db.count_terms(taxonomy)

    def reassign_terms(self, old_taxonomy: str, new_taxonomy: str) -> int:
        return self.db.reassign_taxonomy(old_taxonomy, new_taxonomy)

    def clean_taxonomy_cache(self, taxonomy: str) -> None:
        self.db.clean_taxonomy_cache(taxonomy)
