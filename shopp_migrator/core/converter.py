"""
Product conversion: turns Shopp products into WooCommerce products in place.

Each product keeps its post ID. Conversion flips the post type marker, saves
the WooCommerce shape over it and, when verification fails, puts the marker
back so the product is picked up again by the next run.
"""

import logging
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from shopp_migrator.core import verifier
from shopp_migrator.core.catalog_writer import CatalogWriter
from shopp_migrator.core.legacy_store import LEGACY_POST_TYPE, LegacyStore
from shopp_migrator.core.media import MediaSideloader
from shopp_migrator.core.price_mapper import parse_price, shipping_props, variation_status
from shopp_migrator.core.utils import sanitize_title, str_to_bool
from shopp_migrator.core.woo_client import WooCommerceError
from shopp_migrator.core.wp_client import WordPressError
from shopp_migrator.schemas.catalog import (
    SimpleProduct,
    TargetAttribute,
    TargetProduct,
    TargetVariation,
    VariableProduct,
)
from shopp_migrator.schemas.legacy import LegacyProduct
from shopp_migrator.schemas.reports import ConversionState, MigrationSummary, ProductOutcome

logger = logging.getLogger(__name__)

TARGET_POST_TYPE = "product"


def variant_attributes(product: LegacyProduct) -> List[TargetAttribute]:
    """
    One variation attribute per variant menu, with its distinct values in the
    order they first appear across the product's prices.
    """
    values: Dict[str, List[str]] = {}
    for price in product.prices:
        for name, value in price.options.items():
            seen = values.setdefault(name, [])
            if value not in seen:
                seen.append(value)

    return [
        TargetAttribute(name=name, options=options, position=position, visible=True, variation=True)
        for position, (name, options) in enumerate(values.items())
    ]


def spec_attributes(product: LegacyProduct) -> List[TargetAttribute]:
    """Shopp specs become visible, single-valued, non-variation attributes."""
    return [
        TargetAttribute(name=spec.name, options=[spec.value], position=spec.sortorder, visible=True, variation=False)
        for spec in product.specs
    ]


def core_fields(product: LegacyProduct, backorders_enabled: bool) -> Dict[str, Any]:
    """Properties every converted product carries regardless of its shape."""
    tracked = str_to_bool(product.inventory)
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "status": product.status,
        "featured": str_to_bool(product.featured),
        "catalog_visibility": "visible",
        "description": product.description,
        "short_description": product.summary,
        "date_created": product.created,
        "date_modified": product.modified,
        "total_sales": product.sold,
        "manage_stock": tracked,
        "stock_quantity": product.stock if tracked else None,
        "stock_status": "outofstock" if product.outofstock else "instock",
        "backorders": "yes" if backorders_enabled else "no",
        "reviews_allowed": product.comment_status == "open",
        "parent_id": product.post_parent,
        "menu_order": product.menu_order,
    }


class ProductConverter:
    """
    Converts Shopp products one at a time.

    Collaborators are injected: a LegacyStore to read from, a CatalogWriter to
    write to and a MediaSideloader for images.
    """

    def __init__(
        self,
        store: LegacyStore,
        writer: CatalogWriter,
        sideloader: MediaSideloader,
        verify: bool = True,
        per_page: int = 50,
        backorders_enabled: Optional[bool] = None
    ):
        self.store = store
        self.writer = writer
        self.sideloader = sideloader
        self.verify = verify
        self.per_page = per_page
        self._backorders_enabled = backorders_enabled

    @property
    def backorders_enabled(self) -> bool:
        if self._backorders_enabled is None:
            self._backorders_enabled = self.store.setting_enabled("backorders")
        return self._backorders_enabled

    def convert(self, product: LegacyProduct) -> ProductOutcome:
        """
        Convert a single Shopp product.

        Args:
            product: Fully loaded Shopp product

        Returns:
            ProductOutcome in state verified (or persisted when verification is
            off), skipped when the post is already a WooCommerce product, or
            reverted with the reason it failed.
        """
        outcome = ProductOutcome(product_id=product.id, name=product.name)

        if self.writer.get_post_type(product.id) == TARGET_POST_TYPE:
            logger.info(f"- Skipping product: {product.name}, already migrated.")
            outcome.state = ConversionState.SKIPPED
            return outcome

        logger.info(f"- Migrating product: {product.name}.")
        variable = product.has_variants
        fields = core_fields(product, self.backorders_enabled)
        self._advance(outcome, ConversionState.TYPE_RESOLVED)

        # Media
        attachment_ids: List[int] = []
        for image in product.images:
            result = self.sideloader.sideload(image, product.id)
            if not result.ok:
                self._discard_attachments(product, attachment_ids)
                return self._revert(product, outcome, f"Unable to import {product.name}, skipping: {result.error}")
            attachment_ids.append(result.attachment_id)

        fields["image_id"] = attachment_ids[0] if attachment_ids else None
        fields["gallery_image_ids"] = attachment_ids[1:]
        self._advance(outcome, ConversionState.MEDIA_ATTACHED)

        # Prices
        if not product.prices:
            self._discard_attachments(product, attachment_ids)
            return self._revert(product, outcome, f"{product.name} has no prices")

        variations: List[TargetVariation] = []
        if variable:
            attributes = variant_attributes(product)
            fields["default_attributes"] = {
                sanitize_title(attribute.name): attribute.options[0] for attribute in attributes if attribute.options
            }
            for price in product.prices:
                variations.append(TargetVariation(
                    parent_id=product.id,
                    status=variation_status(price),
                    price=parse_price(price),
                    attributes={sanitize_title(name): value for name, value in price.options.items()},
                    **shipping_props(price).model_dump(),
                ))
        else:
            price = product.prices[0]
            attributes = []
            fields["price"] = parse_price(price)
            fields["sku"] = fields["price"].sku
            fields.update(shipping_props(price).model_dump())
        self._advance(outcome, ConversionState.PRICED)

        attributes.extend(spec_attributes(product))
        fields["attributes"] = attributes
        self._advance(outcome, ConversionState.ATTRIBUTED)

        target: TargetProduct
        if variable:
            target = VariableProduct(variations=variations, **fields)
        else:
            target = SimpleProduct(**fields)

        # Persist
        self.writer.set_post_type(product.id, TARGET_POST_TYPE)
        saved_ids: List[int] = []
        try:
            for variation in variations:
                saved_ids.append(self.writer.save_variation(variation).id)
            stored = self.writer.save_product(target)
        except Exception:
            # Left as a product the post would be skipped by every later run
            self._discard_variations(product, saved_ids)
            self._discard_attachments(product, attachment_ids)
            self.writer.set_post_type(product.id, LEGACY_POST_TYPE)
            raise
        outcome.product = stored
        self._advance(outcome, ConversionState.PERSISTED)

        if not self.verify:
            return outcome

        result = verifier.verify(product, stored, self.backorders_enabled)
        if not result.ok:
            self._discard_variations(product, self.writer.variation_ids(product.id))
            outcome.product = None
            return self._revert(product, outcome, f'Verification of "{product.name}" failed: {result.message}')

        self._advance(outcome, ConversionState.VERIFIED)
        return outcome

    def migrate_all(self, progress: bool = True) -> MigrationSummary:
        """
        Convert every product still stored as a Shopp product.

        Converted products drop out of the legacy listing, so the first page is
        fetched again after each page; products that failed are excluded from
        later pages. Failures are counted, never raised.
        """
        summary = MigrationSummary()
        passed_over: List[int] = []

        with tqdm(total=self.store.count_products(), desc="Migrating products", unit="product", disable=not progress) as bar:
            while True:
                ids = self.store.list_product_ids(limit=self.per_page, exclude=passed_over)
                if not ids:
                    break
                for product_id in ids:
                    outcome = self.convert(self.store.get_product(product_id))
                    summary.record(outcome)
                    if not outcome.ok:
                        passed_over.append(product_id)
                    bar.update(1)

        if summary.failed:
            noun = "product" if summary.failed == 1 else "products"
            logger.warning(f"{summary.failed} {noun} had errors.")
        logger.info(
            f"Products: {summary.migrated} migrated, {summary.failed} failed, {summary.skipped} skipped"
        )
        return summary

    def _advance(self, outcome: ProductOutcome, state: ConversionState) -> None:
        logger.debug(f"Product {outcome.product_id}: {outcome.state.value} -> {state.value}")
        outcome.state = state

    def _discard_attachments(self, product: LegacyProduct, attachment_ids: List[int]) -> None:
        for attachment_id in attachment_ids:
            try:
                self.writer.delete_attachment(attachment_id)
            except (WordPressError, WooCommerceError) as e:
                logger.warning(f"Attachment {attachment_id} of {product.name} could not be deleted: {e}")

    def _discard_variations(self, product: LegacyProduct, variation_ids: List[int]) -> None:
        for variation_id in variation_ids:
            try:
                self.writer.delete_variation(product.id, variation_id)
            except (WordPressError, WooCommerceError) as e:
                logger.warning(f"Variation {variation_id} of {product.name} could not be deleted: {e}")

    def _revert(self, product: LegacyProduct, outcome: ProductOutcome, reason: str) -> ProductOutcome:
        self.writer.set_post_type(product.id, LEGACY_POST_TYPE)
        logger.warning(reason)
        outcome.failed_at = outcome.state
        outcome.state = ConversionState.REVERTED
        outcome.reason = reason
        return outcome
