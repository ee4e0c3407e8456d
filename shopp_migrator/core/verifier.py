"""
Post-conversion verification of a migrated product against its Shopp source.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel

from shopp_migrator.core.utils import str_to_bool
from shopp_migrator.schemas.catalog import TargetProduct
from shopp_migrator.schemas.legacy import LegacyProduct

logger = logging.getLogger(__name__)


class VerificationResult(BaseModel):
    """Passed, or the first field that did not match."""
    field: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.field is None

    @classmethod
    def passed(cls) -> "VerificationResult":
        return cls()

    @classmethod
    def mismatch(cls, field: str, message: str) -> "VerificationResult":
        return cls(field=field, message=message)


def _not_before(target: Any, legacy: Any) -> bool:
    if legacy is None:
        return True
    if target is None:
        return False
    return target >= legacy


Check = Tuple[str, Callable[[LegacyProduct, TargetProduct, bool], bool], Callable[[LegacyProduct, TargetProduct], str]]

CHECKS: List[Check] = [
    ("name", lambda s, t, b: t.name == s.name,
     lambda s, t: f"name {t.name!r} != {s.name!r}"),
    ("slug", lambda s, t, b: t.slug == s.slug,
     lambda s, t: f"slug {t.slug!r} != {s.slug!r}"),
    ("date_modified", lambda s, t, b: _not_before(t.date_modified, s.modified),
     lambda s, t: f"modified {t.date_modified} is before {s.modified}"),
    ("status", lambda s, t, b: t.status == s.status,
     lambda s, t: f"status {t.status!r} != {s.status!r}"),
    ("featured", lambda s, t, b: t.featured == str_to_bool(s.featured),
     lambda s, t: f"featured {t.featured} != {s.featured!r}"),
    ("catalog_visibility", lambda s, t, b: t.catalog_visibility == "visible",
     lambda s, t: f"catalog visibility {t.catalog_visibility!r} is not 'visible'"),
    ("description", lambda s, t, b: t.description == s.description,
     lambda s, t: "description differs"),
    ("short_description", lambda s, t, b: t.short_description == s.summary,
     lambda s, t: "short description differs"),
    ("sku", lambda s, t, b: (t.sku or None) == (s.sku or None),
     lambda s, t: f"SKU {t.sku!r} != {s.sku!r}"),
    ("total_sales", lambda s, t, b: t.total_sales == s.sold,
     lambda s, t: f"total sales {t.total_sales} != {s.sold}"),
    ("manage_stock", lambda s, t, b: t.manage_stock == str_to_bool(s.inventory),
     lambda s, t: f"manage stock {t.manage_stock} != inventory {s.inventory!r}"),
    ("stock_quantity", lambda s, t, b: t.stock_quantity == s.stock,
     lambda s, t: f"stock quantity {t.stock_quantity} != {s.stock}"),
    ("stock_status", lambda s, t, b: (t.stock_status != "instock") == s.outofstock,
     lambda s, t: f"stock status {t.stock_status!r} does not match out-of-stock {s.outofstock}"),
    ("backorders", lambda s, t, b: str_to_bool(t.backorders) == b,
     lambda s, t: f"backorders {t.backorders!r} does not match the store setting"),
    ("upsell_ids", lambda s, t, b: not t.upsell_ids,
     lambda s, t: f"unexpected upsells {t.upsell_ids}"),
    ("cross_sell_ids", lambda s, t, b: not t.cross_sell_ids,
     lambda s, t: f"unexpected cross-sells {t.cross_sell_ids}"),
    ("parent_id", lambda s, t, b: t.parent_id == s.post_parent,
     lambda s, t: f"parent {t.parent_id} != {s.post_parent}"),
    ("reviews_allowed", lambda s, t, b: t.reviews_allowed == (s.comment_status == "open"),
     lambda s, t: f"reviews allowed {t.reviews_allowed} != comment status {s.comment_status!r}"),
    ("menu_order", lambda s, t, b: t.menu_order == s.menu_order,
     lambda s, t: f"menu order {t.menu_order} != {s.menu_order}"),
    ("date_created", lambda s, t, b: s.status != "publish" or _not_before(t.date_created, s.created),
     lambda s, t: f"created {t.date_created} is before {s.created}"),
    ("image_id", lambda s, t, b: not s.images or t.image_id is not None,
     lambda s, t: "primary image missing"),
]


def verify(legacy: LegacyProduct, target: TargetProduct, backorders_enabled: bool = False) -> VerificationResult:
    """
    Compare a persisted product with its Shopp source, field by field.

    Checks run in a fixed order and stop at the first mismatch.

    Args:
        legacy: The Shopp product that was converted
        target: The WooCommerce product as read back after saving
        backorders_enabled: Store-wide Shopp backorder setting

    Returns:
        VerificationResult.passed() or VerificationResult.mismatch(field, message)
    """
    for field, check, describe in CHECKS:
        if not check(legacy, target, backorders_enabled):
            message = describe(legacy, target)
            logger.debug(f"Product {legacy.id}: {message}")
            return VerificationResult.mismatch(field, message)
    return VerificationResult.passed()
