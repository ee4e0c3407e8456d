"""
Price mapping from Shopp price records to WooCommerce price properties.
"""

from typing import Dict, Optional

from shopp_migrator.core.utils import is_empty_amount, str_to_bool
from shopp_migrator.schemas.catalog import PriceProps, ShippingProps
from shopp_migrator.schemas.legacy import LegacyPrice, PriceType

NON_SHIPPED_TYPES = (PriceType.VIRTUAL, PriceType.DOWNLOAD, PriceType.DONATION)


def parse_price(price: LegacyPrice) -> PriceProps:
    """
    Convert a Shopp price into WooCommerce price properties.

    Args:
        price: The Shopp price record

    Returns:
        PriceProps with the effective price, regular price, optional sale
        price, SKU and tax status.
    """
    return PriceProps(
        price=price.saleprice if str_to_bool(price.sale) else price.price,
        regular_price=price.price,
        sale_price=None if is_empty_amount(price.saleprice) else price.saleprice,
        sku=price.sku,
        tax_status="taxable" if str_to_bool(price.tax) else "none",
    )


def shipping_props(price: LegacyPrice) -> ShippingProps:
    """
    Shape flags and shipping data for a Shopp price.

    Virtual, download and donation prices never ship; only shipped prices
    carry weight and dimensions. Zero or empty measurements are dropped.
    """
    virtual = price.type in NON_SHIPPED_TYPES
    weight: Optional[str] = None
    dimensions: Optional[Dict[str, str]] = None

    if not virtual and price.dimensions is not None:
        if not is_empty_amount(price.dimensions.weight):
            weight = price.dimensions.weight
        measured = {
            key: getattr(price.dimensions, key)
            for key in ("length", "width", "height")
            if not is_empty_amount(getattr(price.dimensions, key))
        }
        dimensions = measured or None

    return ShippingProps(
        virtual=virtual,
        downloadable=price.type == PriceType.DOWNLOAD,
        weight=weight,
        dimensions=dimensions,
    )


def variation_status(price: LegacyPrice) -> str:
    """Disabled (N/A) Shopp variants become private variations."""
    return "private" if price.type == PriceType.DISABLED else "publish"
