"""
Shopp (legacy) catalog schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shopp_migrator.core.utils import str_to_bool


class PriceType(str, Enum):
    """Shopp price types (shopp_price.type)."""
    SHIPPED = "Shipped"
    VIRTUAL = "Virtual"
    DOWNLOAD = "Download"
    DONATION = "Donation"
    SUBSCRIPTION = "Subscription"
    MEMBERSHIP = "Membership"
    DISABLED = "N/A"


class Dimensions(BaseModel):
    """Shipping dimensions stored in a price's settings meta."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    weight: Optional[str] = None
    height: Optional[str] = None
    width: Optional[str] = None
    length: Optional[str] = None


class LegacyPrice(BaseModel):
    """One priced SKU variant of a Shopp product."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: int = 0
    type: PriceType = PriceType.SHIPPED
    label: str = ""
    price: Optional[str] = "0"
    sale: Union[bool, str] = "off"
    saleprice: Optional[str] = "0"
    sku: Optional[str] = ""
    tax: Union[bool, str] = "on"
    dimensions: Optional[Dimensions] = None
    options: Dict[str, str] = Field(default_factory=dict, description="Variant menu name -> selected option")


class LegacySpec(BaseModel):
    """Free-form product detail (name/value pair)."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    value: str = ""
    sortorder: int = 0


class LegacyImage(BaseModel):
    """Image asset owned by a Shopp product."""
    id: int = 0
    url: str
    filename: str = ""
    title: str = ""
    alt: Optional[str] = None


class LegacyProduct(BaseModel):
    """A Shopp product with its prices, specs and images loaded."""
    id: int
    name: str = ""
    slug: str = ""
    description: str = ""
    summary: str = ""
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    status: str = "publish"
    featured: Union[bool, str] = "off"
    sku: Optional[str] = None
    sold: int = 0
    inventory: Union[bool, str] = "off"
    stock: Optional[int] = None
    outofstock: bool = False
    comment_status: str = "closed"
    post_parent: int = 0
    menu_order: int = 0
    variants: Union[bool, str] = "off"
    addons: Union[bool, str] = "off"
    prices: List[LegacyPrice] = Field(default_factory=list)
    specs: List[LegacySpec] = Field(default_factory=list)
    images: List[LegacyImage] = Field(default_factory=list)

    @property
    def has_variants(self) -> bool:
        return str_to_bool(self.variants)


class ProductPage(BaseModel):
    """One page of legacy products."""
    items: List[LegacyProduct]
    page: int
    per_page: int
    total: int
    total_pages: int
