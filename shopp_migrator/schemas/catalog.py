"""
WooCommerce (target) catalog schemas.

A converted product is either simple (one price tuple on the product) or
variable (priced variations only). The two shapes are separate models joined
by a discriminated union on ``type``.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class PriceProps(BaseModel):
    """Price tuple applied to a simple product or a variation."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    price: Optional[str] = None
    regular_price: Optional[str] = None
    sale_price: Optional[str] = None
    sku: Optional[str] = None
    tax_status: Literal["taxable", "shipping", "none"] = "taxable"


class TargetAttribute(BaseModel):
    """Local (non-taxonomy) product attribute."""
    id: int = 0
    name: str
    options: List[str] = Field(default_factory=list)
    position: int = 0
    visible: bool = True
    variation: bool = False


class ShippingProps(BaseModel):
    """Shape flags and shipping data shared by simple products and variations."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    virtual: bool = False
    downloadable: bool = False
    weight: Optional[str] = None
    dimensions: Optional[Dict[str, str]] = None


class TargetVariation(ShippingProps):
    """A priced variation of a variable product."""
    id: Optional[int] = None
    parent_id: int
    status: str = "publish"
    price: PriceProps
    attributes: Dict[str, str] = Field(default_factory=dict, description="Attribute name -> selected option")


class ProductBase(BaseModel):
    """Fields common to every WooCommerce product shape."""
    id: int
    name: str = ""
    slug: str = ""
    status: str = "publish"
    featured: bool = False
    catalog_visibility: str = "visible"
    description: str = ""
    short_description: str = ""
    sku: Optional[str] = None
    date_created: Optional[datetime] = None
    date_modified: Optional[datetime] = None
    total_sales: int = 0
    manage_stock: bool = False
    stock_quantity: Optional[int] = None
    stock_status: str = "instock"
    backorders: str = "no"
    reviews_allowed: bool = True
    parent_id: int = 0
    menu_order: int = 0
    upsell_ids: List[int] = Field(default_factory=list)
    cross_sell_ids: List[int] = Field(default_factory=list)
    image_id: Optional[int] = None
    gallery_image_ids: List[int] = Field(default_factory=list)
    attributes: List[TargetAttribute] = Field(default_factory=list)


class SimpleProduct(ProductBase, ShippingProps):
    """Single-priced product."""
    type: Literal["simple"] = "simple"
    price: PriceProps


class VariableProduct(ProductBase):
    """Product priced through its variations."""
    type: Literal["variable"] = "variable"
    variations: List[TargetVariation] = Field(..., min_length=1)
    default_attributes: Dict[str, str] = Field(default_factory=dict)


TargetProduct = Annotated[Union[SimpleProduct, VariableProduct], Field(discriminator="type")]

target_product_adapter = TypeAdapter(TargetProduct)
