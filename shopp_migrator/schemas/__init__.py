"""
Legacy, target and report schemas.
"""

from shopp_migrator.schemas.legacy import (
    Dimensions,
    LegacyImage,
    LegacyPrice,
    LegacyProduct,
    LegacySpec,
    PriceType,
    ProductPage,
)
from shopp_migrator.schemas.catalog import (
    PriceProps,
    ShippingProps,
    SimpleProduct,
    TargetAttribute,
    TargetProduct,
    TargetVariation,
    VariableProduct,
    target_product_adapter,
)
from shopp_migrator.schemas.reports import (
    AnalysisReport,
    ConversionState,
    MigrationSummary,
    ProductOutcome,
    TermMigrationResult,
)

__all__ = [
    "Dimensions",
    "LegacyImage",
    "LegacyPrice",
    "LegacyProduct",
    "LegacySpec",
    "PriceType",
    "ProductPage",
    "PriceProps",
    "ShippingProps",
    "SimpleProduct",
    "TargetAttribute",
    "TargetProduct",
    "TargetVariation",
    "VariableProduct",
    "target_product_adapter",
    "AnalysisReport",
    "ConversionState",
    "MigrationSummary",
    "ProductOutcome",
    "TermMigrationResult",
]
