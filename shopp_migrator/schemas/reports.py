"""
Outcome and report schemas for the migration passes.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from shopp_migrator.schemas.catalog import TargetProduct


class ConversionState(str, Enum):
    """Per-product conversion states, in order."""
    PENDING = "pending"
    TYPE_RESOLVED = "type-resolved"
    MEDIA_ATTACHED = "media-attached"
    PRICED = "priced"
    ATTRIBUTED = "attributed"
    PERSISTED = "persisted"
    VERIFIED = "verified"
    REVERTED = "reverted"
    SKIPPED = "skipped"


class ProductOutcome(BaseModel):
    """Result of converting a single product."""
    product_id: int
    name: str = ""
    state: ConversionState = ConversionState.PENDING
    failed_at: Optional[ConversionState] = Field(None, description="Last state reached before the rollback")
    reason: Optional[str] = None
    product: Optional[TargetProduct] = None

    @property
    def ok(self) -> bool:
        return self.state in (ConversionState.PERSISTED, ConversionState.VERIFIED)

    @property
    def failed(self) -> bool:
        return self.state == ConversionState.REVERTED

    @property
    def skipped(self) -> bool:
        return self.state == ConversionState.SKIPPED


class MigrationSummary(BaseModel):
    """Counters for a product pass."""
    total: int = 0
    migrated: int = 0
    failed: int = 0
    skipped: int = 0
    failed_ids: List[int] = Field(default_factory=list)

    def record(self, outcome: ProductOutcome) -> None:
        self.total += 1
        if outcome.ok:
            self.migrated += 1
        elif outcome.skipped:
            self.skipped += 1
        else:
            self.failed += 1
            self.failed_ids.append(outcome.product_id)


class TermMigrationResult(BaseModel):
    """Term counts around one taxonomy reassignment."""
    old_taxonomy: str
    new_taxonomy: str
    migrated: int
    old_count: int
    new_count: int


class AnalysisReport(BaseModel):
    """What a migration of the current Shopp catalog involves."""
    total_products: int = 0
    price_types: Dict[str, int] = Field(default_factory=lambda: {
        "Shipped": 0,
        "Virtual": 0,
        "Download": 0,
        "Donation": 0,
        "N/A": 0,
    })
    dimensions: int = 0
    embedded_dimensions: int = 0
    specs: int = 0
    addons: int = 0
    categories: int = 0
    tags: int = 0

    def components(self) -> Dict[str, int]:
        """Labelled counts, in display order."""
        components = {
            "All products": self.total_products,
            "Shipped prices": self.price_types.get("Shipped", 0),
            "Virtual prices": self.price_types.get("Virtual", 0),
            "Download prices": self.price_types.get("Download", 0),
            "Donation prices": self.price_types.get("Donation", 0),
            "Disabled prices": self.price_types.get("N/A", 0),
        }
        for price_type, count in self.price_types.items():
            if price_type not in ("Shipped", "Virtual", "Download", "Donation", "N/A"):
                components[f"{price_type} prices"] = count
        components.update({
            "Product categories": self.categories,
            "Product tags": self.tags,
            "Products with add-ons": self.addons,
            "Product dimensions": self.dimensions + self.embedded_dimensions,
            "Product specs": self.specs,
        })
        return components

    def rows(self) -> List[Dict[str, object]]:
        return [
            {
                "component": label,
                "records": int(count),
                "required": "✔" if count else "",
            }
            for label, count in self.components().items()
        ]
