"""
Catalog analysis: what a migration of the current Shopp catalog involves.
"""

import logging

import pandas as pd
from tqdm import tqdm

from shopp_migrator.core.legacy_store import LegacyStore
from shopp_migrator.core.utils import is_empty_amount, str_to_bool
from shopp_migrator.schemas.reports import AnalysisReport

logger = logging.getLogger(__name__)

DIMENSION_SPECS = ("height", "width", "length")
FORMATS = ("table", "csv", "json")


def analyze(store: LegacyStore, per_page: int = 50, progress: bool = True) -> AnalysisReport:
    """
    Scan every Shopp product, published or not, and count what needs migrating.

    A zero weight is Shopp's default and does not count as a dimension.

    Args:
        store: Legacy store to scan
        per_page: Products loaded per page
        progress: Show a progress bar

    Returns:
        AnalysisReport with price type, dimension, spec, add-on and term counts
    """
    report = AnalysisReport()
    page = store.list_products(page=1, per_page=per_page)
    report.total_products = page.total

    with tqdm(total=page.total, desc="Scanning Shopp products", unit="product", disable=not progress) as bar:
        while True:
            for product in page.items:
                for price in product.prices:
                    price_type = price.type.value
                    report.price_types[price_type] = report.price_types.get(price_type, 0) + 1
                    if price.dimensions is not None and not is_empty_amount(price.dimensions.weight):
                        report.dimensions += 1

                report.specs += len(product.specs)
                spec_names = {spec.name.strip().lower() for spec in product.specs}
                report.embedded_dimensions += len(spec_names.intersection(DIMENSION_SPECS))

                if str_to_bool(product.addons):
                    report.addons += 1
                bar.update(1)

            if page.page >= page.total_pages:
                break
            page = store.list_products(page=page.page + 1, per_page=per_page)

    report.categories = store.count_terms("shopp_category")
    report.tags = store.count_terms("shopp_tag")
    logger.debug(f"Analysis: {report.model_dump()}")
    return report


def render_report(report: AnalysisReport, fmt: str = "table") -> str:
    """
    Render an analysis as a component/records/required table.

    Args:
        report: The analysis
        fmt: "table", "csv" or "json"

    Raises:
        ValueError: On an unknown format.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format {fmt!r}, expected one of {', '.join(FORMATS)}")

    df = pd.DataFrame(report.rows(), columns=["component", "records", "required"])
    if fmt == "csv":
        return df.to_csv(index=False)
    if fmt == "json":
        return df.to_json(orient="records", force_ascii=False)
    return df.to_string(index=False)
