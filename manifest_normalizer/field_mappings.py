"""
Retailer field-mapping tables.

Each table lists, per canonical field, the header names a retailer is known
to use. Candidates are matched case-insensitively, either exactly or as a
substring of the actual header, and earlier candidates take priority.
"""

from __future__ import annotations

from typing import Dict

from .models import FieldMapping
from .rules import NULL_VALUES


def is_null_value(value: str) -> bool:
    """True when a cell holds a placeholder such as "N/A" instead of data."""
    return value.lower().strip() in NULL_VALUES


DEFAULT_MAPPING = FieldMapping(
    identifier=(
        "upc",
        "upc code",
        "upc_code",
        "item #",
        "item number",
        "item_number",
        "sku",
        "product code",
        "barcode",
        "ean",
        "asin",
        "model",
        "model number",
        "model_number",
        "part number",
        "part_number",
        "item id",
        "item_id",
        "product id",
        "product_id",
    ),
    product_name=(
        "product name",
        "product_name",
        "name",
        "description",
        "item description",
        "item_description",
        "product description",
        "product_description",
        "title",
        "item name",
        "item_name",
        "product",
        "item",
    ),
    unit_retail=(
        "unit retail",
        "unit_retail",
        "retail",
        "retail price",
        "retail_price",
        "msrp",
        "price",
        "unit price",
        "unit_price",
        "original price",
        "original_price",
        "list price",
        "list_price",
    ),
    quantity=(
        "quantity",
        "qty",
        "units",
        "count",
        "item count",
        "item_count",
        "unit count",
        "unit_count",
        "total units",
        "total_units",
        "pallet qty",
        "pallet_qty",
    ),
)

BSTOCK_MAPPING = FieldMapping(
    identifier=(
        # primary
        "upc",
        "upc code",
        "upc_code",
        "item #",
        "item number",
        "item_number",
        "item no",
        "item no.",
        # secondary
        "sku",
        "sku #",
        "sku_number",
        "product code",
        "product_code",
        "asin",
        "model",
        "model #",
        "model number",
        "model_number",
        "part #",
        "part number",
        "part_number",
        "barcode",
        "ean",
        # lot exports
        "lot item #",
        "lot_item_number",
        "manifest item #",
        "manifest_item_number",
    ),
    product_name=(
        "product name",
        "product_name",
        "item name",
        "item_name",
        "name",
        "title",
        "description",
        "item description",
        "item_description",
        "product description",
        "product_description",
        "product title",
        "product_title",
        "lot description",
        "lot_description",
        "manifest description",
        "manifest_description",
        "item",
        "product",
    ),
    unit_retail=(
        "unit retail",
        "unit_retail",
        "retail",
        "retail price",
        "retail_price",
        "msrp",
        "list price",
        "list_price",
        "unit price",
        "unit_price",
        "price",
        "price each",
        "price_each",
        "original price",
        "original_price",
        "orig retail",
        "orig_retail",
        "retail value",
        "retail_value",
        "est retail",
        "est_retail",
        "estimated retail",
        "estimated_retail",
    ),
    quantity=(
        "quantity",
        "qty",
        "units",
        "count",
        "unit count",
        "unit_count",
        "item count",
        "item_count",
        "items",
        "total units",
        "total_units",
        "total qty",
        "total_qty",
        "pallet qty",
        "pallet_qty",
        "lot qty",
        "lot_qty",
        "manifest qty",
        "manifest_qty",
        "available qty",
        "available_qty",
    ),
)

TECHLIQUIDATORS_MAPPING = FieldMapping(
    identifier=(
        "upc",
        "upc code",
        "upc_code",
        "item #",
        "item number",
        "item_number",
        "item no",
        "sku",
        "sku #",
        "product code",
        "product_code",
        "model",
        "model #",
        "model number",
        "model_number",
        "part #",
        "part number",
        "part_number",
        "barcode",
        "ean",
        "asin",
        "tech item #",
        "tech_item_number",
        "inventory id",
        "inventory_id",
        "product id",
        "product_id",
    ),
    product_name=(
        "product name",
        "product_name",
        "item name",
        "item_name",
        "name",
        "title",
        "description",
        "item description",
        "item_description",
        "product description",
        "product_description",
        "tech description",
        "tech_description",
        "product title",
        "product_title",
        "full description",
        "full_description",
        "item",
        "product",
    ),
    unit_retail=(
        "unit retail",
        "unit_retail",
        "retail",
        "retail price",
        "retail_price",
        "msrp",
        "list price",
        "list_price",
        "unit price",
        "unit_price",
        "price",
        "price each",
        "original price",
        "original_price",
        "orig price",
        "retail value",
        "retail_value",
        "market price",
        "market_price",
        "suggested retail",
        "suggested_retail",
    ),
    quantity=(
        "quantity",
        "qty",
        "units",
        "count",
        "unit count",
        "unit_count",
        "item count",
        "item_count",
        "items",
        "total units",
        "total_units",
        "total qty",
        "total_qty",
        "available",
        "available qty",
        "available_qty",
        "in stock",
        "in_stock",
        "stock qty",
        "stock_qty",
    ),
)

# Sub-retailers sold through the auction marketplaces. Their exports use a
# handful of fixed column names, so the candidate lists stay short.
RETAILER_MAPPINGS: Dict[str, FieldMapping] = {
    "ace": FieldMapping(
        identifier=("UPC",),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    "amz": FieldMapping(
        identifier=("ASIN",),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    # UPC column may contain "NOT AVAILABLE"
    "att": FieldMapping(
        identifier=("UPC",),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    "by": FieldMapping(
        identifier=("UPC",),
        product_name=("Item Description",),
        quantity=("Quantity",),
        unit_retail=("Unit Retail",),
    ),
    "costco": FieldMapping(
        identifier=("Item #",),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    # no item description; brand doubles as identifier fallback and name
    "jcp": FieldMapping(
        identifier=("Item #", "Brand"),
        product_name=("Brand", "Subcategory"),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    "qvc": FieldMapping(
        identifier=("Item #",),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    "rc": FieldMapping(
        identifier=("Item #", "UPC"),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    "tgt": FieldMapping(
        identifier=("UPC", "Item #"),
        product_name=("Item Description",),
        quantity=("Qty",),
        unit_retail=("Unit Retail",),
    ),
    "tl": FieldMapping(
        identifier=("UPC",),
        product_name=("Product Name",),
        quantity=("Quantity", "Qty"),
        unit_retail=("Orig. Retail", "Unit Retail"),
    ),
    "bstock": BSTOCK_MAPPING,
    "techliquidators": TECHLIQUIDATORS_MAPPING,
}


def get_field_mapping(site_tag: str) -> FieldMapping:
    """Mapping for a retailer tag (case-insensitive), or the default mapping."""
    return RETAILER_MAPPINGS.get(site_tag.lower().strip(), DEFAULT_MAPPING)

