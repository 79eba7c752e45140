"""Downloadable CSV import templates."""

import csv
import io

from stockroom.core.catalog_fields import ItemKind

TEMPLATE_HEADERS = [
    "Name",
    "SKU",
    "Description",
    "Category",
    "Supplier",
    "Quantity",
    "Cost Price",
    "Selling Price",
    "Low Stock Threshold",
    "Location",
    "Notes",
    "Item Type",
]

SAMPLE_ROWS: dict[ItemKind, list[str]] = {
    ItemKind.RESELLING: [
        "Vitamin C 500mg", "VITC500", "Chewable tablets, 60 pack", "Supplements",
        "Medis (Pty) Ltd", "24", "85.50", "129.99", "5", "Front shelf",
        "Check expiry dates monthly", "reselling",
    ],
    ItemKind.CONSUMABLE: [
        "Nitrile Gloves (M)", "GLV-M", "Box of 100", "Medical Supplies",
        "Surgical Direct", "12", "120.00", "", "3", "Store room",
        "Latex free", "consumable",
    ],
    ItemKind.OFFICE_EQUIPMENT: [
        "Label Printer", "LBL-01", "Thermal label printer", "Office Equipment",
        "Office Depot", "1", "1450.00", "", "", "Reception",
        "Serial on underside", "office_equipment",
    ],
}


def build_template(default_kind: ItemKind = ItemKind.RESELLING) -> bytes:
    """Header row plus one sample row per item kind, the default kind first."""
    kinds = [default_kind] + [k for k in ItemKind if k != default_kind]
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TEMPLATE_HEADERS)
    for kind in kinds:
        writer.writerow(SAMPLE_ROWS[kind])
    return buffer.getvalue().encode("utf-8")


def template_filename(default_kind: ItemKind = ItemKind.RESELLING) -> str:
    return f"stockroom_import_template_{default_kind.value}.csv"
