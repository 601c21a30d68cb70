"""
Configuration constants and defaults for the Specimen Pooling Planner.

This module contains job defaults, named pooling schemes, carrier layouts,
manifest column name mappings, and message templates used throughout the
application.
"""

from typing import Final

# ============================================================================
# Job Defaults
# ============================================================================

# Number of specimens combined into one pool
DEFAULT_POOL_SIZE: Final[int] = 10

# Ordering strategy applied before chunking specimens into pools
DEFAULT_POOLING_METHOD: Final[str] = "By Batch"

# Maximum specimens accepted for a single pooling operation (one 96-well plate)
DEFAULT_MAX_SPECIMENS_PER_OPERATION: Final[int] = 96

# Volume pipetted from each specimen tube into its pool well (µl)
DEFAULT_TRANSFER_VOLUME_UL: Final[float] = 5.0

# Freezer location for the finished pooled plate
DEFAULT_PLATE_LOCATION: Final[str] = "M20"

# Value recorded for provenance properties missing from a specimen
PROVENANCE_NOT_FOUND: Final[str] = "not found"

# ============================================================================
# Carrier Layouts
# ============================================================================

# Staging rack that holds decapped specimen tubes during manual pooling
DEFAULT_RACK_NAME: Final[str] = "Specimen Rack"
DEFAULT_RACK_ROWS: Final[int] = 1
DEFAULT_RACK_COLUMNS: Final[int] = 10

# Destination plate receiving one pooled sample per well
DEFAULT_PLATE_NAME: Final[str] = "96-Well Plate"
DEFAULT_PLATE_ROWS: Final[int] = 8
DEFAULT_PLATE_COLUMNS: Final[int] = 12

# Row letters for well names (A1 .. P24 covers 384-well plates)
WELL_ROW_LETTERS: Final[str] = "ABCDEFGHIJKLMNOP"

# ============================================================================
# Named Pooling Schemes
# ============================================================================

# Preset combinations of pool size and ordering strategy
POOLING_SCHEMES: Final[dict[str, dict[str, int | str]]] = {
    "Standard": {
        "pool_size": 10,
        "pooling_method": "By ID",
    },
    "Random": {
        "pool_size": 10,
        "pooling_method": "Random",
    },
}

# ============================================================================
# Manifest Column Names (Case-Insensitive Matching)
# ============================================================================

# Required columns in a specimen manifest
REQUIRED_COLUMNS: Final[list[str]] = [
    "Specimen ID",
    "Specimen Name",
]

# Optional columns
OPTIONAL_COLUMNS: Final[list[str]] = [
    "Well",
    "Source Carrier",
    "Specimen Barcode",
    "Rack Barcode",
    "Rack Location",
    "Project",
]

# Maps alternative names to standard column names
COLUMN_ALIASES: Final[dict[str, str]] = {
    # Specimen ID variants
    "specimen_id": "Specimen ID",
    "item_id": "Specimen ID",
    "item id": "Specimen ID",
    "id": "Specimen ID",
    # Specimen Name variants
    "specimen_name": "Specimen Name",
    "sample_name": "Specimen Name",
    "sample name": "Specimen Name",
    "name": "Specimen Name",
    # Well variants
    "well": "Well",
    "well_position": "Well",
    "position": "Well",
    # Source carrier variants
    "source_carrier": "Source Carrier",
    "source_plate": "Source Carrier",
    "plate": "Source Carrier",
    # Barcode variants
    "specimen_barcode": "Specimen Barcode",
    "barcode": "Specimen Barcode",
    "rack_barcode": "Rack Barcode",
    "rack_location": "Rack Location",
    # Project variants
    "project_id": "Project",
    "project": "Project",
}

# Manifest column → Specimen model field
COLUMN_TO_FIELD: Final[dict[str, str]] = {
    "Specimen ID": "specimen_id",
    "Specimen Name": "name",
    "Well": "well",
    "Source Carrier": "source_carrier",
    "Specimen Barcode": "specimen_barcode",
    "Rack Barcode": "rack_barcode",
    "Rack Location": "rack_location",
    "Project": "project",
}

# ============================================================================
# Output Column Names
# ============================================================================

OUTPUT_POOL_COLUMNS: Final[list[str]] = [
    "Pool Index",
    "Pooled Sample",
    "Plate Well",
    "Rack",
    "Member Count",
    "Member IDs",
]

OUTPUT_PROVENANCE_COLUMNS: Final[list[str]] = [
    "Specimen ID",
    "Specimen Barcode",
    "Rack Barcode",
    "Rack Location",
    "Pool Index",
    "Plate Well",
]

OUTPUT_TRANSFER_COLUMNS: Final[list[str]] = [
    "Rack",
    "Specimen ID",
    "From Cell",
    "To Well",
    "Volume (µl)",
]

# ============================================================================
# Validation Messages
# ============================================================================

ERROR_MISSING_COLUMN: Final[str] = "Missing required column: {column}"
ERROR_EMPTY_VALUE: Final[str] = "Row {row}, {column}: Value cannot be empty"
ERROR_INVALID_TYPE: Final[str] = "Row {row}, {column}: Cannot parse as {dtype}, got '{value}'"
ERROR_DUPLICATE_VALUE: Final[str] = "Duplicate {column} found: '{value}' in rows {rows}"
ERROR_TOO_MANY_SPECIMENS: Final[str] = (
    "Operation {operation} has {count} specimens when only {maximum} are allowed"
)
ERROR_UNEQUAL_INPUTS: Final[str] = "Operations have unequal numbers of inputs {counts}"

WARN_MISSING_WELL: Final[str] = "Row {row}, Well: No well location (By Well pooling unavailable)"
WARN_MISSING_BARCODE: Final[str] = "Row {row}, Specimen Barcode: Not provided, provenance will record 'not found'"

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME: Final[str] = "Specimen Pooling Planner"
APP_DESCRIPTION: Final[str] = "COVID Surveillance Specimen Pooling Utility"

# ============================================================================
# Helper Functions
# ============================================================================


def normalize_column_name(name: str) -> str:
    """
    Normalize a manifest column name for matching.

    Converts to lowercase, strips whitespace, and looks up aliases.

    Args:
        name: Raw column name from input file

    Returns:
        Standardized column name, or original if no match found
    """
    normalized = name.strip().lower()

    for col in REQUIRED_COLUMNS + OPTIONAL_COLUMNS:
        if col.lower() == normalized:
            return col

    if normalized in COLUMN_ALIASES:
        return COLUMN_ALIASES[normalized]

    return name
