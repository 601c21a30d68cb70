"""
Data models for the Specimen Pooling Planner using Pydantic.

This module defines the core data structures used throughout the application,
with runtime validation and type safety provided by Pydantic.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from specimen_pooling.config import PROVENANCE_NOT_FOUND, WELL_ROW_LETTERS
from specimen_pooling.errors import InvalidMethod


_WELL_NAME_PATTERN = re.compile(r"^\s*([A-Za-z])\s*0*(\d+)\s*$")


# ============================================================================
# Pooling Methods
# ============================================================================


class PoolingMethod(str, Enum):
    """Ordering strategy applied to specimens before they are chunked into pools."""

    BY_ID = "By ID"
    BY_NAME = "By Name"
    BY_BATCH = "By Batch"
    RANDOM = "Random"
    BY_WELL = "By Well"

    @classmethod
    def parse(cls, value: "PoolingMethod | str") -> "PoolingMethod":
        """
        Resolve a method label to a PoolingMethod.

        Matching ignores case, surrounding whitespace, and '-'/'_' separators,
        so "By ID", "by-id" and "BY_ID" are equivalent.

        Raises:
            InvalidMethod: If the value names no known method
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidMethod(value)

        key = " ".join(re.split(r"[\s_\-]+", value.strip().lower()))
        for member in cls:
            if member.value.lower() == key:
                return member
        raise InvalidMethod(value)


# ============================================================================
# Carrier Geometry
# ============================================================================


class WellLocation(BaseModel):
    """A 0-based (row, column) cell on a rack or plate."""

    row: int = Field(..., ge=0, description="0-based row index")
    column: int = Field(..., ge=0, description="0-based column index")

    model_config = {"frozen": True}

    @property
    def name(self) -> str:
        """Well name in plate notation, e.g. row 0 column 0 -> 'A1'."""
        if self.row >= len(WELL_ROW_LETTERS):
            return f"R{self.row + 1}C{self.column + 1}"
        return f"{WELL_ROW_LETTERS[self.row]}{self.column + 1}"

    @classmethod
    def from_name(cls, name: str) -> "WellLocation":
        """
        Parse a well name such as 'A1' or 'h12'.

        Raises:
            ValueError: If the name is not a letter followed by a column number
        """
        match = _WELL_NAME_PATTERN.match(name)
        if match is None:
            raise ValueError(f"Cannot parse well name '{name}'")
        letter = match.group(1).upper()
        column = int(match.group(2))
        if letter not in WELL_ROW_LETTERS:
            raise ValueError(f"Well row must be A-{WELL_ROW_LETTERS[-1]}, got '{name}'")
        if column < 1:
            raise ValueError(f"Well column must be >= 1, got '{name}'")
        return cls(row=WELL_ROW_LETTERS.index(letter), column=column - 1)

    def __str__(self) -> str:
        return self.name


class CarrierSpec(BaseModel):
    """
    Capacity descriptor for a rack or plate.

    Capacity is rows × columns; cells are claimed in row-major order.
    """

    name: str = Field(..., min_length=1, description="Human-readable carrier name")
    rows: int = Field(..., gt=0, description="Number of rows")
    columns: int = Field(..., gt=0, description="Number of columns")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {"name": "Specimen Rack", "rows": 1, "columns": 10},
                {"name": "96-Well Plate", "rows": 8, "columns": 12},
            ]
        },
    }

    @property
    def capacity(self) -> int:
        """Total number of cells."""
        return self.rows * self.columns

    def contains(self, cell: WellLocation) -> bool:
        """Check whether a cell lies on this carrier."""
        return cell.row < self.rows and cell.column < self.columns


# ============================================================================
# Input Data Models
# ============================================================================


class Specimen(BaseModel):
    """
    A single specimen awaiting pooling.

    specimen_id is the LIMS item handle; name and specimen_id are the ordering
    keys. Provenance properties default to 'not found' when the LIMS has none.
    """

    specimen_id: int = Field(..., ge=0, description="LIMS item identifier")
    name: str = Field(..., min_length=1, description="Sample name (batch ordering key)")
    well: WellLocation | None = Field(None, description="Well position on its source carrier")
    source_carrier: str | None = Field(None, description="Source rack/plate the specimen came from")
    specimen_barcode: str = Field(PROVENANCE_NOT_FOUND, description="Specimen tube barcode")
    rack_barcode: str = Field(PROVENANCE_NOT_FOUND, description="Barcode of the receiving rack")
    rack_location: str = Field(PROVENANCE_NOT_FOUND, description="Position in the receiving rack")
    project: str | None = Field(None, description="Owning project")

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "specimen_id": 40123,
                    "name": "Batch_07_S001",
                    "well": {"row": 0, "column": 0},
                    "source_carrier": "Rack_7",
                    "specimen_barcode": "SP0001234",
                    "rack_barcode": "RK000077",
                    "rack_location": "A1",
                    "project": "Surveillance",
                }
            ]
        },
    }

    @field_validator("name", "specimen_barcode", "rack_barcode", "rack_location")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip leading/trailing whitespace from string fields."""
        return v.strip()

    @field_validator("well", mode="before")
    @classmethod
    def parse_well_name(cls, v: Any) -> Any:
        """Accept well names like 'A1' in addition to row/column mappings."""
        if isinstance(v, str):
            return WellLocation.from_name(v)
        return v


# ============================================================================
# Pooling Results
# ============================================================================


class Pool(BaseModel):
    """An ordered group of specimens combined into one pooled sample."""

    index: int = Field(..., ge=0, description="0-based creation order")
    members: tuple[Specimen, ...] = Field(..., min_length=1, description="Pooled specimens, in order")

    model_config = {"frozen": True}

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def member_ids(self) -> list[int]:
        return [s.specimen_id for s in self.members]

    @property
    def sample_name(self) -> str:
        """Name given to the pooled sample record."""
        return f"Pooled Specimen {self.member_ids}"

    @property
    def description(self) -> str:
        return f"Pooled Specimen of items {self.member_ids}"

    def __len__(self) -> int:
        return self.size


class ProvenanceRecord(BaseModel):
    """Links one input specimen to the pool and cell it ended up in."""

    specimen_id: int
    specimen_barcode: str
    rack_barcode: str
    rack_location: str
    pool_index: int = Field(..., ge=0)
    cell: WellLocation

    model_config = {"frozen": True}


class CellAssignment(BaseModel):
    """One pool placed in one cell of a destination carrier."""

    pool_index: int = Field(..., ge=0)
    cell: WellLocation
    sample_name: str
    description: str
    provenance: list[ProvenanceRecord] = Field(default_factory=list)

    @property
    def well_name(self) -> str:
        return self.cell.name


class CarrierAssignment(BaseModel):
    """
    Result of placing a bin of pools on a carrier.

    association_map maps every member specimen id to the cell its pool
    occupies.
    """

    carrier: CarrierSpec
    cells: list[CellAssignment] = Field(default_factory=list)
    association_map: dict[int, WellLocation] = Field(default_factory=dict)

    @property
    def claimed_cells(self) -> list[WellLocation]:
        return [c.cell for c in self.cells]


class RackLoading(BaseModel):
    """Positions of specimen tubes in a staging rack for one bin of pools."""

    bin_index: int = Field(..., ge=0)
    rack: CarrierSpec
    positions: dict[int, WellLocation] = Field(default_factory=dict)


class TransferRecord(BaseModel):
    """A single specimen-to-pool pipetting step."""

    bin_index: int = Field(..., ge=0)
    specimen_id: int
    from_cell: WellLocation
    to_cell: WellLocation
    volume_ul: float = Field(..., gt=0, description="Transfer volume in µl")


class PoolingPlan(BaseModel):
    """Complete output of a pooling run: pools, racks, plate layout and transfers."""

    method: PoolingMethod
    pool_size: int = Field(..., gt=0)
    seed: int | None = None
    pools: list[Pool]
    bins: list[list[Pool]]
    rack_loadings: list[RackLoading]
    plate_assignments: list[CarrierAssignment]
    transfers: list[TransferRecord]
    created_at: datetime
    parameters: dict[str, Any] = Field(default_factory=dict)

    @property
    def total_specimens(self) -> int:
        return sum(p.size for p in self.pools)

    @property
    def total_pools(self) -> int:
        return len(self.pools)

    @property
    def provenance(self) -> list[ProvenanceRecord]:
        """All provenance records across every bin, in placement order."""
        return [
            record
            for assignment in self.plate_assignments
            for cell in assignment.cells
            for record in cell.provenance
        ]


# ============================================================================
# Validation Models
# ============================================================================


class ValidationResult(BaseModel):
    """
    Result of input validation checks.

    Contains all errors, warnings, and summary information.
    """

    is_valid: bool = Field(..., description="True if no blocking errors")
    errors: list[str] = Field(default_factory=list, description="Blocking validation errors")
    warnings: list[str] = Field(default_factory=list, description="Non-blocking warnings")
    summary: dict[str, Any] = Field(default_factory=dict, description="Summary statistics")

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def get_report(self) -> str:
        """
        Generate a human-readable report.

        Returns:
            Formatted string with errors, warnings, and summary
        """
        lines = []

        if self.has_errors:
            lines.append("ERRORS:")
            for error in self.errors:
                lines.append(f"  - {error}")
            lines.append("")

        if self.has_warnings:
            lines.append("WARNINGS:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")
            lines.append("")

        if self.summary:
            lines.append("SUMMARY:")
            for key, value in self.summary.items():
                lines.append(f"  {key}: {value}")

        return "\n".join(lines)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "is_valid": False,
                    "errors": ["Operation 12 has 120 specimens when only 96 are allowed"],
                    "warnings": [],
                    "summary": {"num_operations": 2, "input_counts": [96, 120]},
                }
            ]
        }
    }


# ============================================================================
# Helper Functions for Model Creation
# ============================================================================


def create_specimen_from_dict(data: dict[str, Any]) -> Specimen:
    """
    Create a Specimen from a dictionary (e.g., from a DataFrame row).

    Keys whose value is None are dropped so model defaults apply.

    Raises:
        ValidationError: If data doesn't meet validation requirements
    """
    return Specimen(**{k: v for k, v in data.items() if v is not None})


def create_carrier(name: str, rows: int, columns: int) -> CarrierSpec:
    """Create a validated CarrierSpec."""
    return CarrierSpec(name=name, rows=rows, columns=columns)
