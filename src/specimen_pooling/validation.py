"""
Validation logic for the Specimen Pooling Planner.

This module handles validation of pooling jobs and specimen manifests:
- Per-invocation specimen limits
- Input counts across the operations of a job
- Manifest column presence checks
- Row-level manifest validation (ids, names, wells)
- Uniqueness checks (Specimen ID, Specimen Barcode)
"""

import logging
from collections.abc import Mapping, Sequence

import pandas as pd

from specimen_pooling.config import (
    REQUIRED_COLUMNS,
    PROVENANCE_NOT_FOUND,
    ERROR_MISSING_COLUMN,
    ERROR_EMPTY_VALUE,
    ERROR_INVALID_TYPE,
    ERROR_DUPLICATE_VALUE,
    ERROR_TOO_MANY_SPECIMENS,
    ERROR_UNEQUAL_INPUTS,
    WARN_MISSING_WELL,
    WARN_MISSING_BARCODE,
)
from specimen_pooling.errors import DuplicateSpecimen, TooManyInputs
from specimen_pooling.models import Specimen, ValidationResult, WellLocation

LOGGER = logging.getLogger(__name__)


# ============================================================================
# Job Validation
# ============================================================================


def check_input_count(specimens: Sequence[Specimen], max_specimens: int) -> None:
    """
    Fail fast when a pooling run receives too many specimens.

    Raises:
        TooManyInputs: If len(specimens) > max_specimens
    """
    if len(specimens) > max_specimens:
        raise TooManyInputs(len(specimens), max_specimens)


def check_unique_ids(specimens: Sequence[Specimen]) -> None:
    """
    Reject a run in which two specimens share an id.

    Rack positions and plate associations are keyed by specimen id, so a
    repeated id would send two tubes to the same cell.

    Raises:
        DuplicateSpecimen: Listing each repeated id once, in first-seen order
    """
    seen = set()
    duplicates = []
    for specimen in specimens:
        if specimen.specimen_id in seen and specimen.specimen_id not in duplicates:
            duplicates.append(specimen.specimen_id)
        seen.add(specimen.specimen_id)

    if duplicates:
        raise DuplicateSpecimen(duplicates)


def validate_operation_inputs(
    input_counts: Mapping[str | int, int],
    max_specimens: int,
) -> ValidationResult:
    """
    Validate the specimen counts of the operations making up a pooling job.

    Every operation must stay within max_specimens, and all operations in a
    job must have the same number of inputs.

    Args:
        input_counts: Operation identifier → number of input specimens
        max_specimens: Maximum specimens allowed per operation

    Returns:
        ValidationResult with one error per offending operation, plus one
        for unequal counts
    """
    result = ValidationResult(
        is_valid=True,
        summary={
            "num_operations": len(input_counts),
            "input_counts": list(input_counts.values()),
        },
    )

    for operation, count in input_counts.items():
        if count > max_specimens:
            result.add_error(ERROR_TOO_MANY_SPECIMENS.format(
                operation=operation, count=count, maximum=max_specimens
            ))

    if len(set(input_counts.values())) > 1:
        result.add_error(ERROR_UNEQUAL_INPUTS.format(counts=list(input_counts.values())))

    if not result.is_valid:
        LOGGER.info("Pooling job failed validation: %s", "; ".join(result.errors))

    return result


# ============================================================================
# Manifest Validation
# ============================================================================


def validate_manifest_columns(df: pd.DataFrame) -> list[str]:
    """
    Validate that all required manifest columns are present.

    Args:
        df: DataFrame with column names to check

    Returns:
        List of error messages (empty if all columns present)
    """
    errors = []

    df_cols_lower = [str(col).lower() for col in df.columns]

    for req_col in REQUIRED_COLUMNS:
        if req_col not in df.columns and req_col.lower() not in df_cols_lower:
            errors.append(ERROR_MISSING_COLUMN.format(column=req_col))

    return errors


def validate_manifest_rows(df: pd.DataFrame) -> tuple[list[str], list[str]]:
    """
    Validate each manifest row.

    Args:
        df: DataFrame with normalized column names

    Returns:
        Tuple of (errors, warnings)
    """
    errors = []
    warnings = []

    for idx, row in df.iterrows():
        row_num = idx + 1

        # Specimen ID must be a non-negative whole number
        if "Specimen ID" in df.columns:
            val = row["Specimen ID"]
            if pd.isna(val) or str(val).strip() == "":
                errors.append(ERROR_EMPTY_VALUE.format(row=row_num, column="Specimen ID"))
            else:
                try:
                    as_float = float(val)
                    if as_float < 0 or not as_float.is_integer():
                        raise ValueError(val)
                except (ValueError, TypeError):
                    errors.append(ERROR_INVALID_TYPE.format(
                        row=row_num, column="Specimen ID", dtype="non-negative integer", value=val
                    ))

        if "Specimen Name" in df.columns:
            val = row["Specimen Name"]
            if pd.isna(val) or str(val).strip() == "":
                errors.append(ERROR_EMPTY_VALUE.format(row=row_num, column="Specimen Name"))

        # Well is optional, but if present must parse
        if "Well" in df.columns:
            val = row["Well"]
            if pd.isna(val) or str(val).strip() == "":
                warnings.append(WARN_MISSING_WELL.format(row=row_num))
            else:
                try:
                    WellLocation.from_name(str(val))
                except ValueError:
                    errors.append(ERROR_INVALID_TYPE.format(
                        row=row_num, column="Well", dtype="well name", value=val
                    ))

        if "Specimen Barcode" in df.columns:
            val = row["Specimen Barcode"]
            if pd.isna(val) or str(val).strip() in ("", PROVENANCE_NOT_FOUND):
                warnings.append(WARN_MISSING_BARCODE.format(row=row_num))

    return errors, warnings


def validate_manifest_uniqueness(df: pd.DataFrame) -> list[str]:
    """
    Check for duplicate values in columns that must be unique.

    Args:
        df: DataFrame with normalized column names

    Returns:
        List of error messages for duplicates
    """
    errors = []

    for column in ("Specimen ID", "Specimen Barcode"):
        if column not in df.columns:
            continue

        values = df[column].dropna()
        if column == "Specimen Barcode":
            values = values[values.astype(str).str.strip() != PROVENANCE_NOT_FOUND]

        for dup in values[values.duplicated()].unique():
            dup_rows = df[df[column] == dup].index + 1
            errors.append(ERROR_DUPLICATE_VALUE.format(
                column=column,
                value=dup,
                rows=", ".join(map(str, dup_rows.tolist())),
            ))

    return errors


def run_all_validations(df: pd.DataFrame, max_specimens: int | None = None) -> ValidationResult:
    """
    Run all validation checks on a specimen manifest.

    Args:
        df: DataFrame with normalized column names
        max_specimens: Optional per-run specimen limit

    Returns:
        ValidationResult with errors, warnings, and validity status
    """
    all_errors = []
    all_warnings = []

    # 1. Check column presence
    col_errors = validate_manifest_columns(df)
    all_errors.extend(col_errors)

    # If columns are missing, can't do further validation
    if col_errors:
        return ValidationResult(is_valid=False, errors=all_errors, warnings=all_warnings)

    # 2. Check row-level data
    row_errors, row_warnings = validate_manifest_rows(df)
    all_errors.extend(row_errors)
    all_warnings.extend(row_warnings)

    # 3. Check uniqueness
    all_errors.extend(validate_manifest_uniqueness(df))

    # 4. Check run size
    if max_specimens is not None and len(df) > max_specimens:
        all_errors.append(f"{len(df)} specimens supplied when only {max_specimens} are allowed")

    summary = {"num_specimens": len(df)}
    if "Source Carrier" in df.columns:
        summary["num_source_carriers"] = int(df["Source Carrier"].nunique())

    return ValidationResult(
        is_valid=len(all_errors) == 0,
        errors=all_errors,
        warnings=all_warnings,
        summary=summary,
    )
