"""
Unit tests for validation module.

Tests run-size limits, operation input counts, manifest column presence,
row-level validation, and uniqueness checks.
"""

import pytest
import pandas as pd

from specimen_pooling.errors import DuplicateSpecimen, TooManyInputs
from specimen_pooling.validation import (
    check_input_count,
    check_unique_ids,
    validate_operation_inputs,
    validate_manifest_columns,
    validate_manifest_rows,
    validate_manifest_uniqueness,
    run_all_validations,
)

from conftest import make_specimens


def _manifest(**overrides) -> pd.DataFrame:
    data = {
        "Specimen ID": [101, 102, 103],
        "Specimen Name": ["S1", "S2", "S3"],
        "Well": ["A1", "A2", "B1"],
        "Specimen Barcode": ["BC1", "BC2", "BC3"],
    }
    data.update(overrides)
    return pd.DataFrame(data)


# ============================================================================
# Run Input Check Tests
# ============================================================================


def test_check_input_count_at_limit():
    """Exactly the maximum number of specimens should be accepted."""
    check_input_count(make_specimens(96), 96)


def test_check_input_count_over_limit():
    """One specimen over the maximum should raise TooManyInputs."""
    with pytest.raises(TooManyInputs, match="97 specimens supplied when only 96 are allowed"):
        check_input_count(make_specimens(97), 96)


def test_check_unique_ids_distinct():
    """Distinct ids should be accepted."""
    check_unique_ids(make_specimens(10))


def test_check_unique_ids_reports_each_repeat_once():
    """Each repeated id should be listed once, in first-seen order."""
    specimens = make_specimens(3, start_id=5) + make_specimens(3, start_id=4)

    with pytest.raises(DuplicateSpecimen) as exc_info:
        check_unique_ids(specimens + make_specimens(1, start_id=5))

    assert exc_info.value.specimen_ids == [5, 6]


# ============================================================================
# validate_operation_inputs Tests
# ============================================================================


def test_validate_operation_inputs_valid():
    """Equal counts within the limit should pass."""
    result = validate_operation_inputs({"op1": 96, "op2": 96}, max_specimens=96)

    assert result.is_valid
    assert result.summary["num_operations"] == 2


def test_validate_operation_inputs_too_many():
    """An operation over the limit should be reported by id."""
    result = validate_operation_inputs({11: 96, 12: 120}, max_specimens=96)

    assert not result.is_valid
    assert any("Operation 12 has 120 specimens" in e for e in result.errors)


def test_validate_operation_inputs_unequal():
    """Unequal counts across operations should be an error."""
    result = validate_operation_inputs({"op1": 40, "op2": 50}, max_specimens=96)

    assert not result.is_valid
    assert result.errors == ["Operations have unequal numbers of inputs [40, 50]"]


def test_validate_operation_inputs_single_operation():
    """A single operation can never have unequal counts."""
    result = validate_operation_inputs({"op1": 10}, max_specimens=96)

    assert result.is_valid


# ============================================================================
# Manifest Column Tests
# ============================================================================


def test_validate_manifest_columns_all_present():
    """No errors when required columns are present."""
    assert validate_manifest_columns(_manifest()) == []


def test_validate_manifest_columns_missing():
    """A missing required column should be reported."""
    df = pd.DataFrame({"Specimen ID": [1]})

    errors = validate_manifest_columns(df)

    assert errors == ["Missing required column: Specimen Name"]


def test_validate_manifest_columns_case_insensitive():
    """Column presence should ignore case."""
    df = pd.DataFrame({"specimen id": [1], "SPECIMEN NAME": ["a"]})

    assert validate_manifest_columns(df) == []


# ============================================================================
# Manifest Row Tests
# ============================================================================


def test_validate_manifest_rows_valid():
    """A clean manifest should produce no errors or warnings."""
    errors, warnings = validate_manifest_rows(_manifest())

    assert errors == []
    assert warnings == []


def test_validate_manifest_rows_bad_id():
    """Non-integer or negative ids should be errors."""
    errors, _ = validate_manifest_rows(_manifest(**{"Specimen ID": ["abc", -1, 3.5]}))

    assert len(errors) == 3
    assert all("Specimen ID" in e for e in errors)


def test_validate_manifest_rows_empty_name():
    """An empty name should be an error on the right row."""
    errors, _ = validate_manifest_rows(_manifest(**{"Specimen Name": ["S1", "", "S3"]}))

    assert errors == ["Row 2, Specimen Name: Value cannot be empty"]


def test_validate_manifest_rows_bad_well():
    """An unparsable well should be an error."""
    errors, _ = validate_manifest_rows(_manifest(Well=["A1", "ZZ9", "B1"]))

    assert len(errors) == 1
    assert "Row 2, Well" in errors[0]


def test_validate_manifest_rows_missing_well_warns():
    """A missing well is only a warning."""
    errors, warnings = validate_manifest_rows(_manifest(Well=["A1", None, "B1"]))

    assert errors == []
    assert len(warnings) == 1
    assert "Row 2, Well" in warnings[0]


def test_validate_manifest_rows_missing_barcode_warns():
    """A missing barcode is only a warning."""
    _, warnings = validate_manifest_rows(_manifest(**{"Specimen Barcode": ["BC1", None, "not found"]}))

    assert len(warnings) == 2


# ============================================================================
# Uniqueness Tests
# ============================================================================


def test_validate_manifest_uniqueness_duplicate_id():
    """Duplicate specimen ids should be reported with their rows."""
    errors = validate_manifest_uniqueness(_manifest(**{"Specimen ID": [101, 102, 101]}))

    assert errors == ["Duplicate Specimen ID found: '101' in rows 1, 3"]


def test_validate_manifest_uniqueness_duplicate_barcode():
    """Duplicate barcodes should be reported."""
    errors = validate_manifest_uniqueness(_manifest(**{"Specimen Barcode": ["BC1", "BC1", "BC3"]}))

    assert len(errors) == 1
    assert "Specimen Barcode" in errors[0]


def test_validate_manifest_uniqueness_ignores_not_found():
    """Repeated 'not found' placeholders are not duplicates."""
    errors = validate_manifest_uniqueness(
        _manifest(**{"Specimen Barcode": ["not found", "not found", "BC3"]})
    )

    assert errors == []


# ============================================================================
# run_all_validations Tests
# ============================================================================


def test_run_all_validations_valid():
    """A clean manifest should validate with a summary."""
    result = run_all_validations(_manifest())

    assert result.is_valid
    assert result.summary["num_specimens"] == 3


def test_run_all_validations_missing_columns_stops_early():
    """Missing columns should short-circuit row checks."""
    result = run_all_validations(pd.DataFrame({"Other": [1]}))

    assert not result.is_valid
    assert len(result.errors) == 2


def test_run_all_validations_too_many_specimens():
    """A manifest larger than max_specimens should be invalid."""
    result = run_all_validations(_manifest(), max_specimens=2)

    assert not result.is_valid
    assert "3 specimens supplied when only 2 are allowed" in result.errors
