"""
Integration tests for the complete pooling pipeline.

Tests the full workflow from manifest loading through validation and
planning to export, plus the UI entry point.
"""

from io import BytesIO
from unittest.mock import Mock

import pytest
import pandas as pd

from specimen_pooling.io import (
    load_manifest,
    normalize_dataframe_columns,
    manifest_to_specimens,
    export_plan_to_excel,
)
from specimen_pooling.validation import run_all_validations
from specimen_pooling.placement import plan_pooling


@pytest.fixture
def manifest_path(tmp_path):
    """CSV manifest of 30 specimens from three source plates, alias column names."""
    wells = [f"{row}{col}" for row in "AB" for col in range(1, 6)]
    rows = []
    for plate in range(3):
        for i, well in enumerate(wells):
            specimen_id = 1000 + plate * 10 + i
            rows.append({
                "item_id": specimen_id,
                "sample_name": f"Batch{plate}_{i:02d}",
                "position": well,
                "source_plate": f"Plate{plate}",
                "barcode": f"SP{specimen_id}",
                "rack_barcode": f"RK{plate}",
                "rack_location": well,
            })
    path = tmp_path / "manifest.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def _load_specimens(path):
    df = normalize_dataframe_columns(load_manifest(path))
    result = run_all_validations(df)
    assert result.is_valid, result.get_report()
    return manifest_to_specimens(df)


def test_full_pipeline_by_batch(manifest_path):
    """Load → validate → plan → export using the default method."""
    specimens = _load_specimens(manifest_path)

    plan = plan_pooling(specimens)

    assert [p.size for p in plan.pools] == [10, 10, 10]
    assert plan.pools[0].members[0].name == "Batch0_00"
    records = {r.specimen_id: r for r in plan.provenance}
    assert records[1000].rack_barcode == "RK0"
    assert records[1000].rack_location == "A1"
    assert records[1000].specimen_barcode == "SP1000"

    excel_bytes = export_plan_to_excel(plan)
    sheets = pd.read_excel(BytesIO(excel_bytes), sheet_name=None)
    assert len(sheets["Transfers"]) == 30


def test_full_pipeline_by_well(manifest_path):
    """By Well pools should combine the same well from each source plate."""
    specimens = _load_specimens(manifest_path)

    plan = plan_pooling(specimens, pool_size=3, method="By Well")

    assert len(plan.pools) == 10
    assert all(p.size == 3 for p in plan.pools)
    for pool in plan.pools:
        assert len({s.well for s in pool.members}) == 1
        assert {s.source_carrier for s in pool.members} == {"Plate0", "Plate1", "Plate2"}


def test_full_pipeline_capacity_invariants(manifest_path):
    """Every rack load should respect capacity and keep pools whole."""
    specimens = _load_specimens(manifest_path)

    plan = plan_pooling(specimens, pool_size=4, method="Random", seed=2020)

    for loading, bin_pools in zip(plan.rack_loadings, plan.bins):
        assert sum(p.size for p in bin_pools) <= loading.rack.capacity
        assert len(loading.positions) == sum(p.size for p in bin_pools)
    pool_bins = {}
    for bin_index, bin_pools in enumerate(plan.bins):
        for pool in bin_pools:
            assert pool.index not in pool_bins
            pool_bins[pool.index] = bin_index
    assert len(pool_bins) == len(plan.pools)


# ============================================================================
# UI Entry Point Tests
# ============================================================================


def test_process_upload_success(manifest_path):
    """process_upload should return tables and Excel bytes for a valid manifest."""
    from specimen_pooling.ui import process_upload

    file_obj = Mock()
    file_obj.name = str(manifest_path)

    status, pools_df, provenance_df, excel_bytes = process_upload(file_obj, 10, "By ID", None)

    assert "VALIDATION PASSED" in status
    assert "Pools: 3" in status
    assert len(pools_df) == 3
    assert len(provenance_df) == 30
    assert excel_bytes


def test_process_upload_no_file():
    """process_upload should ask for a file when none is given."""
    from specimen_pooling.ui import process_upload

    status, pools_df, provenance_df, excel_bytes = process_upload(None, 10, "By ID")

    assert "upload" in status.lower()
    assert pools_df is None and provenance_df is None and excel_bytes is None


def test_process_upload_invalid_method(manifest_path):
    """An invalid method should be reported, not raised."""
    from specimen_pooling.ui import process_upload

    status, pools_df, _, excel_bytes = process_upload(str(manifest_path), 10, "Bogus")

    assert "ERROR" in status
    assert "Bogus" in status
    assert pools_df is None
    assert excel_bytes is None


def test_process_upload_validation_failure(tmp_path):
    """A manifest missing required columns should fail validation."""
    from specimen_pooling.ui import process_upload

    path = tmp_path / "bad.csv"
    pd.DataFrame({"Other": [1, 2]}).to_csv(path, index=False)

    status, pools_df, _, _ = process_upload(str(path), 10, "By ID")

    assert "VALIDATION FAILED" in status
    assert "Specimen Name" in status
    assert pools_df is None


def test_process_upload_duplicate_ids(tmp_path):
    """A manifest repeating a specimen id should be rejected with an error."""
    from specimen_pooling.ui import process_upload

    path = tmp_path / "dupes.csv"
    pd.DataFrame({"Specimen ID": [7, 7, 8], "Specimen Name": ["a", "b", "c"]}).to_csv(path, index=False)

    status, pools_df, _, _ = process_upload(str(path), 3, "By Name")

    assert "VALIDATION FAILED" in status
    assert "Duplicate Specimen ID" in status
    assert pools_df is None


def test_prepare_download_writes_timestamped_file():
    """prepare_download should write the bytes to a timestamped xlsx file."""
    from pathlib import Path

    from specimen_pooling.ui import prepare_download

    path = Path(prepare_download(b"workbook"))

    assert path.name.startswith("pooling_plan_")
    assert path.suffix == ".xlsx"
    assert path.read_bytes() == b"workbook"
    path.unlink()


def test_prepare_download_without_plan():
    """Nothing should be written when no plan has been computed."""
    from specimen_pooling.ui import prepare_download

    assert prepare_download(None) is None
