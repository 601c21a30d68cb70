"""
Input/Output operations for the Specimen Pooling Planner.

This module handles reading specimen manifests and exporting pooling plans
to Excel files.
"""

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd

from specimen_pooling import __version__
from specimen_pooling.config import (
    APP_NAME,
    COLUMN_TO_FIELD,
    OUTPUT_POOL_COLUMNS,
    OUTPUT_PROVENANCE_COLUMNS,
    OUTPUT_TRANSFER_COLUMNS,
    normalize_column_name,
)
from specimen_pooling.models import PoolingPlan, Specimen, create_specimen_from_dict


def load_manifest(
    file_path_or_bytes: str | Path | bytes | BinaryIO,
    sheet_name: str | int = 0,
) -> pd.DataFrame:
    """
    Load a specimen manifest from file path or bytes.

    Args:
        file_path_or_bytes: Path to CSV/Excel file, Excel bytes, or file-like object
        sheet_name: Sheet name or index to read for Excel input

    Returns:
        DataFrame with raw data from the manifest

    Raises:
        FileNotFoundError: If file path doesn't exist
        ValueError: If file format is unsupported or corrupted
    """
    try:
        if isinstance(file_path_or_bytes, (str, Path)):
            file_path = Path(file_path_or_bytes)
            if not file_path.exists():
                raise FileNotFoundError(f"File not found: {file_path}")

            if file_path.suffix.lower() == ".csv":
                df = pd.read_csv(file_path)
            else:
                df = pd.read_excel(file_path, sheet_name=sheet_name)
        elif isinstance(file_path_or_bytes, bytes):
            df = pd.read_excel(BytesIO(file_path_or_bytes), sheet_name=sheet_name)
        else:
            df = pd.read_excel(file_path_or_bytes, sheet_name=sheet_name)

        # Remove completely empty rows
        df = df.dropna(how="all")
        df = df.reset_index(drop=True)

        return df

    except FileNotFoundError:
        raise
    except Exception as e:
        raise ValueError(f"Error reading manifest: {e}") from e


def normalize_dataframe_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize column names in DataFrame using config mappings.

    Args:
        df: DataFrame with raw column names

    Returns:
        DataFrame with normalized column names
    """
    column_mapping = {col: normalize_column_name(str(col)) for col in df.columns}
    return df.rename(columns=column_mapping)


def dataframe_to_dict_list(df: pd.DataFrame) -> list[dict]:
    """
    Convert DataFrame to list of dictionaries, replacing NaN with None.

    Args:
        df: DataFrame with specimen data

    Returns:
        List of dictionaries, one per row
    """
    cleaned_records = []
    for record in df.to_dict(orient="records"):
        cleaned_records.append({
            key: (None if pd.isna(value) else value) for key, value in record.items()
        })
    return cleaned_records


def manifest_to_specimens(df: pd.DataFrame) -> list[Specimen]:
    """
    Build Specimen models from a normalized manifest.

    Columns without a Specimen field mapping are ignored.

    Args:
        df: Manifest with normalized column names (validate first)

    Returns:
        Specimens in manifest row order

    Raises:
        ValidationError: If a row doesn't meet model requirements
    """
    specimens = []
    for record in dataframe_to_dict_list(df):
        data: dict[str, Any] = {}
        for column, field in COLUMN_TO_FIELD.items():
            value = record.get(column)
            if value is None:
                continue
            if field == "specimen_id":
                data[field] = int(float(value))
            else:
                data[field] = str(value).strip()
        specimens.append(create_specimen_from_dict(data))
    return specimens


def plan_to_dataframes(plan: PoolingPlan) -> dict[str, pd.DataFrame]:
    """
    Flatten a pooling plan into report tables.

    Returns:
        Dictionary with "pools", "provenance" and "transfers" DataFrames
    """
    pool_rows = []
    for assignment, loading in zip(plan.plate_assignments, plan.rack_loadings):
        pools_by_index = {p.index: p for p in plan.bins[loading.bin_index]}
        for cell in assignment.cells:
            pool = pools_by_index[cell.pool_index]
            pool_rows.append({
                "Pool Index": pool.index,
                "Pooled Sample": cell.sample_name,
                "Plate Well": cell.well_name,
                "Rack": loading.bin_index + 1,
                "Member Count": pool.size,
                "Member IDs": ", ".join(str(i) for i in pool.member_ids),
            })

    provenance_rows = [
        {
            "Specimen ID": record.specimen_id,
            "Specimen Barcode": record.specimen_barcode,
            "Rack Barcode": record.rack_barcode,
            "Rack Location": record.rack_location,
            "Pool Index": record.pool_index,
            "Plate Well": record.cell.name,
        }
        for record in plan.provenance
    ]

    transfer_rows = [
        {
            "Rack": transfer.bin_index + 1,
            "Specimen ID": transfer.specimen_id,
            "From Cell": transfer.from_cell.name,
            "To Well": transfer.to_cell.name,
            "Volume (µl)": transfer.volume_ul,
        }
        for transfer in plan.transfers
    ]

    return {
        "pools": pd.DataFrame(pool_rows, columns=OUTPUT_POOL_COLUMNS),
        "provenance": pd.DataFrame(provenance_rows, columns=OUTPUT_PROVENANCE_COLUMNS),
        "transfers": pd.DataFrame(transfer_rows, columns=OUTPUT_TRANSFER_COLUMNS),
    }


def export_plan_to_excel(
    plan: PoolingPlan,
    output_path: str | Path | None = None,
) -> bytes | None:
    """
    Export a pooling plan to an Excel file with multiple sheets.

    Sheets: Pools, Provenance, Transfers, Metadata.

    Args:
        plan: Pooling plan to export
        output_path: Optional path to save file (if None, returns bytes)

    Returns:
        Bytes of Excel file if output_path is None, otherwise None
    """
    if output_path is None:
        buffer = BytesIO()
        writer_target = buffer
    else:
        writer_target = Path(output_path)

    tables = plan_to_dataframes(plan)

    with pd.ExcelWriter(writer_target, engine="openpyxl") as writer:
        tables["pools"].to_excel(writer, sheet_name="Pools", index=False, freeze_panes=(1, 0))
        tables["provenance"].to_excel(writer, sheet_name="Provenance", index=False, freeze_panes=(1, 0))
        tables["transfers"].to_excel(writer, sheet_name="Transfers", index=False, freeze_panes=(1, 0))

        metadata = _create_metadata_dict(plan)
        metadata_df = pd.DataFrame(list(metadata.items()), columns=["Parameter", "Value"])
        metadata_df.to_excel(writer, sheet_name="Metadata", index=False, freeze_panes=(1, 0))

        for sheet_name in writer.sheets:
            _auto_adjust_column_widths(writer.sheets[sheet_name])

    if output_path is None:
        buffer.seek(0)
        return buffer.getvalue()
    return None


def generate_export_filename(prefix: str = "pooling_plan") -> str:
    """
    Generate a timestamped filename for exports.

    Args:
        prefix: Prefix for filename

    Returns:
        Filename string with timestamp
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.xlsx"


def _create_metadata_dict(plan: PoolingPlan) -> dict[str, str]:
    """Create the metadata sheet contents for a plan."""
    metadata = {
        "Generated At": datetime.now().isoformat(),
        "Plan Created At": plan.created_at.isoformat(),
        "App Name": APP_NAME,
        "App Version": __version__,
        "Pooling Method": plan.method.value,
        "Pool Size": str(plan.pool_size),
        "Random Seed": str(plan.seed) if plan.seed is not None else "None",
        "Total Specimens": str(plan.total_specimens),
        "Total Pools": str(plan.total_pools),
        "Rack Loads": str(len(plan.bins)),
    }
    for key, value in plan.parameters.items():
        metadata[key.replace("_", " ").title()] = str(value)
    return metadata


def _auto_adjust_column_widths(worksheet) -> None:
    """
    Auto-adjust column widths in an openpyxl worksheet.

    Args:
        worksheet: openpyxl worksheet object
    """
    for column in worksheet.columns:
        column_letter = column[0].column_letter
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)

        # Cap at 50 characters
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, 50)
