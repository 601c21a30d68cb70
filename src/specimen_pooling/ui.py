"""
Gradio UI for the Specimen Pooling Planner

This module provides a web-based user interface using Gradio for planning
specimen pools from an uploaded manifest.
"""

import logging
import os
import tempfile
from pathlib import Path

import gradio as gr
import pandas as pd

from specimen_pooling import __version__
from specimen_pooling.config import (
    APP_DESCRIPTION,
    APP_NAME,
    DEFAULT_MAX_SPECIMENS_PER_OPERATION,
    DEFAULT_PLATE_COLUMNS,
    DEFAULT_PLATE_NAME,
    DEFAULT_PLATE_ROWS,
    DEFAULT_POOL_SIZE,
    DEFAULT_POOLING_METHOD,
    DEFAULT_RACK_COLUMNS,
    DEFAULT_RACK_NAME,
    DEFAULT_RACK_ROWS,
    DEFAULT_TRANSFER_VOLUME_UL,
)
from specimen_pooling.errors import PoolingError
from specimen_pooling.io import (
    export_plan_to_excel,
    generate_export_filename,
    load_manifest,
    manifest_to_specimens,
    normalize_dataframe_columns,
    plan_to_dataframes,
)
from specimen_pooling.models import PoolingMethod, create_carrier
from specimen_pooling.placement import plan_pooling
from specimen_pooling.validation import run_all_validations

LOGGER = logging.getLogger(__name__)


def process_upload(
    file_obj,
    pool_size: float,
    method: str,
    seed: float | None = None,
    rack_rows: float = DEFAULT_RACK_ROWS,
    rack_columns: float = DEFAULT_RACK_COLUMNS,
    plate_rows: float = DEFAULT_PLATE_ROWS,
    plate_columns: float = DEFAULT_PLATE_COLUMNS,
    transfer_volume: float = DEFAULT_TRANSFER_VOLUME_UL,
    max_specimens: float = DEFAULT_MAX_SPECIMENS_PER_OPERATION,
) -> tuple[str, pd.DataFrame | None, pd.DataFrame | None, bytes | None]:
    """
    Process an uploaded manifest and compute a pooling plan.

    Numeric arguments arrive from gr.Number widgets as floats and are
    converted to ints here.

    Returns:
        Tuple of (status_message, pools_df, provenance_df, excel_bytes)
    """
    if file_obj is None:
        return "Please upload a manifest first.", None, None, None

    file_path = getattr(file_obj, "name", file_obj)

    try:
        df = normalize_dataframe_columns(load_manifest(file_path))
        validation_result = run_all_validations(df, max_specimens=int(max_specimens))

        if not validation_result.is_valid:
            error_msg = "❌ **VALIDATION FAILED**\n\n"
            error_msg += f"**Errors ({len(validation_result.errors)}):**\n"
            for err in validation_result.errors:
                error_msg += f"- {err}\n"
            if validation_result.warnings:
                error_msg += f"\n**Warnings ({len(validation_result.warnings)}):**\n"
                for warn in validation_result.warnings:
                    error_msg += f"- {warn}\n"
            return error_msg, None, None, None

        status_msg = "✅ **VALIDATION PASSED**\n\n"
        status_msg += f"- Specimens loaded: {len(df)}\n"

        if validation_result.warnings:
            status_msg += f"\n⚠️ **Warnings ({len(validation_result.warnings)}):**\n"
            for warn in validation_result.warnings[:5]:
                status_msg += f"- {warn}\n"
            if len(validation_result.warnings) > 5:
                status_msg += f"- ... and {len(validation_result.warnings) - 5} more\n"

        plan = plan_pooling(
            manifest_to_specimens(df),
            pool_size=int(pool_size),
            method=method,
            rack=create_carrier(DEFAULT_RACK_NAME, int(rack_rows), int(rack_columns)),
            plate=create_carrier(DEFAULT_PLATE_NAME, int(plate_rows), int(plate_columns)),
            transfer_volume_ul=transfer_volume,
            max_specimens=int(max_specimens),
            seed=int(seed) if seed is not None else None,
        )

    except (PoolingError, ValueError) as e:
        LOGGER.info("Pooling plan rejected: %s", e)
        return f"❌ **ERROR**: {e}", None, None, None

    tables = plan_to_dataframes(plan)
    excel_bytes = export_plan_to_excel(plan)

    status_msg += "\n✅ **Pooling plan computed successfully!**\n"
    status_msg += f"- Pools: {plan.total_pools} (method: {plan.method.value})\n"
    status_msg += f"- Rack loads: {len(plan.bins)}\n"
    status_msg += "- Ready to download Excel file\n"

    return status_msg, tables["pools"], tables["provenance"], excel_bytes


def prepare_download(excel_bytes: bytes | None) -> str | None:
    """Write the exported plan to a timestamped temp file and return its path."""
    if excel_bytes is None:
        return None

    temp_path = Path(tempfile.gettempdir()) / generate_export_filename()
    temp_path.write_bytes(excel_bytes)
    return str(temp_path)


def build_app() -> gr.Blocks:
    """
    Build and return the Gradio interface.

    Returns:
        Configured Gradio Blocks interface
    """
    with gr.Blocks(title=APP_NAME) as app:
        gr.Markdown(
            f"""
            # 🧪 {APP_NAME}
            **{APP_DESCRIPTION} - Version {__version__}**

            Group surveillance specimens into pools and lay them out on racks and plates.
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                gr.Markdown("## 📁 Input")

                file_upload = gr.File(
                    label="Upload Specimen Manifest (Excel/CSV)",
                    file_types=[".xlsx", ".csv"],
                    type="filepath",
                )

                gr.Markdown("### Pooling")

                pool_size = gr.Number(label="Pool Size", value=DEFAULT_POOL_SIZE, minimum=1, precision=0)
                method = gr.Dropdown(
                    label="Pooling Method",
                    choices=[m.value for m in PoolingMethod],
                    value=DEFAULT_POOLING_METHOD,
                )
                seed = gr.Number(
                    label="Random Seed [Optional]",
                    value=None,
                    precision=0,
                    info="Set to reproduce a Random pooling",
                )
                max_specimens = gr.Number(
                    label="Maximum Specimens per Run",
                    value=DEFAULT_MAX_SPECIMENS_PER_OPERATION,
                    minimum=1,
                    precision=0,
                )

                gr.Markdown("### Carriers")

                with gr.Row():
                    rack_rows = gr.Number(label="Rack Rows", value=DEFAULT_RACK_ROWS, minimum=1, precision=0)
                    rack_columns = gr.Number(label="Rack Columns", value=DEFAULT_RACK_COLUMNS, minimum=1, precision=0)
                with gr.Row():
                    plate_rows = gr.Number(label="Plate Rows", value=DEFAULT_PLATE_ROWS, minimum=1, precision=0)
                    plate_columns = gr.Number(label="Plate Columns", value=DEFAULT_PLATE_COLUMNS, minimum=1, precision=0)

                transfer_volume = gr.Number(
                    label="Transfer Volume (µl)",
                    value=DEFAULT_TRANSFER_VOLUME_UL,
                    minimum=0.1,
                    step=0.5,
                )

                plan_btn = gr.Button("🧮 Plan Pools", variant="primary", size="lg")

            with gr.Column(scale=2):
                gr.Markdown("## 📊 Results")

                status_output = gr.Markdown(
                    value="Upload a manifest and click 'Plan Pools' to begin.",
                    label="Status",
                )

                with gr.Tabs():
                    with gr.Tab("📋 Pools"):
                        pools_table = gr.DataFrame(label="Pooled Samples", wrap=True)
                    with gr.Tab("🔗 Provenance"):
                        provenance_table = gr.DataFrame(label="Specimen Provenance", wrap=True)

                download_btn = gr.DownloadButton(
                    label="📥 Download Pooling Plan (Excel)",
                    variant="secondary",
                    size="lg",
                    visible=False,
                )

        excel_state = gr.State(value=None)

        def plan_wrapper(*args):
            status, pools_df, provenance_df, excel_bytes = process_upload(*args)
            return (
                status,
                pools_df,
                provenance_df,
                excel_bytes,
                gr.update(visible=excel_bytes is not None),
            )

        plan_btn.click(
            fn=plan_wrapper,
            inputs=[
                file_upload,
                pool_size,
                method,
                seed,
                rack_rows,
                rack_columns,
                plate_rows,
                plate_columns,
                transfer_volume,
                max_specimens,
            ],
            outputs=[
                status_output,
                pools_table,
                provenance_table,
                excel_state,
                download_btn,
            ],
        )

        download_btn.click(fn=prepare_download, inputs=[excel_state], outputs=download_btn)

        gr.Markdown(
            """
            ---
            ### 📖 Quick Start Guide

            1. **Prepare a manifest** (Excel or CSV) with `Specimen ID` and `Specimen Name`
               columns. Optional: `Well`, `Source Carrier`, `Specimen Barcode`,
               `Rack Barcode`, `Rack Location`, `Project`.
            2. **Choose a pooling method**: By ID (highest ids first), By Name / By Batch
               (alphabetical), Random (set a seed to reproduce), By Well (same well
               across source plates; needs a `Well` column).
            3. **Set carrier sizes**: pools are packed onto racks without being split,
               then each pool takes the next free well on the plate.
            4. **Download the Excel plan** with pools, provenance and transfers.
            """
        )

    return app


def main():
    """Main entry point to launch the Gradio app."""
    logging.basicConfig(level=os.getenv("POOLING_LOG_LEVEL", "INFO"))

    app = build_app()

    # Set GRADIO_SERVER_NAME=0.0.0.0 when running in Docker
    server_name = os.getenv("GRADIO_SERVER_NAME", "127.0.0.1")
    server_port = int(os.getenv("GRADIO_SERVER_PORT", "7860"))

    app.launch(
        server_name=server_name,
        server_port=server_port,
        share=False,
        show_error=True,
    )


if __name__ == "__main__":
    main()
