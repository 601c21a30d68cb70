"""
Carrier placement and the end-to-end pooling workflow.

Pools packed by grouping.group_by_capacity are laid out in two stages:
1. Specimen tubes of one bin are loaded into a staging rack
2. Each pool claims the next empty well of the destination plate, and every
   member specimen is transferred from its rack cell into that well

Nothing here touches the LIMS: results are plain models that an output
consumer turns into sample records and pipetting instructions.
"""

import logging
from collections.abc import Collection, Iterator, Sequence
from datetime import datetime

from specimen_pooling.config import (
    DEFAULT_MAX_SPECIMENS_PER_OPERATION,
    DEFAULT_PLATE_COLUMNS,
    DEFAULT_PLATE_LOCATION,
    DEFAULT_PLATE_NAME,
    DEFAULT_PLATE_ROWS,
    DEFAULT_POOL_SIZE,
    DEFAULT_POOLING_METHOD,
    DEFAULT_RACK_COLUMNS,
    DEFAULT_RACK_NAME,
    DEFAULT_RACK_ROWS,
    DEFAULT_TRANSFER_VOLUME_UL,
    POOLING_SCHEMES,
)
from specimen_pooling.errors import CarrierFull
from specimen_pooling.grouping import create_pooling_groups, group_by_capacity
from specimen_pooling.models import (
    CarrierAssignment,
    CarrierSpec,
    CellAssignment,
    Pool,
    PoolingMethod,
    PoolingPlan,
    ProvenanceRecord,
    RackLoading,
    Specimen,
    TransferRecord,
    WellLocation,
)
from specimen_pooling.validation import check_input_count, check_unique_ids

LOGGER = logging.getLogger(__name__)


# ============================================================================
# Cell Scanning
# ============================================================================


def iter_cells(carrier: CarrierSpec) -> Iterator[WellLocation]:
    """Yield every cell of a carrier in row-major order (A1, A2, ... B1, ...)."""
    for row in range(carrier.rows):
        for column in range(carrier.columns):
            yield WellLocation(row=row, column=column)


def next_empty_cell(carrier: CarrierSpec, taken: Collection[WellLocation]) -> WellLocation | None:
    """Return the first row-major cell not in taken, or None if the carrier is full."""
    for cell in iter_cells(carrier):
        if cell not in taken:
            return cell
    return None


# ============================================================================
# Placement
# ============================================================================


def assign_to_carrier(
    pools: Sequence[Pool],
    carrier: CarrierSpec,
    occupied: Collection[WellLocation] = (),
) -> CarrierAssignment:
    """
    Place each pool of a bin in its own cell of a carrier.

    For each pool, in order: claim the next empty cell (row-major, skipping
    occupied cells), describe the pooled sample that will live there, and
    record provenance for every member specimen.

    Args:
        pools: Pools of one bin to place
        carrier: Destination carrier
        occupied: Cells already in use on the carrier

    Returns:
        CarrierAssignment with one CellAssignment per pool and a
        specimen id → cell association map

    Raises:
        CarrierFull: If a pool still needs a cell and none is empty
        ValueError: If an occupied cell lies outside the carrier
    """
    for cell in occupied:
        if not carrier.contains(cell):
            raise ValueError(f"Occupied cell {cell.name} is not on {carrier.name}")
    taken = set(occupied)
    assignment = CarrierAssignment(carrier=carrier)

    for pool in pools:
        cell = next_empty_cell(carrier, taken)
        if cell is None:
            raise CarrierFull(carrier.name, carrier.capacity)
        taken.add(cell)

        provenance = [
            ProvenanceRecord(
                specimen_id=specimen.specimen_id,
                specimen_barcode=specimen.specimen_barcode,
                rack_barcode=specimen.rack_barcode,
                rack_location=specimen.rack_location,
                pool_index=pool.index,
                cell=cell,
            )
            for specimen in pool.members
        ]
        assignment.cells.append(CellAssignment(
            pool_index=pool.index,
            cell=cell,
            sample_name=pool.sample_name,
            description=pool.description,
            provenance=provenance,
        ))
        for specimen in pool.members:
            assignment.association_map[specimen.specimen_id] = cell

    return assignment


def load_rack(pools: Sequence[Pool], rack: CarrierSpec, bin_index: int = 0) -> RackLoading:
    """
    Position every specimen of a bin in a staging rack, one tube per cell.

    Tubes are placed row-major in pool order, so a pool's members sit next
    to each other.

    Raises:
        CarrierFull: If the rack has fewer cells than the bin has specimens
    """
    loading = RackLoading(bin_index=bin_index, rack=rack)
    cells = iter_cells(rack)

    for pool in pools:
        for specimen in pool.members:
            cell = next(cells, None)
            if cell is None:
                raise CarrierFull(rack.name, rack.capacity)
            loading.positions[specimen.specimen_id] = cell

    return loading


def build_transfer_map(
    loading: RackLoading,
    assignment: CarrierAssignment,
    transfer_volume_ul: float = DEFAULT_TRANSFER_VOLUME_UL,
) -> list[TransferRecord]:
    """
    Pair each specimen's rack cell with the well its pool was assigned.

    Returns:
        One TransferRecord per specimen, in plate placement order
    """
    transfers = []
    for cell in assignment.cells:
        for record in cell.provenance:
            transfers.append(TransferRecord(
                bin_index=loading.bin_index,
                specimen_id=record.specimen_id,
                from_cell=loading.positions[record.specimen_id],
                to_cell=cell.cell,
                volume_ul=transfer_volume_ul,
            ))
    return transfers


# ============================================================================
# Pooling Workflow
# ============================================================================


def resolve_scheme(name: str) -> tuple[int, PoolingMethod]:
    """
    Look up a named pooling scheme.

    Returns:
        Tuple of (pool_size, method)

    Raises:
        ValueError: If the scheme name is unknown
    """
    if name not in POOLING_SCHEMES:
        raise ValueError(f"Unknown pooling scheme '{name}'. Choose from: {list(POOLING_SCHEMES)}")
    scheme = POOLING_SCHEMES[name]
    return int(scheme["pool_size"]), PoolingMethod.parse(str(scheme["pooling_method"]))


def plan_pooling(
    specimens: Sequence[Specimen],
    pool_size: int = DEFAULT_POOL_SIZE,
    method: PoolingMethod | str = DEFAULT_POOLING_METHOD,
    rack: CarrierSpec | None = None,
    plate: CarrierSpec | None = None,
    transfer_volume_ul: float = DEFAULT_TRANSFER_VOLUME_UL,
    max_specimens: int = DEFAULT_MAX_SPECIMENS_PER_OPERATION,
    seed: int | None = None,
    plate_location: str = DEFAULT_PLATE_LOCATION,
) -> PoolingPlan:
    """
    Complete pooling workflow.

    Workflow:
        1. Reject the run if it has more than max_specimens specimens or
           repeats a specimen id
        2. Partition specimens into pools (create_pooling_groups)
        3. Pack pools into staging racks (group_by_capacity)
        4. For each rack: load tubes, assign pools to the next empty wells of
           the shared destination plate, build the transfer list

    Either the whole plan is produced or an exception is raised; no partial
    plan is returned.

    Args:
        specimens: Specimens to pool
        pool_size: Maximum specimens per pool
        method: Pooling method label or PoolingMethod
        rack: Staging rack (default 1 × 10 Specimen Rack)
        plate: Destination plate (default 8 × 12 96-Well Plate)
        transfer_volume_ul: Volume moved from each specimen into its pool
        max_specimens: Per-run specimen limit
        seed: Seed for the Random method
        plate_location: Storage location recorded for the finished plate

    Returns:
        PoolingPlan

    Raises:
        TooManyInputs: If too many specimens are supplied
        DuplicateSpecimen: If two specimens share an id
        InvalidMethod: If method is not recognized
        CapacityExceeded: If pool_size exceeds the rack capacity
        CarrierFull: If the plate runs out of wells
    """
    check_input_count(specimens, max_specimens)
    check_unique_ids(specimens)

    method = PoolingMethod.parse(method)
    rack = rack or CarrierSpec(name=DEFAULT_RACK_NAME, rows=DEFAULT_RACK_ROWS, columns=DEFAULT_RACK_COLUMNS)
    plate = plate or CarrierSpec(name=DEFAULT_PLATE_NAME, rows=DEFAULT_PLATE_ROWS, columns=DEFAULT_PLATE_COLUMNS)

    pools = create_pooling_groups(specimens, pool_size, method, seed=seed)
    bins = group_by_capacity(pools, rack.capacity)

    rack_loadings = []
    plate_assignments = []
    transfers = []
    used_wells: list[WellLocation] = []

    for bin_index, pools_in_bin in enumerate(bins):
        loading = load_rack(pools_in_bin, rack, bin_index=bin_index)
        assignment = assign_to_carrier(pools_in_bin, plate, occupied=used_wells)
        used_wells.extend(assignment.claimed_cells)

        rack_loadings.append(loading)
        plate_assignments.append(assignment)
        transfers.extend(build_transfer_map(loading, assignment, transfer_volume_ul))

    LOGGER.info(
        "Planned %d pools from %d specimens across %d %s loads onto %s",
        len(pools), len(specimens), len(bins), rack.name, plate.name,
    )

    return PoolingPlan(
        method=method,
        pool_size=pool_size,
        seed=seed,
        pools=pools,
        bins=bins,
        rack_loadings=rack_loadings,
        plate_assignments=plate_assignments,
        transfers=transfers,
        created_at=datetime.now(),
        parameters={
            "rack": rack.name,
            "rack_dimensions": [rack.rows, rack.columns],
            "plate": plate.name,
            "plate_dimensions": [plate.rows, plate.columns],
            "transfer_volume_ul": transfer_volume_ul,
            "max_specimens": max_specimens,
            "plate_location": plate_location,
        },
    )
