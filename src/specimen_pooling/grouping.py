"""
Grouping engine for the Specimen Pooling Planner.

This module handles:
- Ordering specimens by the selected pooling method
- Chunking ordered specimens into pools of a target size
- Grouping specimens by well position across source carriers
- First-fit packing of pools onto fixed-capacity carriers

All functions are pure: inputs are never mutated and fresh lists are
returned, so the same input and method (and seed, for Random) always yield
the same pools.
"""

import logging
import random
from collections.abc import Sequence

from specimen_pooling.errors import CapacityExceeded, InvalidMethod, MissingWellLocation
from specimen_pooling.models import Pool, PoolingMethod, Specimen, WellLocation

LOGGER = logging.getLogger(__name__)


def chunk_specimens(specimens: Sequence[Specimen], pool_size: int) -> list[list[Specimen]]:
    """
    Split an ordered sequence into consecutive groups of pool_size.

    The last group may be shorter.
    """
    if pool_size <= 0:
        raise ValueError(f"Pool size must be > 0, got {pool_size}")
    return [list(specimens[i:i + pool_size]) for i in range(0, len(specimens), pool_size)]


def order_specimens(
    items: Sequence[Specimen],
    method: PoolingMethod | str,
    seed: int | None = None,
) -> list[Specimen]:
    """
    Order specimens for a count-based pooling method.

    Args:
        items: Specimens to order
        method: By ID (descending id), By Name / By Batch (ascending name)
            or Random (uniform shuffle)
        seed: Seed for the Random method; None draws from system entropy

    Returns:
        New list of the same specimens in pooling order

    Raises:
        InvalidMethod: If method is unknown or is By Well (which groups by
            position rather than by order)
    """
    method = PoolingMethod.parse(method)

    if method is PoolingMethod.BY_ID:
        return sorted(items, key=lambda s: s.specimen_id, reverse=True)
    elif method in (PoolingMethod.BY_NAME, PoolingMethod.BY_BATCH):
        return sorted(items, key=lambda s: s.name)
    elif method is PoolingMethod.RANDOM:
        shuffled = list(items)
        random.Random(seed).shuffle(shuffled)
        return shuffled
    else:
        raise InvalidMethod(method.value)


def group_by_well(items: Sequence[Specimen], pool_size: int) -> list[list[Specimen]]:
    """
    Group specimens that share a well position across source carriers.

    Each (row, column) position forms one class; classes are emitted in
    row-major well order and specimens keep their input order within a class.
    A class larger than pool_size is chunked so no group exceeds it.

    Raises:
        MissingWellLocation: If any specimen has no well
    """
    classes: dict[WellLocation, list[Specimen]] = {}
    for specimen in items:
        if specimen.well is None:
            raise MissingWellLocation(specimen.specimen_id)
        classes.setdefault(specimen.well, []).append(specimen)

    groups = []
    for well in sorted(classes, key=lambda w: (w.row, w.column)):
        groups.extend(chunk_specimens(classes[well], pool_size))
    return groups


def create_pooling_groups(
    items: Sequence[Specimen],
    pool_size: int,
    method: PoolingMethod | str,
    seed: int | None = None,
) -> list[Pool]:
    """
    Partition specimens into pools.

    Algorithm:
    1. Resolve the method label (fails fast on unknown methods)
    2. By Well: group by well position; otherwise order the specimens
    3. Chunk into consecutive pools of pool_size

    Args:
        items: Non-empty sequence of specimens
        pool_size: Maximum specimens per pool
        method: Pooling method label or PoolingMethod
        seed: Seed for the Random method

    Returns:
        Pools in creation order; every specimen appears in exactly one pool

    Raises:
        InvalidMethod: If method is not recognized
        ValueError: If items is empty or pool_size is not positive

    Example:
        >>> pools = create_pooling_groups(specimens, 10, "By ID")
        >>> [p.size for p in pools]  # 23 specimens
        [10, 10, 3]
    """
    method = PoolingMethod.parse(method)

    if pool_size <= 0:
        raise ValueError(f"Pool size must be > 0, got {pool_size}")
    if len(items) == 0:
        raise ValueError("At least one specimen is required for pooling")

    if method is PoolingMethod.BY_WELL:
        groups = group_by_well(items, pool_size)
    else:
        groups = chunk_specimens(order_specimens(items, method, seed=seed), pool_size)

    pools = [Pool(index=i, members=tuple(group)) for i, group in enumerate(groups)]
    LOGGER.debug(
        "Created %d pools from %d specimens (method=%s, pool_size=%d)",
        len(pools), len(items), method.value, pool_size,
    )
    return pools


def group_by_capacity(pools: Sequence[Pool], max_capacity: int) -> list[list[Pool]]:
    """
    Pack pools onto carriers using first-fit, in input order.

    Each pool goes into the first open bin with room for all of its members;
    if none has room a new bin is opened. A pool is placed in exactly one bin
    and is never split. Greedy first-fit is order dependent and not a global
    optimum.

    Args:
        pools: Pools to pack
        max_capacity: Cells per carrier (rows × columns)

    Returns:
        Bins of pools; the sum of pool sizes in each bin is <= max_capacity

    Raises:
        CapacityExceeded: If any single pool is larger than max_capacity
        ValueError: If max_capacity is not positive
    """
    if max_capacity <= 0:
        raise ValueError(f"Max capacity must be > 0, got {max_capacity}")

    for pool in pools:
        if pool.size > max_capacity:
            raise CapacityExceeded(pool.size, max_capacity, pool_index=pool.index)

    bins: list[list[Pool]] = []
    occupied: list[int] = []
    for pool in pools:
        for i, used in enumerate(occupied):
            if used + pool.size <= max_capacity:
                bins[i].append(pool)
                occupied[i] += pool.size
                break
        else:
            bins.append([pool])
            occupied.append(pool.size)

    LOGGER.debug("Packed %d pools into %d carriers of capacity %d", len(pools), len(bins), max_capacity)
    return bins
