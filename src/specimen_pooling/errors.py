"""
Exceptions raised by the Specimen Pooling Planner.

All errors derive from PoolingError, itself a ValueError, so callers that
only care about bad input can keep catching ValueError.
"""


class PoolingError(ValueError):
    """Base class for pooling failures."""


class InvalidMethod(PoolingError):
    """Unrecognized pooling strategy."""

    def __init__(self, method: object):
        self.method = method
        super().__init__(f"Invalid pooling method: {method!r}")


class CapacityExceeded(PoolingError):
    """A single pool is larger than the carrier it must fit on."""

    def __init__(self, pool_size: int, max_capacity: int, pool_index: int | None = None):
        self.pool_size = pool_size
        self.max_capacity = max_capacity
        self.pool_index = pool_index
        where = f"Pool {pool_index}" if pool_index is not None else "Pool"
        super().__init__(
            f"{where} has {pool_size} specimens but the carrier holds only {max_capacity}; "
            "use a smaller pool size or a larger carrier"
        )


class CarrierFull(PoolingError):
    """No empty cell remains on a carrier while placement still needs one."""

    def __init__(self, carrier_name: str, capacity: int):
        self.carrier_name = carrier_name
        self.capacity = capacity
        super().__init__(f"Not enough space on {carrier_name} ({capacity} cells) for all samples")


class TooManyInputs(PoolingError):
    """More specimens supplied than a single invocation allows."""

    def __init__(self, count: int, maximum: int):
        self.count = count
        self.maximum = maximum
        super().__init__(f"{count} specimens supplied when only {maximum} are allowed")


class MissingWellLocation(PoolingError):
    """By-well grouping requested for a specimen with no well location."""

    def __init__(self, specimen_id: int):
        self.specimen_id = specimen_id
        super().__init__(f"Specimen {specimen_id} has no well location")


class DuplicateSpecimen(PoolingError):
    """The same specimen id appears more than once in a pooling run."""

    def __init__(self, specimen_ids: list[int]):
        self.specimen_ids = specimen_ids
        super().__init__(f"Duplicate specimen ids supplied: {specimen_ids}")
