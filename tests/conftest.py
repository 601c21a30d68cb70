import pytest

from specimen_pooling.models import Pool, Specimen


def make_specimens(count: int, start_id: int = 100) -> list[Specimen]:
    """Specimens with ids start_id.. and names S{count-1}..S000 (reverse of id order)."""
    return [
        Specimen(
            specimen_id=start_id + i,
            name=f"S{count - 1 - i:03d}",
            specimen_barcode=f"BC{start_id + i}",
        )
        for i in range(count)
    ]


def make_pool(index: int, size: int, start_id: int = 0) -> Pool:
    """A pool of `size` anonymous specimens."""
    members = tuple(
        Specimen(specimen_id=start_id + i, name=f"P{index}_{i}") for i in range(size)
    )
    return Pool(index=index, members=members)


@pytest.fixture
def specimens_23() -> list[Specimen]:
    """23 specimens with ids 100..122."""
    return make_specimens(23)


@pytest.fixture
def plate_specimens() -> list[Specimen]:
    """
    12 specimens spread over three source plates, four wells each (A1, A2, B1, B2).
    """
    wells = ["A1", "A2", "B1", "B2"]
    return [
        Specimen(
            specimen_id=plate * 10 + i,
            name=f"Plate{plate}_{well}",
            well=well,
            source_carrier=f"Plate{plate}",
        )
        for plate in range(1, 4)
        for i, well in enumerate(wells)
    ]
