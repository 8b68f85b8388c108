import threading

import pytest
from mpi4py import MPI


def pytest_itemcollected(item):
    """Append MPI rank to the test ID as it is collected."""
    rank = MPI.COMM_WORLD.Get_rank()
    item._nodeid += f"[Rank {rank}]"


@pytest.fixture
def liveness():
    """Abort the whole job if the test does not complete in time.

    A collective routine that deadlocks would otherwise hang every
    process; aborting the world communicator turns it into a failure.
    """
    timer = threading.Timer(120., MPI.COMM_WORLD.Abort, args=(1,))
    timer.daemon = True
    timer.start()
    yield
    timer.cancel()
