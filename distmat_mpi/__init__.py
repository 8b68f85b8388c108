from .Errors import *
from .Options import *
from .Grid import Grid, GridOrder
from .Distribution import *
from .DistributedMatrix import DistributedMatrix, transpose
from .Partitioning import *
from .LinearOperator import *
from .blas import *
from .lapack import *
from .sparse import *
from . import (
    blas,
    lapack,
    sparse,
    plotting
)
from .plotting.plotting import *

try:
    from .version import version as __version__
except ImportError:
    # If it was not installed, then we don't know the version. We could throw a
    # warning here, but this case *should* be rare. distmat_mpi should be installed
    # properly!
    from datetime import datetime

    __version__ = "unknown-" + datetime.today().strftime("%Y%m%d")
