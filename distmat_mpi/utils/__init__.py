# isort: skip_file

from .config import *
from .decorators import *
