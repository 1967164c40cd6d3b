"""
vnacal is a vector network analyzer calibration library,
implemented in Python.
"""

__version__ = '0.3.0'
## Import all  module names for coherent reference of name-space


from . import (
    calibration,
    constants,
    exceptions,
    interpolation,
    io,
    mathFunctions,
    network,
    properties,
    tlineFunctions,
    util,
)
from .calibration import *
from .constants import *
from .exceptions import *
from .interpolation import *
from .io import *
from .mathFunctions import *
from .network import *
from .properties import *
from .tlineFunctions import *
from .util import *


def setup_pylab() -> bool:
    try:
        import matplotlib
    except ImportError:
        print("matplotlib not found while setting up plotting")
        return False

    from . import plotting
    return True


plotting_available = setup_pylab()
