from .cellular_2d import cellular2
from .simplex_2d import Simplex2D, fbm2, ridged2

__all__ = ["Simplex2D", "cellular2", "fbm2", "ridged2"]
