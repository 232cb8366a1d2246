__all__ = [
    "IntNDArray",
    "NDArray",
    "DTypeLike",
    "BoundsLike",
]

from typing import Optional, Tuple

import numpy as np
import numpy.typing as npt

IntNDArray = npt.NDArray[np.int_]
NDArray = npt.NDArray

DTypeLike = npt.DTypeLike
BoundsLike = Optional[Tuple[float, float]]
