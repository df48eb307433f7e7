"""Random withholding of known readings for one trial."""

from typing import Tuple

import numpy as np


def draw_withheld_mask(row_count: int, samples: int, rng: np.random.Generator) -> np.ndarray:
    """Pick ``samples`` distinct row positions uniformly without replacement.

    :param row_count: Number of rows in the table.
    :param samples: Number of rows to withhold, ``0 < samples <= row_count``.
    :param rng: Random generator owned by the calling trial.
    :returns: Sorted array of row positions.
    """
    if not 0 < samples <= row_count:
        raise ValueError(f"samples must be in 1..{row_count}, got {samples}")
    mask = rng.choice(row_count, size=samples, replace=False)
    mask.sort()
    return mask


def withhold(values: np.ndarray, mask: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Return a copy of ``values`` with NaN at ``mask`` and the withheld truth."""
    values = np.asarray(values, dtype=float)
    truth = values[mask].copy()
    masked = values.copy()
    masked[mask] = np.nan
    return masked, truth
