# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Mass-conserving pool transfers.

Every daily flux is applied through these helpers, which subtract from one
field and add the same array to another.
"""

import numpy as np

LITTER_POOLS = ('litr1', 'litr2', 'litr3', 'litr4')


def move(pools, src: str, dst: str, amount: np.ndarray) -> None:
    """Move ``amount`` from field ``src`` to field ``dst``."""
    setattr(pools, src, getattr(pools, src) - amount)
    setattr(pools, dst, getattr(pools, dst) + amount)


def split_to_litter(pools, src: str, amount: np.ndarray, fractions, suffix: str) -> None:
    """Move ``amount`` out of ``src`` into the four litter pools by ``fractions``.

    ``fractions`` are the labile, unshielded cellulose, shielded cellulose
    and lignin shares; the lignin pool takes the remainder so that the
    shares always sum to one.
    """
    flab, fucel, fscel, _ = fractions
    parts = (flab, fucel, fscel)
    moved = np.zeros_like(amount)
    for pool, share in zip(LITTER_POOLS[:3], parts):
        part = amount * share
        setattr(pools, f'{pool}{suffix}', getattr(pools, f'{pool}{suffix}') + part)
        moved = moved + part
    setattr(pools, f'litr4{suffix}', getattr(pools, f'litr4{suffix}') + (amount - moved))
    setattr(pools, src, getattr(pools, src) - amount)


def nitrogen_share(n_pool: np.ndarray, c_pool: np.ndarray, c_amount: np.ndarray) -> np.ndarray:
    """Nitrogen leaving with ``c_amount`` of carbon at the pool's current C:N."""
    ratio = np.where(c_pool > 0.0, n_pool / np.where(c_pool > 0.0, c_pool, 1.0), 0.0)
    return np.minimum(c_amount * ratio, np.maximum(n_pool, 0.0))
