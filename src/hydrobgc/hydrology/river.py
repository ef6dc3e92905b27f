# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Channel cross-section geometry and exchange laws.

Shapes follow ``depth = coeff * half_width ** (order - 1)`` for order >= 2;
order 1 is a rectangle of width ``coeff``. A small floor width is added to
every shape so that the storage equation stays regular at zero stage; the
same floor enters the cross-section area, which keeps volume bookkeeping
exact.
"""

import numpy as np

from ..core.constants import HydrologyConstants, PhysicalConstants

FLOOR_WIDTH = 0.01   # m


def half_width(stage, order, coeff):
    """Half top width (m) at water depth ``stage``."""
    h = np.maximum(stage, 0.0)
    order = np.asarray(order)
    safe_order = np.maximum(order, 2)
    powered = (h / np.maximum(coeff, 1.0e-12)) ** (1.0 / (safe_order - 1.0))
    return np.where(order <= 1, 0.5 * coeff, powered)


def top_width(stage, order, coeff):
    return 2.0 * half_width(stage, order, coeff) + FLOOR_WIDTH


def cross_section_area(stage, order, coeff):
    """Flow area (m2) including the floor width."""
    h = np.maximum(stage, 0.0)
    order = np.asarray(order)
    b = half_width(h, order, coeff)
    shape_area = np.where(order <= 1, 2.0 * b * h,
                          2.0 * (np.maximum(order, 2) - 1.0) / np.maximum(order, 2) * h * b)
    return shape_area + FLOOR_WIDTH * h


def wetted_perimeter(stage, order, coeff):
    h = np.maximum(stage, 0.0)
    order = np.asarray(order)
    b = half_width(h, order, coeff)
    rect = 2.0 * b + 2.0 * h
    sloped = 2.0 * np.sqrt(h * h + b * b)
    return np.where(order <= 1, rect, sloped) + FLOOR_WIDTH


def manning_flux(area, perimeter, head_drop, distance, rough):
    """Diffusive-wave Manning discharge (m3/s), positive along ``head_drop``."""
    area = np.maximum(area, 0.0)
    slope = head_drop / distance
    radius = area / np.maximum(perimeter, 1.0e-12)
    magnitude = np.sqrt(np.maximum(np.abs(slope), HydrologyConstants.MIN_SLOPE))
    return np.sign(slope) * area * radius ** (2.0 / 3.0) * magnitude / rough


def weir_flux(head_element, head_river, bank, length, cwr):
    """Overland exchange across a river bank (m3/s), positive into the river.

    Broad-crested weir on the head above the bank; when both sides are above
    the bank the discharge scales with their head difference.
    """
    upper = np.maximum(head_element, head_river)
    over = np.maximum(upper - bank, 0.0)
    drop = np.maximum(head_element, bank) - np.maximum(head_river, bank)
    return cwr * np.sqrt(2.0 * PhysicalConstants.GRAV) * length * np.sqrt(over) * drop
