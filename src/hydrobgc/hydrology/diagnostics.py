# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Diagnostic flux buffer written by the flux assembly.
"""

from typing import Dict, Optional

import numpy as np


class DiagnosticsBuffer:
    """Named flux arrays from the most recent evaluation.

    Each evaluation overwrites the previous content, so a repeated call at
    the same time leaves the buffer unchanged.
    """

    def __init__(self):
        self.time: Optional[float] = None
        self._values: Dict[str, np.ndarray] = {}

    def record(self, t: float, **values: np.ndarray) -> None:
        self.time = float(t)
        self._values = {name: np.array(v, copy=True) for name, v in values.items()}

    def __getitem__(self, name: str) -> np.ndarray:
        return self._values[name]

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def names(self):
        return sorted(self._values)

    def as_dict(self) -> Dict[str, np.ndarray]:
        return dict(self._values)
