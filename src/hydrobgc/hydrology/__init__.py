# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Hydrologic process laws and the ODE right-hand side."""

from .diagnostics import DiagnosticsBuffer
from .flux_assembly import FluxAssembly
from .sparsity import jacobian_sparsity

__all__ = ['FluxAssembly', 'DiagnosticsBuffer', 'jacobian_sparsity']
