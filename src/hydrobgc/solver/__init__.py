# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""Time integration: output schedule, stiff integrator and driver."""

from .driver import IntegrationDriver, OutputSink, StopObserver
from .integrator import ScipyStiffIntegrator, StepResult, StiffIntegrator
from .schedule import OutputSchedule

__all__ = [
    'OutputSchedule',
    'StiffIntegrator',
    'ScipyStiffIntegrator',
    'StepResult',
    'IntegrationDriver',
    'OutputSink',
    'StopObserver',
]
