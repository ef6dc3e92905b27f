# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
System configuration model.

Contains SystemConfig for logging settings.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .base import FROZEN_CONFIG


class SystemConfig(BaseModel):
    """System-level configuration: logging"""
    model_config = FROZEN_CONFIG

    log_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'] = Field(default='INFO', alias='LOG_LEVEL')
    log_to_file: bool = Field(default=False, alias='LOG_TO_FILE')
    log_file: Optional[Path] = Field(default=None, alias='LOG_FILE')
    log_format: str = Field(default='detailed', alias='LOG_FORMAT')
