# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
Factory functions for creating HydroBGC configurations.

- from_file_factory: Load from a YAML file
- from_dict_factory: Build from a nested or flat mapping

Flat files use the upper-case keys of the original control files
(``ABSTOL``, ``START``, ``SPINUP_MODE`` ...); they are routed to their
section by alias.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Type, Union

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError, ConfigValidationError
from .models.root import SECTION_MODELS

if TYPE_CHECKING:
    from .models.root import HydroBGCConfig


def _alias_index() -> Dict[str, str]:
    index = {}
    for section, model in SECTION_MODELS.items():
        for name, field in model.model_fields.items():
            index[field.alias or name] = section
            index[name.upper()] = section
    return index


def nest_flat_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """Route flat upper-case keys into their section mappings.

    Keys that already name a section are kept as nested mappings. Unknown
    flat keys raise ``ConfigurationError``.
    """
    index = _alias_index()
    nested: Dict[str, Dict[str, Any]] = {}
    unknown = []
    for key, value in data.items():
        if key in SECTION_MODELS:
            if not isinstance(value, dict):
                raise ConfigurationError(f"Section '{key}' must be a mapping")
            nested.setdefault(key, {}).update(value)
        elif key in index:
            nested.setdefault(index[key], {})[key] = value
        else:
            unknown.append(key)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
    return nested


def _format_validation_error(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        location = '.'.join(str(part) for part in err['loc'])
        if err['type'] == 'missing':
            lines.append(f"{location} must be defined")
        else:
            lines.append(f"{location}: {err['msg']}")
    return 'Invalid configuration:\n  ' + '\n  '.join(lines)


def from_dict_factory(cls: Type['HydroBGCConfig'], data: Dict[str, Any]) -> 'HydroBGCConfig':
    """Validate a mapping into a configuration object."""
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping, got {type(data).__name__}"
        )
    nested = nest_flat_config(data)
    try:
        return cls.model_validate(nested)
    except ValidationError as e:
        raise ConfigValidationError(_format_validation_error(e)) from e


def from_file_factory(cls: Type['HydroBGCConfig'], path: Union[str, Path]) -> 'HydroBGCConfig':
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse configuration file {path}: {e}") from e
    if data is None:
        raise ConfigurationError(f"Configuration file is empty: {path}")
    return from_dict_factory(cls, data)
