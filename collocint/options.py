"""
Configuration surface of a collocation discretization.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any

from .ci_types import CollocationScheme
from .input_validation import (
    validate_collocation_scheme,
    validate_interpolation_order,
    validate_known_keys,
)
from .utils.constants import DEFAULT_COLLOCATION_SCHEME, DEFAULT_INTERPOLATION_ORDER


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollocationOptions:
    """Validated collocation options.

    Args:
        interpolation_order: Number of interior collocation nodes (degree d >= 1).
        collocation_scheme: ``"radau"`` or ``"legendre"``.

    Raises:
        InvalidDegreeError: If the interpolation order is invalid.
        InvalidSchemeError: If the collocation scheme is not supported.
    """

    interpolation_order: int = DEFAULT_INTERPOLATION_ORDER
    collocation_scheme: CollocationScheme = DEFAULT_COLLOCATION_SCHEME

    def __post_init__(self) -> None:
        validate_interpolation_order(self.interpolation_order)
        validate_collocation_scheme(self.collocation_scheme)

    @classmethod
    def from_dict(cls, options: Mapping[str, Any] | None = None) -> CollocationOptions:
        """Build options from a plain mapping, rejecting unrecognized keys.

        Raises:
            ConfigurationError: If ``options`` contains an unknown key.
        """
        options = dict(options or {})
        validate_known_keys(
            options.keys(), (f.name for f in fields(cls)), "collocation options"
        )
        resolved = cls(**options)
        logger.debug("Collocation options resolved: %s", resolved)
        return resolved

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
