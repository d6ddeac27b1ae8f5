"""
Versioned persistence record for assembled collocation step relations.

A record stores the degree, the scheme and CasADi's own serialization of each
step relation. The coefficients are baked into the relations, so restoring a
record never recomputes them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import DataIntegrityError, SerializationVersionMismatchError
from .input_validation import validate_collocation_scheme, validate_interpolation_order
from .utils.constants import (
    SERIALIZATION_FORMAT,
    SERIALIZATION_VERSION,
    SUPPORTED_SERIALIZATION_VERSIONS,
)


logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("format", "version", "degree", "scheme", "forward", "has_backward")


@dataclass(frozen=True)
class CollocationRecord:
    degree: int
    scheme: str
    forward: str
    backward: str | None = None
    version: int = SERIALIZATION_VERSION

    @property
    def has_backward(self) -> bool:
        return self.backward is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "format": SERIALIZATION_FORMAT,
            "version": self.version,
            "degree": self.degree,
            "scheme": self.scheme,
            "forward": self.forward,
            "has_backward": self.has_backward,
            "backward": self.backward,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CollocationRecord:
        """Validate a decoded record.

        Raises:
            SerializationVersionMismatchError: On a foreign format marker or an
                unsupported version tag. Checked before anything else.
            DataIntegrityError: If fields are missing or inconsistent.
        """
        if not isinstance(payload, dict):
            raise DataIntegrityError(
                f"Record must be a JSON object, got {type(payload).__name__}", "record load"
            )

        record_format = payload.get("format")
        if record_format != SERIALIZATION_FORMAT:
            raise SerializationVersionMismatchError(
                f"Unsupported record format {record_format!r}, expected {SERIALIZATION_FORMAT!r}",
                "record load",
            )
        version = payload.get("version")
        if isinstance(version, bool) or version not in SUPPORTED_SERIALIZATION_VERSIONS:
            raise SerializationVersionMismatchError(
                f"Unsupported record version {version!r}, supported: "
                f"{list(SUPPORTED_SERIALIZATION_VERSIONS)}",
                "record load",
            )

        missing = [name for name in _REQUIRED_FIELDS if name not in payload]
        if missing:
            raise DataIntegrityError(f"Record is missing fields: {missing}", "record load")

        validate_interpolation_order(payload["degree"])
        validate_collocation_scheme(payload["scheme"])

        has_backward = payload["has_backward"]
        backward = payload.get("backward")
        if not isinstance(has_backward, bool) or has_backward != (backward is not None):
            raise DataIntegrityError(
                f"has_backward={has_backward!r} inconsistent with backward blob presence",
                "record load",
            )
        if not isinstance(payload["forward"], str) or (
            backward is not None and not isinstance(backward, str)
        ):
            raise DataIntegrityError("Relation blobs must be strings", "record load")

        return cls(
            degree=int(payload["degree"]),
            scheme=payload["scheme"],
            forward=payload["forward"],
            backward=backward,
            version=version,
        )

    @classmethod
    def from_json(cls, text: str) -> CollocationRecord:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise DataIntegrityError(f"Record is not valid JSON: {e}", "record load") from e
        return cls.from_dict(payload)

    def save(self, path: str | Path) -> Path:
        target = Path(path)
        target.write_text(self.to_json(), encoding="utf-8")
        logger.info("Collocation record written to %s", target)
        return target

    @classmethod
    def load(cls, path: str | Path) -> CollocationRecord:
        source = Path(path)
        logger.info("Loading collocation record from %s", source)
        return cls.from_json(source.read_text(encoding="utf-8"))
