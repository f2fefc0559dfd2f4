"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Field descriptors for ``Serializer``.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldSpec(BaseModel):
    """
    How one source field maps onto one target field.

    Attributes:
        target: Target field name.
        serialize: Builds the target value from the whole source record.
        deserialize: Builds the source value from the whole target record.
        default: Source value elided from serialized output.
        equality: Optional ``(value, default) -> bool`` replacing ``==``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    target: str = Field(min_length=1)
    serialize: Callable[[Mapping[str, Any]], Any]
    deserialize: Callable[[Mapping[str, Any]], Any]
    default: Any = None
    equality: Callable[[Any, Any], bool] | None = None

    def is_default(self, value: Any) -> bool:
        if self.equality is not None:
            return bool(self.equality(value, self.default))
        return value == self.default
