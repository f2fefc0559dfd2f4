"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bidirectional field-mapping serializer with default elision.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..errors import InvalidConfigurationError
from .fields import FieldSpec

logger = logging.getLogger("lilypad.serializer")


class Serializer:
    """
    Map records between a source shape and a compact target shape.

    The source-to-target field mapping must be one-to-one; it is checked at
    construction::

        serializer = Serializer(
            {
                "count": FieldSpec(target="c", serialize=lambda r: r["count"],
                                   deserialize=lambda r: r["c"], default=0),
                "label": FieldSpec(target="l", serialize=lambda r: r["label"],
                                   deserialize=lambda r: r["l"], default=""),
            }
        )
        serializer.serialize([{"count": 3, "label": ""}])  # [{"c": 3}]
        serializer.deserialize([{"c": 3}])  # [{"count": 3, "label": ""}]
    """

    def __init__(
        self,
        fields: Mapping[str, FieldSpec],
        *,
        target_fields: Iterable[str] | None = None,
    ) -> None:
        self._fields = dict(fields)
        self._inverse = self._validate_bijection(self._fields, target_fields)

    @staticmethod
    def _validate_bijection(
        fields: Mapping[str, FieldSpec],
        target_fields: Iterable[str] | None,
    ) -> dict[str, str]:
        inverse: dict[str, str] = {}
        for source, spec in fields.items():
            previous = inverse.get(spec.target)
            if previous is not None:
                raise InvalidConfigurationError(
                    f"Fields '{previous}' and '{source}' both map to target '{spec.target}'"
                )
            inverse[spec.target] = source

        if target_fields is not None:
            expected = set(target_fields)
            mapped = set(inverse)
            if expected != mapped:
                missing = sorted(expected - mapped)
                unknown = sorted(mapped - expected)
                raise InvalidConfigurationError(
                    f"Key mapping is not bijective: unmapped targets {missing}, "
                    f"unknown targets {unknown}"
                )
        return inverse

    @property
    def key_mapping(self) -> dict[str, str]:
        return {source: spec.target for source, spec in self._fields.items()}

    @property
    def inverse_mapping(self) -> dict[str, str]:
        return dict(self._inverse)

    def serialize(self, records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """
        Pack records, omitting default-valued fields and None results.

        A field absent from the record is read as None before the default
        check, so computed fields still reach their ``serialize`` callable.
        """
        out: list[dict[str, Any]] = []
        for record in records:
            packed: dict[str, Any] = {}
            for source, spec in self._fields.items():
                if spec.is_default(record.get(source)):
                    continue
                serialized = spec.serialize(record)
                if serialized is None:
                    continue
                packed[spec.target] = serialized
            out.append(packed)
        return out

    def deserialize(self, records: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Unpack records, filling absent fields with their defaults."""
        out: list[dict[str, Any]] = []
        for record in records:
            unpacked: dict[str, Any] = {}
            for source, spec in self._fields.items():
                if spec.target in record:
                    unpacked[source] = spec.deserialize(record)
                else:
                    unpacked[source] = spec.default
            out.append(unpacked)
        logger.debug("Deserialized %d records", len(out))
        return out
