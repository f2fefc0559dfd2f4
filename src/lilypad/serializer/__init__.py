"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: serializer/__init__.py.
"""

from .fields import FieldSpec
from .serializer import Serializer

__all__ = ["FieldSpec", "Serializer"]
