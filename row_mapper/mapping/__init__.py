"""Mapping layer - flat attribute surface over linked records."""

from __future__ import annotations

from row_mapper.mapping.mapper import AbstractMapper
from row_mapper.mapping.session import Session
from row_mapper.mapping.simple import ScenarioMixin, SimpleMapper

__all__ = [
    "AbstractMapper",
    "SimpleMapper",
    "ScenarioMixin",
    "Session",
]
