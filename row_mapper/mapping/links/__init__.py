"""Links - stateful wrappers around one relation of a mapper."""

from __future__ import annotations

from row_mapper.mapping.links.base import AbstractLink, MapperLink
from row_mapper.mapping.links.belongs2one import Belongs2One
from row_mapper.mapping.links.config import (
    Belongs2OneConfig,
    LinkConfig,
    Many2ManyConfig,
    One2ManyConfig,
    One2OneConfig,
    belongs2one,
    belongs2one_simple,
    many2many,
    one2many,
    one2many_simple,
    one2one,
    one2one_simple,
    validate_link_config,
)
from row_mapper.mapping.links.factory import LinkFactory
from row_mapper.mapping.links.many2many import Many2Many
from row_mapper.mapping.links.one2many import One2Many, PendingKey
from row_mapper.mapping.links.one2one import One2One

__all__ = [
    "AbstractLink",
    "MapperLink",
    "Belongs2One",
    "One2One",
    "One2Many",
    "PendingKey",
    "Many2Many",
    "LinkFactory",
    # Configs
    "LinkConfig",
    "Belongs2OneConfig",
    "One2OneConfig",
    "One2ManyConfig",
    "Many2ManyConfig",
    "validate_link_config",
    "belongs2one",
    "belongs2one_simple",
    "one2one",
    "one2one_simple",
    "one2many",
    "one2many_simple",
    "many2many",
]
