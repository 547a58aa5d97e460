"""Link factory.

Builds link instances from declarative configuration and binds them to
their owner mapper.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from row_mapper.core.enums import LinkType
from row_mapper.mapping.links.base import AbstractLink
from row_mapper.mapping.links.belongs2one import Belongs2One
from row_mapper.mapping.links.config import (
    Belongs2OneConfig,
    Many2ManyConfig,
    One2ManyConfig,
    One2OneConfig,
    validate_link_config,
)
from row_mapper.mapping.links.many2many import Many2Many
from row_mapper.mapping.links.one2many import One2Many
from row_mapper.mapping.links.one2one import One2One

if TYPE_CHECKING:
    from row_mapper.mapping.mapper import AbstractMapper
    from row_mapper.mapping.session import Session


def _build_one2one(config: One2OneConfig) -> One2One:
    return One2One(
        config.mapper_class,
        config.retrieve_relation,
        attach_relation=config.attach_relation,
        mapper_params=config.mapper_params,
        process_deletion=config.process_deletion,
        delete_on_unset=config.delete_on_unset,
    )


def _build_one2many(config: One2ManyConfig) -> One2Many:
    return One2Many(
        config.mapper_class,
        config.relation,
        mapper_params=config.mapper_params,
        process_deletion=config.process_deletion,
        position_attribute=config.position_attribute,
    )


def _build_belongs2one(config: Belongs2OneConfig) -> Belongs2One:
    return Belongs2One(
        config.mapper_class,
        config.relation,
        mapper_params=config.mapper_params,
        process_deletion=config.process_deletion,
    )


def _build_many2many(config: Many2ManyConfig) -> Many2Many:
    return Many2Many(
        config.relation,
        position_attribute=config.position_attribute,
        process_deletion=config.process_deletion,
    )


_BUILDERS: dict[LinkType, Callable[[Any], AbstractLink]] = {
    LinkType.ONE2ONE: _build_one2one,
    LinkType.ONE2MANY: _build_one2many,
    LinkType.BELONGS2ONE: _build_belongs2one,
    LinkType.MANY2MANY: _build_many2many,
}


class LinkFactory:
    """Creates the links of one owner mapper."""

    def __init__(self, owner: AbstractMapper, session: Session) -> None:
        self.owner = owner
        self.session = session

    def create(self, config: Mapping[str, Any] | AbstractLink | Any) -> AbstractLink:
        """Create a link from its configuration.

        Accepts a declarative mapping, a typed link config, or an already
        constructed link, which serves as a template: a copy with empty
        state is bound to the owner so that no two mappers share one.
        """
        if isinstance(config, AbstractLink):
            link = copy.copy(config)
            link.reset()
            return link.bind(self.owner, self.session)

        typed = validate_link_config(config)
        link = _BUILDERS[LinkType(typed.type)](typed)  # type: ignore[attr-defined]
        return link.bind(self.owner, self.session)
