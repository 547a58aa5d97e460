"""Declarative link configuration.

Links are declared in ``links_config()`` as plain mappings carrying a
``type`` tag. They are validated into one typed model per link variant.
The shortcut helpers build such mappings.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from row_mapper.core.enums import LinkType
from row_mapper.core.exceptions import LinkConfigurationError


class _LinkConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class Belongs2OneConfig(_LinkConfig):
    type: Literal["belongs2one"] = "belongs2one"
    mapper_class: Callable[..., Any]
    relation: str
    mapper_params: dict[str, Any] = {}
    process_deletion: bool = False


class One2OneConfig(_LinkConfig):
    type: Literal["one2one"] = "one2one"
    mapper_class: Callable[..., Any]
    retrieve_relation: str
    attach_relation: str | None = None
    mapper_params: dict[str, Any] = {}
    process_deletion: bool = False
    delete_on_unset: bool = True


class One2ManyConfig(_LinkConfig):
    type: Literal["one2many"] = "one2many"
    mapper_class: Callable[..., Any]
    relation: str
    mapper_params: dict[str, Any] = {}
    process_deletion: bool = True
    position_attribute: str | None = None


class Many2ManyConfig(_LinkConfig):
    type: Literal["many2many"] = "many2many"
    relation: str
    position_attribute: str | None = None
    process_deletion: bool = False


LinkConfig = Annotated[
    Belongs2OneConfig | One2OneConfig | One2ManyConfig | Many2ManyConfig,
    Field(discriminator="type"),
]

_LINK_CONFIG_ADAPTER: TypeAdapter[Any] = TypeAdapter(LinkConfig)


def validate_link_config(config: Mapping[str, Any] | _LinkConfig) -> _LinkConfig:
    """Turn a declarative mapping into its typed link configuration."""
    if isinstance(config, _LinkConfig):
        return config
    if not isinstance(config, Mapping) or "type" not in config:
        raise LinkConfigurationError("Configuration of a mapper link must have a 'type'")

    data = dict(config)
    try:
        data["type"] = LinkType(data["type"]).value
    except ValueError:
        raise LinkConfigurationError(f"Unknown link type: {config['type']!r}") from None

    try:
        return _LINK_CONFIG_ADAPTER.validate_python(data)  # type: ignore[no-any-return]
    except ValidationError as e:
        raise LinkConfigurationError(f"Invalid {data['type']} link configuration: {e}") from e


# --- Shortcuts ---


def one2one(mapper_class: Callable[..., Any], relation: str, **params: Any) -> dict[str, Any]:
    """Config of a One2One link.

    ``relation`` is the retrieve relation, or the attach relation when
    ``retrieve_relation`` is given explicitly.
    """
    relation_param = "attach_relation" if "retrieve_relation" in params else "retrieve_relation"
    return {
        "type": LinkType.ONE2ONE.value,
        "mapper_class": mapper_class,
        relation_param: relation,
        **params,
    }


def one2many(mapper_class: Callable[..., Any], relation: str, **params: Any) -> dict[str, Any]:
    """Config of a One2Many link."""
    return {
        "type": LinkType.ONE2MANY.value,
        "mapper_class": mapper_class,
        "relation": relation,
        **params,
    }


def belongs2one(mapper_class: Callable[..., Any], relation: str, **params: Any) -> dict[str, Any]:
    """Config of a Belongs2One link."""
    return {
        "type": LinkType.BELONGS2ONE.value,
        "mapper_class": mapper_class,
        "relation": relation,
        **params,
    }


def many2many(relation: str, **params: Any) -> dict[str, Any]:
    """Config of a Many2Many link."""
    return {"type": LinkType.MANY2MANY.value, "relation": relation, **params}


def _simple_params(model_name: str, attributes: Any, params: dict[str, Any]) -> dict[str, Any]:
    mapper_params = {
        **params.pop("mapper_params", {}),
        "model_name": model_name,
        "attributes": attributes,
    }
    return {**params, "mapper_params": mapper_params}


def one2one_simple(
    relation: str, model_name: str, attributes: Any, **params: Any
) -> dict[str, Any]:
    """Config of a One2One link wrapping the linked record in a SimpleMapper."""
    from row_mapper.mapping.simple import SimpleMapper

    return one2one(SimpleMapper, relation, **_simple_params(model_name, attributes, params))


def one2many_simple(
    relation: str, model_name: str, attributes: Any, **params: Any
) -> dict[str, Any]:
    """Config of a One2Many link wrapping each linked record in a SimpleMapper."""
    from row_mapper.mapping.simple import SimpleMapper

    return one2many(SimpleMapper, relation, **_simple_params(model_name, attributes, params))


def belongs2one_simple(
    relation: str, model_name: str, attributes: Any, **params: Any
) -> dict[str, Any]:
    """Config of a Belongs2One link wrapping the linked record in a SimpleMapper."""
    from row_mapper.mapping.simple import SimpleMapper

    return belongs2one(SimpleMapper, relation, **_simple_params(model_name, attributes, params))
