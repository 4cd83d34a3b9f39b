"""
Schema Introspector - Reflect schema-description values into JSON shapes.

Operation schemas map field names to values describing a data shape. Two
representations of the same concepts reach this module:

- Annotation representation: pydantic ``FieldInfo`` objects (typically from
  ``BaseModel.model_fields``) and typing annotations (``Optional[int]``,
  ``Literal[...]``, ``Annotated[str, Field(max_length=5)]``, models, ...).
- Core representation: pydantic-core ``CoreSchema`` dicts
  (``{"type": "str", "min_length": 1}``, ``{"type": "nullable", ...}``).

Each value is first classified into a canonical ``SchemaKind`` and a
``SchemaView`` that exposes the kind's parts uniformly; the descriptor is then
built by a single dispatch on the kind. Core ``definition-ref`` schemas are
resolved against the enclosing ``definitions``; a model reached again while it
is still being described becomes a bare ``{"type": "object"}``. Nothing is
validated or executed, apart from invoking default factories, and no input
raises.

Usage:
    from gitlab_mcp.registry.schema_introspector import introspect

    introspect(IssueArgs.model_fields["state"])
    # {"type": "string", "enum": ["opened", "closed", "all"], "optional": True, ...}
"""

import collections.abc
import decimal
import logging
import re
import types
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Literal,
    Mapping,
    NotRequired,
    Optional,
    Required,
    Sequence,
    Union,
    get_args,
    get_origin,
)

from pydantic import BaseModel
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined, to_jsonable_python

logger = logging.getLogger(__name__)

# Backstop for nesting that reference tracking does not cut short
MAX_DEPTH = 32

_UNION_ORIGINS = (Union, types.UnionType)
_ARRAY_ORIGINS = (
    list,
    set,
    frozenset,
    tuple,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_LIBRARY_PREFIX = re.compile(r"^pydantic[-_]?", re.IGNORECASE)


# ============================================================================
# Canonical Kinds
# ============================================================================

class SchemaKind(str, Enum):
    """Canonical schema kinds, independent of representation."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    OPTIONAL = "optional"
    DEFAULT = "default"
    ENUM = "enum"
    UNION = "union"
    NULLABLE = "nullable"
    OTHER = "other"


@dataclass
class SchemaView:
    """
    Uniform view over one schema value after classification.

    Attributes:
        kind: Canonical kind
        name: Raw kind name (used for the fallback type)
        description: Free-text description carried by the schema
        inner: Wrapped schema (optional, nullable, default)
        items: Item schema (array)
        shape: Field mapping, or a zero-argument callable returning it (object)
        options: Member schemas (union)
        values: Literal values (enum)
        default: Default value (default)
        default_factory: Default value provider (default)
        constraints: min_length/max_length/ge/gt/le/lt found on the schema
        integer: Whether a number is constrained to integers
        ref: Identity of a referencable schema (model class or core ref)
        definitions: Core definitions introduced at this schema, by ref
    """
    kind: SchemaKind
    name: str = "unknown"
    description: Optional[str] = None
    inner: Any = None
    items: Any = None
    shape: Any = None
    options: Sequence[Any] = ()
    values: Sequence[Any] = ()
    default: Any = PydanticUndefined
    default_factory: Optional[Callable[[], Any]] = None
    constraints: Dict[str, Any] = field(default_factory=dict)
    integer: bool = False
    ref: Any = None
    definitions: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Classification
# ============================================================================

def classify(value: Any, definitions: Optional[Mapping[str, Any]] = None) -> SchemaView:
    """
    Classify a schema-description value into a canonical view.

    Args:
        value: FieldInfo, type annotation or pydantic-core schema dict
        definitions: Core definitions in scope, used to resolve definition-refs

    Returns:
        SchemaView; kind OTHER named "unknown" when nothing is recognizable
    """
    if isinstance(value, FieldInfo):
        return _classify_field(value)
    if isinstance(value, Mapping) and isinstance(value.get("type"), str):
        return _classify_core(value, definitions or {})
    if isinstance(value, type) or get_origin(value) is not None:
        return _classify_annotation(value)
    return SchemaView(kind=SchemaKind.OTHER, name="unknown")


def _classify_field(info: FieldInfo) -> SchemaView:
    annotation = info.annotation if info.annotation is not None else Any

    if info.is_required():
        view = _classify_annotation(annotation, info.metadata)
    elif info.default_factory is None and info.default is None:
        # `x: Optional[T] = None` is an optional T, not a nullable one
        inner = _with_metadata(_strip_none(annotation), info.metadata)
        view = SchemaView(kind=SchemaKind.OPTIONAL, name="optional", inner=inner)
    else:
        view = SchemaView(
            kind=SchemaKind.DEFAULT,
            name="default",
            inner=_with_metadata(annotation, info.metadata),
            default=info.default,
            default_factory=info.default_factory,
        )

    if info.description:
        view.description = info.description
    return view


def _classify_annotation(
    annotation: Any,
    metadata: Sequence[Any] = (),
    description: Optional[str] = None
) -> SchemaView:
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        collected = list(metadata)
        for extra in annotation.__metadata__:
            if isinstance(extra, FieldInfo):
                collected.extend(extra.metadata)
                description = extra.description or description
            else:
                collected.append(extra)
        return _classify_annotation(annotation.__origin__, collected, description)

    view = _classify_annotation_kind(annotation, origin, args, metadata)
    if description:
        view.description = description
    return view


def _classify_annotation_kind(
    annotation: Any,
    origin: Any,
    args: Sequence[Any],
    metadata: Sequence[Any]
) -> SchemaView:
    constraints = _collect_constraints(metadata)

    if origin is NotRequired:
        return SchemaView(
            kind=SchemaKind.OPTIONAL,
            name="optional",
            inner=_with_metadata(args[0], metadata),
        )
    if origin is Required:
        return _classify_annotation(args[0], metadata)

    if origin in _UNION_ORIGINS:
        members = [arg for arg in args if arg is not type(None)]
        if len(members) < len(args):
            return SchemaView(
                kind=SchemaKind.NULLABLE,
                name="nullable",
                inner=_with_metadata(_union_of(members), metadata),
            )
        return SchemaView(kind=SchemaKind.UNION, name="union", options=list(args))

    if origin is Literal:
        return SchemaView(kind=SchemaKind.ENUM, name="literal", values=list(args))

    if origin in _ARRAY_ORIGINS:
        return SchemaView(
            kind=SchemaKind.ARRAY,
            name="array",
            items=args[0] if args else Any,
            constraints=constraints,
        )

    if origin in _MAPPING_ORIGINS:
        return SchemaView(kind=SchemaKind.OBJECT, name="dict", shape={})

    if not isinstance(annotation, type):
        name = getattr(annotation, "__name__", None) or type(annotation).__name__
        return SchemaView(kind=SchemaKind.OTHER, name=name)

    if annotation is bool:
        return SchemaView(kind=SchemaKind.BOOLEAN, name="bool")
    if issubclass(annotation, Enum):
        return SchemaView(
            kind=SchemaKind.ENUM,
            name="enum",
            values=[member.value for member in annotation],
        )
    if issubclass(annotation, str):
        return SchemaView(kind=SchemaKind.STRING, name="str", constraints=constraints)
    if issubclass(annotation, int):
        return SchemaView(kind=SchemaKind.NUMBER, name="int", constraints=constraints, integer=True)
    if issubclass(annotation, (float, decimal.Decimal)):
        return SchemaView(kind=SchemaKind.NUMBER, name="float", constraints=constraints)
    if issubclass(annotation, BaseModel):
        return SchemaView(
            kind=SchemaKind.OBJECT,
            name=annotation.__name__,
            shape=lambda: dict(annotation.model_fields),
            ref=annotation,
        )
    if typing.is_typeddict(annotation):
        return SchemaView(
            kind=SchemaKind.OBJECT,
            name=annotation.__name__,
            shape=lambda: _typed_dict_fields(annotation),
            ref=annotation,
        )
    if annotation in (list, set, frozenset, tuple):
        return SchemaView(kind=SchemaKind.ARRAY, name="array", items=Any, constraints=constraints)
    if annotation is dict:
        return SchemaView(kind=SchemaKind.OBJECT, name="dict", shape={})

    return SchemaView(kind=SchemaKind.OTHER, name=annotation.__name__)


def _classify_core(schema: Mapping[str, Any], definitions: Mapping[str, Any]) -> SchemaView:
    tag = schema["type"]
    description = _core_description(schema)

    if tag == "definitions":
        found = {
            item["ref"]: item
            for item in schema.get("definitions") or []
            if isinstance(item, Mapping) and item.get("ref")
        }
        view = classify(schema.get("schema"), {**definitions, **found})
        view.definitions = {**found, **view.definitions}
    elif tag == "definition-ref":
        target = definitions.get(schema.get("schema_ref"))
        if isinstance(target, Mapping) and target.get("type") != "definition-ref":
            view = classify(target, definitions)
        else:
            view = SchemaView(kind=SchemaKind.OTHER, name="unknown")
    elif tag in ("function-after", "function-before", "function-wrap",
                 "lax-or-strict", "json-or-python"):
        inner = schema.get("schema") or schema.get("lax_schema") or schema.get("python_schema")
        view = classify(inner, definitions)
    elif tag in ("typed-dict-field", "model-field", "dataclass-field"):
        if schema.get("required") is False:
            view = SchemaView(kind=SchemaKind.OPTIONAL, name="optional", inner=schema.get("schema"))
        else:
            view = classify(schema.get("schema"), definitions)
    else:
        view = _classify_core_kind(tag, schema)

    # A schema carrying a ref may be targeted by definition-refs nested inside it
    ref = schema.get("ref")
    if ref and view.ref is None:
        view.ref = ref
        view.definitions = {ref: schema, **view.definitions}

    if description:
        view.description = description
    return view


def _classify_core_kind(tag: str, schema: Mapping[str, Any]) -> SchemaView:
    constraints = {
        key: schema[key]
        for key in ("min_length", "max_length", "ge", "gt", "le", "lt")
        if schema.get(key) is not None
    }

    if tag == "str":
        return SchemaView(kind=SchemaKind.STRING, name=tag, constraints=constraints)
    if tag == "int":
        return SchemaView(kind=SchemaKind.NUMBER, name=tag, constraints=constraints, integer=True)
    if tag in ("float", "decimal"):
        return SchemaView(kind=SchemaKind.NUMBER, name=tag, constraints=constraints)
    if tag == "bool":
        return SchemaView(kind=SchemaKind.BOOLEAN, name=tag)
    if tag in ("list", "set", "frozenset", "generator"):
        return SchemaView(
            kind=SchemaKind.ARRAY,
            name=tag,
            items=schema.get("items_schema"),
            constraints=constraints,
        )
    if tag == "tuple":
        items = schema.get("items_schema") or [None]
        return SchemaView(kind=SchemaKind.ARRAY, name=tag, items=items[0], constraints=constraints)
    if tag in ("typed-dict", "model-fields"):
        return SchemaView(kind=SchemaKind.OBJECT, name=tag, shape=schema.get("fields") or {})
    if tag == "model":
        inner = schema.get("schema")
        return SchemaView(kind=SchemaKind.OBJECT, name=tag, shape=lambda: _core_fields(inner))
    if tag == "dict":
        return SchemaView(kind=SchemaKind.OBJECT, name=tag, shape={})
    if tag == "nullable":
        return SchemaView(kind=SchemaKind.NULLABLE, name=tag, inner=schema.get("schema"))
    if tag == "default":
        return SchemaView(
            kind=SchemaKind.DEFAULT,
            name=tag,
            inner=schema.get("schema"),
            default=schema.get("default", PydanticUndefined),
            default_factory=schema.get("default_factory"),
        )
    if tag == "literal":
        return SchemaView(kind=SchemaKind.ENUM, name=tag, values=list(schema.get("expected") or []))
    if tag == "enum":
        members = schema.get("members") or []
        return SchemaView(
            kind=SchemaKind.ENUM,
            name=tag,
            values=[getattr(member, "value", member) for member in members],
        )
    if tag == "union":
        choices = schema.get("choices") or []
        return SchemaView(
            kind=SchemaKind.UNION,
            name=tag,
            options=[choice[0] if isinstance(choice, tuple) else choice for choice in choices],
        )

    return SchemaView(kind=SchemaKind.OTHER, name=tag)


# ============================================================================
# Description
# ============================================================================

def introspect(value: Any) -> Dict[str, Any]:
    """
    Convert a schema-description value into a JSON-compatible descriptor.

    Args:
        value: FieldInfo, type annotation or pydantic-core schema dict

    Returns:
        Descriptor such as {"type": "string", "maxLength": 5}
    """
    return _describe(value, _Context())


@dataclass(frozen=True)
class _Context:
    """State carried down one branch of the description."""
    definitions: Mapping[str, Any] = field(default_factory=dict)
    visiting: frozenset = frozenset()
    depth: int = 0

    def descend(self, view: SchemaView) -> "_Context":
        definitions = self.definitions
        if view.definitions:
            definitions = {**definitions, **view.definitions}
        visiting = self.visiting
        if view.ref is not None:
            visiting = visiting | {view.ref}
        return _Context(definitions, visiting, self.depth + 1)


def _describe(value: Any, ctx: _Context) -> Dict[str, Any]:
    if ctx.depth > MAX_DEPTH:
        return {"type": "unknown"}

    view = classify(value, ctx.definitions)
    kind = view.kind
    nested = ctx.descend(view)

    if view.ref is not None and view.ref in ctx.visiting:
        # Recursive reference to a schema already being described
        result = {"type": "object" if kind is SchemaKind.OBJECT else "unknown"}
    elif kind is SchemaKind.STRING:
        result = {"type": "string"}
        _apply_constraints(result, view.constraints, min_length="minLength", max_length="maxLength")
    elif kind is SchemaKind.NUMBER:
        result = {"type": "integer" if view.integer else "number"}
        _apply_constraints(
            result,
            view.constraints,
            ge="minimum",
            le="maximum",
            gt="exclusiveMinimum",
            lt="exclusiveMaximum",
        )
    elif kind is SchemaKind.BOOLEAN:
        result = {"type": "boolean"}
    elif kind is SchemaKind.ARRAY:
        result = {"type": "array", "items": _describe(view.items, nested)}
        _apply_constraints(result, view.constraints, min_length="minItems", max_length="maxItems")
    elif kind is SchemaKind.OBJECT:
        result = {
            "type": "object",
            "properties": {
                key: _describe(item, nested)
                for key, item in _resolve_shape(view.shape).items()
            },
        }
    elif kind is SchemaKind.OPTIONAL:
        result = {**_describe(view.inner, nested), "optional": True}
    elif kind is SchemaKind.NULLABLE:
        result = {**_describe(view.inner, nested), "nullable": True}
    elif kind is SchemaKind.DEFAULT:
        result = _describe(view.inner, nested)
        default = _resolve_default(view)
        if default is not PydanticUndefined:
            result["default"] = default
    elif kind is SchemaKind.ENUM:
        result = {"type": "string", "enum": [_jsonable(item) for item in view.values]}
    elif kind is SchemaKind.UNION:
        result = {"oneOf": [_describe(option, nested) for option in view.options]}
    else:
        result = {"type": _fallback_type(view.name)}

    if view.description:
        result["description"] = view.description
    return result


# ============================================================================
# Internal Helpers
# ============================================================================

def _apply_constraints(result: Dict[str, Any], constraints: Mapping[str, Any], **keys: str) -> None:
    for source, target in keys.items():
        if constraints.get(source) is not None:
            result[target] = _jsonable(constraints[source])


def _collect_constraints(metadata: Sequence[Any]) -> Dict[str, Any]:
    constraints: Dict[str, Any] = {}
    for item in metadata:
        if isinstance(item, FieldInfo):
            constraints.update(_collect_constraints(item.metadata))
            continue
        for attr in ("min_length", "max_length", "ge", "gt", "le", "lt"):
            value = getattr(item, attr, None)
            if value is not None:
                constraints[attr] = value
    return constraints


def _with_metadata(annotation: Any, metadata: Sequence[Any]) -> Any:
    if not metadata:
        return annotation
    return Annotated[(annotation, *metadata)]


def _strip_none(annotation: Any) -> Any:
    if get_origin(annotation) in _UNION_ORIGINS:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if members:
            return _union_of(members)
    return annotation


def _union_of(members: List[Any]) -> Any:
    if len(members) == 1:
        return members[0]
    return Union[tuple(members)]


def _typed_dict_fields(typed_dict: Any) -> Dict[str, Any]:
    hints = typing.get_type_hints(typed_dict, include_extras=True)
    optional_keys = getattr(typed_dict, "__optional_keys__", frozenset())
    fields = {}
    for key, hint in hints.items():
        if get_origin(hint) in (Required, NotRequired):
            hint = get_args(hint)[0]
        fields[key] = NotRequired[hint] if key in optional_keys else hint
    return fields


def _core_fields(schema: Any) -> Mapping[str, Any]:
    for _ in range(MAX_DEPTH):
        if not isinstance(schema, Mapping):
            return {}
        if "fields" in schema:
            return schema["fields"] or {}
        schema = schema.get("schema")
    return {}


def _core_description(schema: Mapping[str, Any]) -> Optional[str]:
    metadata = schema.get("metadata")
    if not isinstance(metadata, Mapping):
        return None
    if metadata.get("description"):
        return metadata["description"]
    js_updates = metadata.get("pydantic_js_updates")
    if isinstance(js_updates, Mapping):
        return js_updates.get("description")
    return None


def _resolve_shape(shape: Any) -> Mapping[str, Any]:
    if callable(shape):
        try:
            shape = shape()
        except Exception as e:
            logger.debug(f"Could not resolve object shape: {e}")
            return {}
    return shape if isinstance(shape, Mapping) else {}


def _resolve_default(view: SchemaView) -> Any:
    if view.default_factory is not None:
        try:
            return _jsonable(view.default_factory())
        except Exception as e:
            logger.debug(f"Default factory failed during introspection: {e}")
            return PydanticUndefined
    if view.default is PydanticUndefined:
        return PydanticUndefined
    return _jsonable(view.default)


def _jsonable(value: Any) -> Any:
    return to_jsonable_python(value, fallback=str)


def _fallback_type(name: str) -> str:
    return _LIBRARY_PREFIX.sub("", name).lower() or "unknown"
