"""Compile declarative tool input schemas into runtime argument validators."""

from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictStr, create_model
from pydantic import ValidationError as PydanticValidationError

from toolbridge.infra.errors import FieldIssue, ValidationError
from toolbridge.models.tool import InputSchema, PropertyKind

_FIELD_TYPES: Dict[PropertyKind, Any] = {
    PropertyKind.STRING: StrictStr,
    PropertyKind.NUMBER: StrictFloat,  # strict float still accepts ints
    PropertyKind.BOOLEAN: StrictBool,
    PropertyKind.UNKNOWN: Any,
}


class CompiledValidator:
    """
    Acceptor/normalizer for one tool's argument bag.

    Declared properties are validated against their declared type. Closed
    schemas drop undeclared keys; open schemas pass them through unchanged.
    """

    def __init__(self, schema: InputSchema, model: Type[BaseModel], aliases: Dict[str, str]):
        self.schema = schema
        self._model = model
        self._aliases = aliases  # internal field name -> property name
        self._numbers = {
            name for name, prop in schema.properties.items() if prop.kind == PropertyKind.NUMBER
        }

    @property
    def fields(self) -> List[str]:
        return list(self._aliases.values())

    @property
    def required(self) -> List[str]:
        return [name for name in self.fields if name in set(self.schema.required)]

    @property
    def closed(self) -> bool:
        return self.schema.is_closed

    def expected_type(self, property_name: str) -> str:
        prop = self.schema.properties.get(property_name)
        if prop is None:
            return "any"
        if prop.kind == PropertyKind.UNKNOWN:
            return prop.declared_type or "any"
        return prop.kind.value

    def validate(self, raw_args: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Validate and normalize an argument bag.

        Args:
            raw_args: Arguments as produced by the caller (None counts as empty)

        Returns:
            Normalized argument dict

        Raises:
            ValidationError: Naming every offending field and its expected type
        """
        if raw_args is None:
            raw_args = {}
        if not isinstance(raw_args, Mapping):
            raise ValidationError([
                FieldIssue(field="$", expected="object", message=f"got {type(raw_args).__name__}")
            ])

        try:
            instance = self._model.model_validate(dict(raw_args))
        except PydanticValidationError as e:
            raise ValidationError(self._issues_from(e))

        normalized: Dict[str, Any] = {}
        for field_name, name in self._aliases.items():
            if field_name not in instance.model_fields_set:
                continue
            value = getattr(instance, field_name)
            if name in self._numbers and isinstance(value, int):
                value = float(value)
            normalized[name] = value
        if instance.model_extra:
            normalized.update(instance.model_extra)
        return normalized

    def json_schema(self) -> Dict[str, Any]:
        """JSON schema of the declared shape, for asking a model to fill it in."""
        properties: Dict[str, Any] = {}
        for name in self.fields:
            prop = self.schema.properties.get(name)
            entry: Dict[str, Any] = {}
            if prop is not None and prop.kind != PropertyKind.UNKNOWN:
                entry["type"] = prop.kind.value
            if prop is not None and prop.description:
                entry["description"] = prop.description
            properties[name] = entry
        return {
            "type": "object",
            "properties": properties,
            "required": self.required,
            "additionalProperties": not self.closed,
        }

    def _issues_from(self, error: PydanticValidationError) -> List[FieldIssue]:
        issues: Dict[str, FieldIssue] = {}
        for item in error.errors():
            loc = item.get("loc") or ()
            field = str(loc[0]) if loc else "$"
            if field in issues:
                continue
            issues[field] = FieldIssue(
                field=field,
                expected=self.expected_type(field),
                message=item.get("msg", "invalid value"),
            )
        return list(issues.values())

    def __repr__(self) -> str:
        return f"CompiledValidator(fields={self.fields!r}, closed={self.closed})"


class SchemaCompiler:
    """Builds CompiledValidators. Stateless; safe to share."""

    def compile(self, input_schema: InputSchema) -> CompiledValidator:
        if isinstance(input_schema, dict):
            input_schema = InputSchema.from_raw(input_schema)

        required = set(input_schema.required)
        # Required names without a declaration are required, any type
        names = list(input_schema.properties) + [
            name for name in input_schema.required if name not in input_schema.properties
        ]

        definitions: Dict[str, Tuple[Any, Any]] = {}
        aliases: Dict[str, str] = {}
        for index, name in enumerate(names):
            prop = input_schema.properties.get(name)
            kind = prop.kind if prop is not None else PropertyKind.UNKNOWN
            field_type = _FIELD_TYPES[kind]
            # Property names are arbitrary strings; keep them out of Python identifiers
            internal = f"field_{index}"
            if name in required:
                definitions[internal] = (field_type, Field(..., alias=name))
            else:
                definitions[internal] = (field_type, Field(None, alias=name))
            aliases[internal] = name

        model = create_model(
            "ToolArguments",
            __config__=ConfigDict(extra="ignore" if input_schema.is_closed else "allow"),
            **definitions,
        )
        return CompiledValidator(input_schema, model, aliases)


schema_compiler = SchemaCompiler()


def compile_schema(input_schema: InputSchema) -> CompiledValidator:
    """Compile an input schema into a validator."""
    return schema_compiler.compile(input_schema)
