import jsonschema

from toolchat.tools.base import Tool, normalize_schema


def _format_error(error: jsonschema.ValidationError) -> str:
    path = ".".join(str(p) for p in error.absolute_path)
    return f"{path}: {error.message}" if path else error.message


class ToolValidator:
    """Checks model-supplied arguments against a tool's JSON schema."""

    @staticmethod
    def validate(tool: Tool, arguments: dict) -> tuple[bool, str | None]:
        """
        Returns ``(True, None)`` when *arguments* satisfy the schema, else
        ``(False, message)`` listing every violation, shallowest first.
        """
        schema = normalize_schema(tool.parameters)
        validator_cls = jsonschema.validators.validator_for(schema)
        errors = sorted(
            validator_cls(schema).iter_errors(arguments),
            key=lambda e: (len(e.absolute_path), e.message),
        )
        if not errors:
            return True, None
        return False, "; ".join(_format_error(e) for e in errors)
