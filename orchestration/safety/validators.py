"""Parameter validation against each tool's JSON Schema"""
from typing import Dict, Any, List
from pydantic import BaseModel
from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError, ValidationError

from orchestration.models import ToolDescriptor, PREVIOUS_RESULT_KEY


class ValidationResult(BaseModel):
    """Result of validation"""
    is_valid: bool
    errors: List[str] = []
    fields: List[str] = []
    warnings: List[str] = []


class ExecutionValidator:
    """Validates tool parameters"""

    # Keys injected by the orchestrator, never part of a tool's schema
    reserved_keys = frozenset({PREVIOUS_RESULT_KEY})

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Reject unexpected parameters
        self._validators: Dict[str, Draft7Validator] = {}

    def check_schema(self, descriptor: ToolDescriptor):
        """
        Raise ``jsonschema.SchemaError`` if the descriptor's schema is malformed
        """
        Draft7Validator.check_schema(descriptor.parameter_schema)

    def _validator_for(self, descriptor: ToolDescriptor) -> Draft7Validator:
        validator = self._validators.get(descriptor.id)
        if validator is None:
            validator = Draft7Validator(descriptor.parameter_schema)
            self._validators[descriptor.id] = validator
        return validator

    def validate_params(
        self,
        descriptor: ToolDescriptor,
        params: Dict[str, Any],
    ) -> ValidationResult:
        """
        Validate tool parameters against schema

        Args:
            descriptor: Tool to validate for
            params: Parameters to validate

        Returns:
            ValidationResult listing every offending field
        """
        if not isinstance(params, dict):
            return ValidationResult(
                is_valid=False,
                errors=[f"Parameters must be an object, got {type(params).__name__}"],
            )

        bad_keys = [k for k in params if not isinstance(k, str)]
        if bad_keys:
            return ValidationResult(
                is_valid=False,
                errors=[f"Parameter names must be strings, got {sorted(repr(k) for k in bad_keys)}"],
                fields=[str(k) for k in bad_keys],
            )

        candidate = {k: v for k, v in params.items() if k not in self.reserved_keys}
        errors: List[str] = []
        fields: List[str] = []
        warnings: List[str] = []

        try:
            validator = self._validator_for(descriptor)
            for error in sorted(validator.iter_errors(candidate), key=lambda e: [str(p) for p in e.path]):
                names = _field_names(error, candidate)
                errors.append(error.message)
                fields.extend(name for name in names if name not in fields)
        except SchemaError as e:
            errors.append(f"Invalid schema for tool {descriptor.id}: {e.message}")

        properties = descriptor.parameter_schema.get("properties")
        if properties is not None:
            unexpected = sorted(set(candidate) - set(properties), key=str)
            if unexpected:
                message = f"Unexpected parameters: {unexpected}"
                if self.strict_mode:
                    errors.append(message)
                    fields.extend(f for f in unexpected if f not in fields)
                else:
                    warnings.append(message)

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            fields=fields,
            warnings=warnings,
        )


def _field_names(error: ValidationError, instance: Dict[str, Any]) -> List[str]:
    path = [str(p) for p in error.path]
    if error.validator == "required":
        # Reported on the parent object, not on the missing field
        parent = instance
        for part in error.path:
            parent = parent[part]
        prefix = ".".join(path + [""]) if path else ""
        return [f"{prefix}{name}" for name in error.validator_value if name not in parent]
    if path:
        return [".".join(path)]
    return []
