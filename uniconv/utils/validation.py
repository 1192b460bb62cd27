"""
A single validator abstraction reused for every cached entity type.

Structural checks come from pydantic; anything that depends on context
(such as "how old is too old") is expressed as an extra rule.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")

Rule = Callable[[T], str | None]


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """Tagged outcome of a validation: either a value or a list of errors."""

    value: T | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors and self.value is not None


def format_pydantic_errors(error: PydanticValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        path = ".".join(str(p) for p in item["loc"]) or "root"
        messages.append(f"{path}: {item['msg']}")
    return messages


class Validator(Generic[T]):
    """Validates raw data (dicts or model instances) into a typed value."""

    def __init__(self, model: type[T], rules: Sequence[Rule] = ()):
        self.model = model
        self.rules = list(rules)
        self._adapter = TypeAdapter(model)

    def validate(self, data: Any) -> ValidationResult[T]:
        if isinstance(data, BaseModel):
            # Re-validate model instances from scratch so mutated fields are caught.
            data = data.model_dump(by_alias=True)
        try:
            value = self._adapter.validate_python(data)
        except PydanticValidationError as e:
            return ValidationResult(errors=format_pydantic_errors(e))

        errors = [message for rule in self.rules if (message := rule(value))]
        if errors:
            return ValidationResult(errors=errors)
        return ValidationResult(value=value)
