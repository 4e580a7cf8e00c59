"""
Request-body validation on pydantic.

Every JSON body the API accepts is a ``RequestForm`` model.  Each field is
an ``Annotated`` chain of ``AfterValidator`` rules built by the helpers
below; pydantic runs a field's chain in order and stops at its first
failing rule, but still checks the remaining fields, so the client gets
one ``{field, message}`` per failing field.  Fields outside the model are
rejected up front by ``reject_unexpected_fields``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar, NoReturn

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError
from pydantic_core import PydanticCustomError

from covidwatch.core.exceptions import ClientInputError

_FORMS: dict[str, type[RequestForm]] = {}


def _fail(message: str) -> NoReturn:
    raise PydanticCustomError("rule_failed", message)


# ── Rules ───────────────────────────────────────────────────────────
def exists(message: str = "Invalid value", allow_falsy: bool = False) -> AfterValidator:
    """Present and, unless ``allow_falsy``, not ``""`` / ``false`` / ``0``.

    Absent fields arrive as ``None`` (the model default).
    """

    def _exists(value: Any) -> Any:
        if value is None:
            _fail(message)
        if not allow_falsy and value in ("", False, 0):
            _fail(message)
        return value

    return AfterValidator(_exists)


def is_string(message: str = "Invalid value") -> AfterValidator:
    def _is_string(value: Any) -> Any:
        if not isinstance(value, str):
            _fail(message)
        return value

    return AfterValidator(_is_string)


def trimmed() -> AfterValidator:
    """Strip surrounding whitespace and NUL bytes."""
    return AfterValidator(lambda value: value.strip().replace("\0", ""))


def length(min: int = 0, max: int | None = None, message: str = "Invalid value") -> AfterValidator:
    def _length(value: Any) -> Any:
        if len(value) < min or (max is not None and len(value) > max):
            _fail(message)
        return value

    return AfterValidator(_length)


def max_bytes(limit: int, message: str = "Invalid value") -> AfterValidator:
    """UTF-8 encoded size cap."""

    def _max_bytes(value: Any) -> Any:
        if len(value.encode("utf-8")) > limit:
            _fail(message)
        return value

    return AfterValidator(_max_bytes)


def matches(pattern: str, message: str = "Invalid value") -> AfterValidator:
    """The whole value must match ``pattern`` (ASCII classes only)."""
    compiled = re.compile(pattern, re.ASCII)

    def _matches(value: Any) -> Any:
        if compiled.fullmatch(value) is None:
            _fail(message)
        return value

    return AfterValidator(_matches)


def contains(pattern: str, message: str = "Invalid value") -> AfterValidator:
    """Some part of the value must match ``pattern``."""
    compiled = re.compile(pattern, re.ASCII)

    def _contains(value: Any) -> Any:
        if compiled.search(value) is None:
            _fail(message)
        return value

    return AfterValidator(_contains)


def one_of(values: Iterable[str], message: str = "Invalid value") -> AfterValidator:
    allowed = frozenset(values)

    def _one_of(value: Any) -> Any:
        if value not in allowed:
            _fail(message)
        return value

    return AfterValidator(_one_of)


def is_email(message: str = "Invalid value") -> AfterValidator:
    """Syntax check only (no DNS lookup); the address is lower-cased."""

    def _is_email(value: Any) -> str:
        try:
            result = validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            _fail(message)
        return result.normalized.lower()

    return AfterValidator(_is_email)


def is_float(
    min: float | None = None, max: float | None = None, message: str = "Invalid value"
) -> AfterValidator:
    """Number or numeric string within ``[min, max]``, converted to float."""

    def _is_float(value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            _fail(message)
        try:
            number = float(value)
        except ValueError:
            _fail(message)
        if not math.isfinite(number):
            _fail(message)
        if (min is not None and number < min) or (max is not None and number > max):
            _fail(message)
        return number

    return AfterValidator(_is_float)


def check(func: Callable[[Any], Any]) -> AfterValidator:
    """Wrap a callable that returns the cleaned value or raises ``ValueError``.

    The ``ValueError`` text becomes the error message.
    """

    def _check(value: Any) -> Any:
        try:
            return func(value)
        except ValueError as exc:
            _fail(str(exc) or "Invalid value")

    return AfterValidator(_check)


# ── Forms ───────────────────────────────────────────────────────────
class RequestForm(BaseModel):
    """Base for request bodies; subclasses with a ``form_name`` are registered."""

    model_config = ConfigDict(validate_default=True, frozen=True)

    form_name: ClassVar[str | None] = None

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        name = cls.__dict__.get("form_name")
        if name:
            _FORMS[name] = cls

    @classmethod
    def allowed_fields(cls) -> frozenset[str]:
        return frozenset(info.alias or name for name, info in cls.model_fields.items())


def get_form(name: str) -> type[RequestForm]:
    try:
        return _FORMS[name]
    except KeyError:
        raise LookupError(f"No request form named {name!r}") from None


def reject_unexpected_fields(form: type[RequestForm], body: Mapping[str, Any]) -> None:
    allowed = form.allowed_fields()
    unexpected = [field for field in body if field not in allowed]
    if unexpected:
        raise ClientInputError(
            "Unexpected fields in request: " + ", ".join(sorted(unexpected))
        )


def parse_form(form: type[RequestForm], body: Mapping[str, Any]) -> RequestForm:
    try:
        return form.model_validate(body)
    except ValidationError as exc:
        errors = [
            {"field": str(error["loc"][0]) if error["loc"] else "body", "message": error["msg"]}
            for error in exc.errors()
        ]
        raise ClientInputError("Validation failed", errors=errors) from None


def validate(form_name: str, body: Mapping[str, Any]) -> RequestForm:
    """Validate ``body`` against the named form and return the parsed model."""
    return parse_form(get_form(form_name), body)
