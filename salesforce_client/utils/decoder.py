"""Maps generic query records onto caller-defined pydantic models."""

from __future__ import annotations

import re
import types
import typing
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

import pydantic
from pydantic import BaseModel

from .http_client import SalesforceError

WIRE_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"
WIRE_DATETIME_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}[+-]\d{4}")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Coercer = Callable[[Any], Any]

_UNION_ORIGINS = (typing.Union, getattr(types, "UnionType", typing.Union))


class DecodeError(SalesforceError):
    """Raised when records cannot be mapped onto the requested shape."""


def coerce_timestamp(value: Any) -> Any:
    """Converts wire timestamps (formatted strings or epoch millis) to ``datetime``."""

    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if not WIRE_DATETIME_PATTERN.fullmatch(value):
            raise DecodeError(f"timestamp {value!r} is not in YYYY-MM-DDThh:mm:ss.sss+hhmm form")
        try:
            return datetime.strptime(value, WIRE_DATETIME_FORMAT)
        except ValueError as exc:
            raise DecodeError(f"cannot parse timestamp {value!r}") from exc
    if isinstance(value, (int, float)):
        try:
            return EPOCH + timedelta(milliseconds=int(value))
        except (OverflowError, ValueError) as exc:
            raise DecodeError(f"timestamp {value!r} out of range") from exc
    return value


DEFAULT_COERCERS: Dict[type, Coercer] = {datetime: coerce_timestamp}


class RecordDecoder:
    """Case-insensitive field mapper with a per-type coercion table."""

    def __init__(self, coercers: Optional[Mapping[type, Coercer]] = None) -> None:
        self._coercers: Dict[type, Coercer] = dict(DEFAULT_COERCERS if coercers is None else coercers)

    def register(self, target_type: type, coercer: Coercer) -> None:
        self._coercers[target_type] = coercer

    def decode(self, records: Any, target: Any) -> Any:
        """Decodes ``records`` into ``target``.

        ``target`` is either a model class, which expects one mapping, or
        ``List[Model]``, which expects a sequence of mappings.
        """

        item_type = _list_item_type(target)
        if item_type is not None:
            if not _is_model(item_type):
                raise DecodeError(f"unsupported list item type {item_type!r}")
            if isinstance(records, Mapping) or not isinstance(records, Sequence) or isinstance(records, str):
                raise DecodeError(f"expected a sequence of records for {target!r}")
            return [self._decode_model(record, item_type) for record in records]

        if _is_model(target):
            return self._decode_model(records, target)
        raise DecodeError(f"unsupported decode target {target!r}")

    def _decode_model(self, record: Any, model: Type[BaseModel]) -> BaseModel:
        if not isinstance(record, Mapping):
            raise DecodeError(f"expected a mapping for {model.__name__}, got {type(record).__name__}")

        by_lower = {str(key).lower(): key for key in record}
        mapped: Dict[str, Any] = {}
        for name, field in model.model_fields.items():
            key = by_lower.get((field.alias or name).lower())
            if key is None:
                key = by_lower.get(name.lower())
            if key is None:
                continue
            mapped[field.alias or name] = self._convert(record[key], field.annotation)
            by_lower.pop(str(key).lower(), None)

        if model.model_config.get("extra") == "allow":
            for key in by_lower.values():
                mapped[key] = record[key]

        try:
            return model.model_validate(mapped, strict=True)
        except pydantic.ValidationError as exc:
            raise DecodeError(f"cannot decode record into {model.__name__}: {exc}") from exc

    def _convert(self, value: Any, annotation: Any) -> Any:
        if value is None:
            return None
        annotation = _unwrap_optional(annotation)

        coercer = self._coercers.get(annotation) if isinstance(annotation, type) else None
        if coercer is not None:
            return coercer(value)
        if _is_model(annotation) and isinstance(value, Mapping):
            return self._decode_model(value, annotation)

        item_type = _list_item_type(annotation)
        if item_type is not None and isinstance(value, list):
            return [self._convert(item, item_type) for item in value]
        return value


def _unwrap_optional(annotation: Any) -> Any:
    if typing.get_origin(annotation) in _UNION_ORIGINS:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _list_item_type(annotation: Any) -> Any:
    if typing.get_origin(annotation) in (list, List):
        args = typing.get_args(annotation)
        return args[0] if args else Any
    return None


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


_default_decoder = RecordDecoder()


def decode(records: Any, target: Any) -> Any:
    """Decodes with the default coercion table (timestamps only)."""

    return _default_decoder.decode(records, target)
