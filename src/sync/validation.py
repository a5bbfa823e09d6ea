"""Локальная проверка пользовательского ввода до отправки команды."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from src.docker_api.exceptions import ValidationFailed
from src.settings.validators import CompositeValidator, RangeValidator, RegexValidator, TypeValidator

PORT_MAPPING_PATTERN = r"^[0-9]+:[0-9]+$"

_PORT_MAPPING_VALIDATOR = CompositeValidator(
    [TypeValidator(str), RegexValidator(PORT_MAPPING_PATTERN)]
)
_PORT_RANGE_VALIDATOR = RangeValidator(1, 65535)


def parse_port_mapping(value: str, field: str = "port_mapping") -> Optional[Tuple[int, int]]:
    """Разбирает ``host:container``; пустая строка означает отсутствие публикации порта."""

    if value == "":
        return None
    is_valid, error = _PORT_MAPPING_VALIDATOR.validate(value)
    if not is_valid:
        raise ValidationFailed(field, value, error)
    host_port, container_port = (int(part) for part in value.split(":"))
    for port in (host_port, container_port):
        is_valid, error = _PORT_RANGE_VALIDATOR.validate(port)
        if not is_valid:
            raise ValidationFailed(field, value, error)
    return host_port, container_port


def is_valid_port_mapping(value: str) -> bool:
    try:
        parse_port_mapping(value)
    except ValidationFailed:
        return False
    return True


def require_value(field: str, value: Any) -> str:
    """Проверяет, что обязательное строковое поле не пустое, и возвращает его без пробелов."""

    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(field, value, "value must not be empty")
    return value.strip()
