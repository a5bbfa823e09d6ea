"""Иерархия исключений слоя синхронизации и команд Docker."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

LOGGER = logging.getLogger(__name__)


class DockerConsoleError(Exception):
    """Базовое исключение консоли с сообщением и контекстом."""

    log_level: int = logging.ERROR

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        """Сохраняет сообщение и контекст, логируя ошибку."""

        self.message = message
        self.context = context or {}
        super().__init__(message)
        LOGGER.log(self.log_level, "%s: %s | context=%s", type(self).__name__, message, self.context)


class CommandFailure(DockerConsoleError):
    """Ошибка выполнения удалённой команды (закрытая таксономия из двух видов)."""

    kind: str = ""

    def __init__(self, message: str, *, command: Optional[str] = None) -> None:
        self.command = command
        super().__init__(message, context={"command": command, "kind": self.kind})


class BackendRejected(CommandFailure):
    """Docker принял запрос, но отказался его выполнять."""

    kind = "backend_rejected"


class TransportFailure(CommandFailure):
    """Вызов не удалось довести до конца (демон недоступен, таймаут и т.п.)."""

    kind = "transport_failure"


class PreconditionFailed(DockerConsoleError):
    """Действие недопустимо для текущего состояния ресурса."""

    log_level = logging.WARNING

    def __init__(self, resource: str, action: str, reason: str) -> None:
        self.resource = resource
        self.action = action
        self.reason = reason
        super().__init__(
            f"Action '{action}' is not allowed for '{resource}': {reason}",
            context={"resource": resource, "action": action, "reason": reason},
        )


class ActionInProgress(DockerConsoleError):
    """Для ресурса уже выполняется другое действие."""

    log_level = logging.WARNING

    def __init__(self, resource: str, pending_action: Optional[str] = None) -> None:
        self.resource = resource
        self.pending_action = pending_action
        super().__init__(
            f"Action '{pending_action}' is already in progress for '{resource}'",
            context={"resource": resource, "pending_action": pending_action},
        )


class ValidationFailed(DockerConsoleError):
    """Входные данные пользователя не прошли локальную проверку."""

    log_level = logging.WARNING

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(
            f"Validation error for '{field}': {reason} (value={value!r})",
            context={"field": field, "value": value, "reason": reason},
        )
