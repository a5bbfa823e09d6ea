"""Допустимость действий над ресурсами и отслеживание их выполнения.

Правила допустимости являются чистыми функциями от состояния ресурса и не зависят от
интерфейса. ``ActionCoordinator`` применяет их к последнему снимку опроса,
разрешает не более одного выполняющегося действия на ресурс и после успеха
запрашивает внеочередное обновление у владеющего опросчика.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional

from src.docker_api.exceptions import ActionInProgress, CommandFailure, PreconditionFailed
from src.docker_api.gateway import CommandGateway
from src.docker_api.models import ContainerState
from src.sync.poller import ResourcePoller, ResourceSnapshot

LOGGER = logging.getLogger(__name__)

StatePredicate = Callable[[Any], bool]


@dataclass(frozen=True, slots=True)
class ActionRule:
    """Действие: команда шлюза, имя параметра и условие допустимости."""

    command: str
    parameter: str
    allowed: StatePredicate
    requirement: str = ""


def _always(state: Any) -> bool:
    return True


CONTAINER_ACTIONS: Dict[str, ActionRule] = {
    "start": ActionRule(
        "start_container",
        "container_name",
        lambda state: state not in (ContainerState.RUNNING, ContainerState.PAUSED),
        "container must not be running or paused",
    ),
    "stop": ActionRule(
        "stop_container",
        "container_name",
        lambda state: state is ContainerState.RUNNING,
        "container must be running",
    ),
    "pause": ActionRule(
        "pause_container",
        "container_name",
        lambda state: state is ContainerState.RUNNING,
        "container must be running",
    ),
    "unpause": ActionRule(
        "unpause_container",
        "container_name",
        lambda state: state is ContainerState.PAUSED,
        "container must be paused",
    ),
    "kill": ActionRule(
        "kill_container",
        "container_name",
        lambda state: state is ContainerState.RUNNING,
        "container must be running",
    ),
    "delete": ActionRule(
        "delete_container",
        "container_name",
        lambda state: state is not ContainerState.RUNNING,
        "container must not be running",
    ),
}

IMAGE_ACTIONS: Dict[str, ActionRule] = {"remove": ActionRule("remove_image", "image", _always)}
VOLUME_ACTIONS: Dict[str, ActionRule] = {
    "remove": ActionRule("remove_volume", "volume_name", _always)
}
NETWORK_ACTIONS: Dict[str, ActionRule] = {
    "remove": ActionRule("remove_network", "network_id", _always)
}


def is_action_allowed(
    action: str, state: Any, rules: Mapping[str, ActionRule] = CONTAINER_ACTIONS
) -> bool:
    """Чистая проверка допустимости действия для состояния."""

    rule = rules.get(action)
    if rule is None:
        raise ValueError(f"Unknown action: {action}")
    return rule.allowed(state)


def allowed_actions(
    state: Any, rules: Mapping[str, ActionRule] = CONTAINER_ACTIONS
) -> FrozenSet[str]:
    """Набор действий, допустимых в данном состоянии."""

    return frozenset(name for name, rule in rules.items() if rule.allowed(state))


class ActionPhase(str, Enum):
    """Фаза действия над одним ресурсом."""

    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ActionStatus:
    """Состояние действия над ресурсом; reason заполнен только для FAILED."""

    phase: ActionPhase = ActionPhase.IDLE
    action: Optional[str] = None
    reason: Optional[str] = None
    observed_state: Any = None


IDLE = ActionStatus()

StatusListener = Callable[[str, ActionStatus], None]


def _resource_state(resource: Any) -> Any:
    return getattr(resource, "state", None)


class ActionCoordinator:
    """Шлюз действий над экземплярами одной коллекции."""

    def __init__(
        self,
        gateway: CommandGateway,
        poller: ResourcePoller,
        rules: Mapping[str, ActionRule] = CONTAINER_ACTIONS,
        *,
        state_of: Callable[[Any], Any] = _resource_state,
    ) -> None:
        self._gateway = gateway
        self._poller = poller
        self._rules = dict(rules)
        self._state_of = state_of
        self._statuses: Dict[str, ActionStatus] = {}
        self._listeners: List[StatusListener] = []
        poller.add_listener(self._on_snapshot)

    @property
    def actions(self) -> FrozenSet[str]:
        return frozenset(self._rules)

    def status(self, key: str) -> ActionStatus:
        return self._statuses.get(key, IDLE)

    def available_actions(self, key: str) -> FrozenSet[str]:
        """Действия, которые сейчас можно выполнить над ресурсом."""

        if self.status(key).phase is ActionPhase.PENDING:
            return frozenset()
        resource = self._lookup(key)
        if resource is None:
            return frozenset()
        return allowed_actions(self._state_of(resource), self._rules)

    def add_listener(self, listener: StatusListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def request(self, key: str, action: str) -> None:
        """Выполняет действие над ресурсом key.

        Бросает ``ActionInProgress``, если для ресурса уже выполняется действие,
        ``PreconditionFailed``, если действие недопустимо (в этом случае шлюз не
        вызывается), и пробрасывает ``CommandFailure`` после перевода статуса
        в FAILED.
        """

        rule = self._rules.get(action)
        if rule is None:
            raise ValueError(f"Unknown action: {action}")
        current = self.status(key)
        if current.phase is ActionPhase.PENDING:
            raise ActionInProgress(key, current.action)
        resource = self._lookup(key)
        if resource is None:
            raise PreconditionFailed(key, action, f"not present in the latest {self._poller.collection} snapshot")
        state = self._state_of(resource)
        if not rule.allowed(state):
            raise PreconditionFailed(key, action, f"{rule.requirement} (state={_state_label(state)})")

        self._set_status(key, ActionStatus(ActionPhase.PENDING, action, observed_state=state))
        try:
            await self._gateway.execute(rule.command, {rule.parameter: key})
        except CommandFailure as exc:
            self._set_status(
                key, ActionStatus(ActionPhase.FAILED, action, exc.message, observed_state=state)
            )
            raise
        except BaseException:
            # отмена или ошибка вызывающего кода: ресурс не должен остаться в PENDING
            self._set_status(key, IDLE)
            raise
        self._set_status(key, ActionStatus(ActionPhase.SUCCEEDED, action, observed_state=state))
        LOGGER.info("Action %s on %s %s succeeded", action, self._poller.collection, key)
        await self._poller.refresh_now()

    # --------------------------------------------------------------- helpers
    def _lookup(self, key: str) -> Optional[Any]:
        snapshot = self._poller.snapshot
        if snapshot is None:
            return None
        return snapshot.get(key)

    def _set_status(self, key: str, status: ActionStatus) -> None:
        if status.phase is ActionPhase.IDLE:
            self._statuses.pop(key, None)
        else:
            self._statuses[key] = status
        for listener in list(self._listeners):
            try:
                listener(key, status)
            except Exception as exc:
                LOGGER.error("Action listener %s failed: %s", listener, exc, exc_info=True)

    def _on_snapshot(self, snapshot: ResourceSnapshot) -> None:
        """Возвращает завершённые действия в IDLE, если опрос подтвердил изменение."""

        for key, status in list(self._statuses.items()):
            if status.phase not in (ActionPhase.SUCCEEDED, ActionPhase.FAILED):
                continue
            resource = snapshot.get(key)
            if resource is None or self._state_of(resource) != status.observed_state:
                self._set_status(key, IDLE)


def _state_label(state: Any) -> str:
    return state.value if isinstance(state, Enum) else str(state)
