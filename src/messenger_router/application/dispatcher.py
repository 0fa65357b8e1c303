"""EventBus — publicação tipada de eventos classificados.

Handlers assinam por nome canônico (``"text.greeting"``, ``"message.image"``)
ou por tipo (``TextEvent``). Falha de um handler é logada e não interrompe os
demais: respostas são efeito colateral, não parte do passe de roteamento.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from messenger_router.domain.events import Response
from messenger_router.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)

Handler = Callable[[Any], Any]


@dataclass
class _Subscription:
    handler: Handler
    once: bool = False


class EventBus:
    """Pub/sub em processo para eventos ``Response``."""

    def __init__(self) -> None:
        self._by_name: dict[str, list[_Subscription]] = defaultdict(list)
        self._by_type: list[tuple[type[Response], _Subscription]] = []

    def on(self, name: str, handler: Handler) -> Handler:
        self._by_name[str(name)].append(_Subscription(handler))
        return handler

    def once(self, name: str, handler: Handler) -> Handler:
        self._by_name[str(name)].append(_Subscription(handler, once=True))
        return handler

    def off(self, name: str, handler: Handler) -> None:
        subscriptions = self._by_name.get(str(name), [])
        self._by_name[str(name)] = [s for s in subscriptions if s.handler != handler]

    def subscribe(self, event_type: type[Response], handler: Handler) -> Handler:
        """Recebe todo evento que seja instância de ``event_type``."""
        self._by_type.append((event_type, _Subscription(handler)))
        return handler

    def handler(self, name: str) -> Callable[[Handler], Handler]:
        """Forma decorator de ``on``::

            @bus.handler("text.help")
            async def on_help(event): ...
        """

        def decorator(func: Handler) -> Handler:
            return self.on(name, func)

        return decorator

    def listener_count(self, name: str) -> int:
        return len(self._by_name.get(str(name), []))

    async def publish(self, event: Response) -> int:
        """Entrega o evento; retorna quantos handlers foram chamados."""
        name = event.event_name
        named = self._by_name.get(name, [])
        if any(s.once for s in named):
            self._by_name[name] = [s for s in named if not s.once]

        targets = [s.handler for s in named]
        targets += [s.handler for t, s in self._by_type if isinstance(event, t)]

        for target in targets:
            await self._call(target, event)
        return len(targets)

    async def _call(self, target: Handler, event: Response) -> None:
        try:
            result = target(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "event_handler_failed",
                extra={
                    "event_name": event.event_name,
                    "handler": getattr(target, "__qualname__", repr(target)),
                    "sender_id": mask_id(event.sender_id),
                },
            )
