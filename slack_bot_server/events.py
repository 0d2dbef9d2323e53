"""
Event routing - per-class handler tables and dispatch.

Handlers are declared with ``@on(event_type)`` inside a bot class body. When
the class is created its table is composed once from every ancestor's
handlers (root first) followed by its own, in declaration order. Tables are
read-only afterwards and shared by all instances of the class.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]

HANDLER_MARKER = "_slack_event_types"
OWN_HANDLERS = "_own_handlers"


def on(event_type: str) -> Callable[[Handler], Handler]:
    """Mark a function as a handler for ``event_type``.

    The handler is called as ``handler(bot, data)`` and may be a coroutine
    function. Returning ``False`` stops the rest of the chain for that event.
    """

    def decorator(func: Handler) -> Handler:
        types = getattr(func, HANDLER_MARKER, ())
        setattr(func, HANDLER_MARKER, types + (event_type,))
        return func

    return decorator


def collect_own_handlers(namespace: Dict[str, Any]) -> Dict[str, List[Handler]]:
    """Pick marked handlers out of a class namespace, in definition order."""
    own: Dict[str, List[Handler]] = {}
    for value in namespace.values():
        if isinstance(value, (staticmethod, classmethod)):
            value = value.__func__
        for event_type in getattr(value, HANDLER_MARKER, ()):
            own.setdefault(event_type, []).append(value)
    return own


class HandlerTable:
    """Ordered handler chains keyed by event type."""

    def __init__(self, chains: Optional[Dict[str, Iterable[Handler]]] = None):
        self._chains: Dict[str, Tuple[Handler, ...]] = {
            event_type: tuple(handlers) for event_type, handlers in (chains or {}).items()
        }

    @classmethod
    def for_class(cls, klass: type) -> "HandlerTable":
        """Compose the table for ``klass`` from its MRO, root-most class first."""
        chains: Dict[str, List[Handler]] = {}
        for ancestor in reversed(klass.__mro__):
            own = vars(ancestor).get(OWN_HANDLERS)
            if not own:
                continue
            for event_type, handlers in own.items():
                chains.setdefault(event_type, []).extend(handlers)
        return cls(chains)

    def handlers_for(self, event_type: str) -> Tuple[Handler, ...]:
        return self._chains.get(event_type, ())

    @property
    def event_types(self) -> List[str]:
        return list(self._chains)

    def __len__(self) -> int:
        return sum(len(handlers) for handlers in self._chains.values())


async def dispatch(
    table: HandlerTable,
    bot,
    event_type: str,
    data: Dict,
    log: Optional[logging.Logger] = None,
) -> bool:
    """
    Run the handler chain for one event.

    Args:
        table: Handler table of the bot's class
        bot: Bot instance passed as the first handler argument
        event_type: Event type tag
        data: Event payload passed as the second handler argument
        log: Logger for handler failures (defaults to this module's)

    Returns:
        True if every handler ran, False if a handler returned ``False``
        or raised. Handler exceptions never propagate.
    """
    log = log or logger
    for handler in table.handlers_for(event_type):
        try:
            result = handler(bot, data)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            name = getattr(handler, "__qualname__", repr(handler))
            log.error(f"Error in {event_type} handler {name}: {e} (event: {data!r})", exc_info=True)
            return False
        if result is False:
            return False
    return True
