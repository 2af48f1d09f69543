"""Observable holder of the application state."""

from typing import Any, Callable, List, Optional

from .models import ApplicationState
from .reducer import initial_state, reduce

Subscriber = Callable[[], None]


class NotificationStore:
    """
    Holds one ApplicationState and applies the reducer on dispatch.

    Subscribers are called synchronously with no arguments after every
    dispatch and read the new state through ``get_state``. A dispatch made
    from inside a subscriber runs to completion, including its own round of
    notifications, before the outer dispatch moves on to the next subscriber.
    """

    def __init__(
        self,
        state: Optional[ApplicationState] = None,
        reducer: Callable[[ApplicationState, Any], ApplicationState] = reduce,
    ):
        self._state = state if state is not None else initial_state()
        self._reducer = reducer
        self._subscribers: List[Subscriber] = []

    def get_state(self) -> ApplicationState:
        return self._state

    def dispatch(self, action: Any) -> None:
        self._state = self._reducer(self._state, action)
        for subscriber in list(self._subscribers):
            subscriber()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            A callable that removes the listener; calling it twice is harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
