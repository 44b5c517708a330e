import typing
import weakref
import logging
import threading


logger = logging.getLogger(__name__)

# listeners connected with this sender receive signals from every sender
ANY_SENDER = object()


class SoftSignal(object):
    """
    A signal that listeners connect to for a given sender.

    Listeners are held by weak reference and dropped once garbage collected.
    Tasks emit from worker threads, so the listener registry is guarded by a
    lock and emission works on a snapshot of it.
    """

    def __init__(self, provide_args=None):
        if provide_args is None:
            provide_args = []
        elif not isinstance(provide_args, (list, tuple)):
            provide_args = tuple(provide_args)

        self.provide_args = set(provide_args)

        self.lock = threading.Lock()

        self._listeners: typing.Dict[typing.Any, typing.Set[weakref.ReferenceType]] = {}

    def _live_listeners(self, sender: typing.Any) -> typing.List[typing.Callable]:
        with self.lock:
            refs = list(self._listeners.get(sender, ()))
            if sender is not ANY_SENDER:
                refs.extend(self._listeners.get(ANY_SENDER, ()))
        return [listener for listener in (ref() for ref in refs) if listener]

    def emit(
        self, sender: typing.Any, **kwargs
    ) -> typing.List[typing.Tuple[typing.Any, typing.Any]]:
        """
        Emit a signal to all connected listeners for a given sender.

        A listener raising an exception does not stop the other listeners;
        the exception is logged and returned as that listener's response.

        Args:
            sender: The object sending the signal.
            **kwargs: Additional keyword arguments to pass to listeners.
        Return:
            A list of tuples containing (listener, response).
        """
        responses = []
        for listener in self._live_listeners(sender):
            try:
                response = listener(signal=self, sender=sender, **kwargs)
            except Exception as e:
                logger.exception(str(e), exc_info=e)
                response = e
            responses.append((listener, response))

        return responses

    def has_listeners(self, sender: typing.Any = ANY_SENDER) -> bool:
        return bool(self._live_listeners(sender))

    def clean(self, sender: typing.Any) -> None:
        """
        Clean up all listeners associated with the sender.

        Args:
            sender: The object whose listeners should be removed.
        """
        with self.lock:
            self._listeners.pop(sender, None)

    def connect(
        self,
        sender: typing.Any,
        listener: typing.Callable[..., typing.Any],
    ) -> None:
        """
        Connect a listener to a sender.

        Args:
            sender: The object sending the signal. ``None`` listens to every sender.
            listener: The function to be called when the signal is emitted.
        """
        if sender is None:
            sender = ANY_SENDER

        ref = weakref.ref
        listener_obj = listener
        if hasattr(listener, "__self__") and hasattr(listener, "__func__"):
            ref = weakref.WeakMethod
            listener_obj = listener.__self__

        ref_listener = ref(listener)

        with self.lock:
            self._listeners.setdefault(sender, set()).add(ref_listener)

        weakref.finalize(
            listener_obj,
            self._remove_unalived_listener,
            sender=sender,
            listener=ref_listener,
        )

    def disconnect(self, sender: typing.Any, listener: typing.Callable) -> None:
        """
        Disconnect a listener from a sender.

        Args:
            sender: The object sending the signal.
            listener: The function to be removed from the signal's listeners.
        """
        if sender is None:
            sender = ANY_SENDER
        with self.lock:
            if sender in self._listeners:
                self._listeners[sender] = {
                    weak_listener
                    for weak_listener in self._listeners[sender]
                    if weak_listener() != listener
                }
                if not self._listeners[sender]:
                    del self._listeners[sender]

    def _remove_unalived_listener(self, sender, listener: typing.Any = None) -> None:
        with self.lock:
            if sender in self._listeners:
                self._listeners[sender].discard(listener)


task_init = SoftSignal(provide_args=["task", "command", "in_targets", "out_targets"])

task_execution_start = SoftSignal(provide_args=["task", "command"])

task_execution_skipped = SoftSignal(provide_args=["task", "reasons"])

task_execution_end = SoftSignal(provide_args=["task", "result"])

task_execution_failed = SoftSignal(provide_args=["task", "exception"])
