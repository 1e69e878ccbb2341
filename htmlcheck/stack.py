"""
Pila de tags abiertas (LIFO) usada durante la validación.
"""
import logging

log = logging.getLogger(__name__)


class EmptyStackError(IndexError):
    """pop()/peek() sobre una pila vacía."""


def _log_push(name, depth):
    log.debug("push <%s> (profundidad %d)", name, depth)


def _log_pop(name, depth):
    log.debug("pop </%s> (profundidad %d)", name, depth)


class TagStack:
    """
    Pila de nombres normalizados. El tope es siempre el elemento abierto
    más reciente.

    on_push / on_pop son hooks opcionales llamados como
    hook(nombre, profundidad_tras_la_operación); por defecto van al log
    en nivel DEBUG.
    """

    def __init__(self, on_push=None, on_pop=None):
        self._items = []
        self._on_push = on_push or _log_push
        self._on_pop = on_pop or _log_pop

    def push(self, name: str) -> None:
        self._items.append(name)
        self._on_push(name, len(self._items))

    def pop(self) -> str:
        if not self._items:
            raise EmptyStackError("Pila vacía")
        name = self._items.pop()
        self._on_pop(name, len(self._items))
        return name

    def peek(self) -> str:
        if not self._items:
            raise EmptyStackError("Pila vacía")
        return self._items[-1]

    def is_empty(self) -> bool:
        return not self._items

    def drain_remaining(self):
        """Vacía la pila y devuelve lo que quedaba, del tope al fondo."""
        remaining = []
        while self._items:
            remaining.append(self.pop())
        return remaining

    def __len__(self):
        return len(self._items)

    def __repr__(self):
        # Del tope al fondo, como se imprime al depurar
        return "[" + ", ".join(reversed(self._items)) + "]"
