"""
Contenedor de estado observable.

Un único dueño (el hilo de UI) muta el estado con `set_state(updater)`.
El updater recibe un borrador (copia profunda) y lo muta en sitio; su valor de
retorno se ignora. Para sustituir el estado entero está `reemplazar`.
Si el updater lanza, el estado publicado no cambia y no se notifica a nadie.

`copiar` permite sustituir la copia profunda cuando el estado guarda callbacks:
deepcopy de un método ligado copiaría también su instancia.
"""

from __future__ import annotations

import copy
from typing import Callable, Generic, List, Optional, TypeVar

from clinicboard.app.bootstrap_logging import get_logger

T = TypeVar("T")

Listener = Callable[[T, T], None]

LOGGER = get_logger(__name__)


class ContenedorEstado(Generic[T]):
    def __init__(
        self,
        inicial: T,
        *,
        nombre: str = "estado",
        copiar: Optional[Callable[[T], T]] = None,
    ) -> None:
        self._estado = inicial
        self._nombre = nombre
        self._copiar = copiar or copy.deepcopy
        self._listeners: List[Listener] = []

    def get_state(self) -> T:
        return self._estado

    def set_state(self, updater: Callable[[T], object]) -> T:
        borrador = self._copiar(self._estado)
        updater(borrador)
        return self._publicar(borrador)

    def reemplazar(self, nuevo: T) -> T:
        return self._publicar(nuevo)

    def _publicar(self, nuevo: T) -> T:
        anterior = self._estado
        self._estado = nuevo
        for listener in list(self._listeners):
            listener(nuevo, anterior)
        return nuevo

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registra un listener `(nuevo, anterior)`; devuelve la función para darlo de baja."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
                LOGGER.debug("listener_removed store=%s", self._nombre)

        return _unsubscribe

    @property
    def suscriptores(self) -> int:
        return len(self._listeners)
