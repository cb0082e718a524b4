# domain/tablero.py
"""
Agregado Tablero: atenciones agrupadas por tipo y estado de progresión.

Responsabilidades:
- Mantener el orden de cada columna (el orden de arrastre es significativo).
- Reubicar atenciones de forma atómica: una atención vive en un solo bucket.
- Consultas puras para la UI y el cierre del día.

No contiene:
- Reglas de transición (viven en el motor de transiciones)
- Llamadas a persistencia ni apertura de modales
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import (
    ORDEN_ESTADOS,
    TIPOS_CONOCIDOS,
    EstadoAtencion,
    TipoAtencion,
    normalizar_tipo,
    parse_estado,
)
from clinicboard.app.domain.exceptions import (
    AttendanceNotFoundError,
    InvalidMoveError,
    ValidationError,
)

Ubicacion = Tuple[TipoAtencion | str, EstadoAtencion, int]


def ordenar_por_prioridad(atenciones: Iterable[Atencion]) -> List[Atencion]:
    """
    Orden de la cola de check-in.

    1. Prioridad: "1" antes que "2" antes que "3".
    2. Misma prioridad: check-in más temprano primero; sin hora va al final.
    Empates restantes conservan el orden original.
    """

    def _clave(item: tuple[int, Atencion]) -> tuple[int, int, float, int]:
        posicion, atencion = item
        hora = atencion.hora_check_in
        sin_hora = 1 if hora is None else 0
        instante = hora.timestamp() if hora is not None else 0.0
        return int(atencion.prioridad.value), sin_hora, instante, posicion

    return [a for _, a in sorted(enumerate(atenciones), key=_clave)]


class Tablero:
    """Columnas del tablero de atenciones de un día."""

    def __init__(self, atenciones: Iterable[Atencion] = (), *, fecha: Optional[date] = None) -> None:
        self.fecha = fecha
        self._buckets: Dict[TipoAtencion | str, Dict[EstadoAtencion, List[Atencion]]] = {}
        for tipo in TIPOS_CONOCIDOS:
            self._crear_buckets(tipo)
        for atencion in atenciones:
            self.agregar(atencion)

    # --------------------------------------------------------------
    # Estructura
    # --------------------------------------------------------------

    def _crear_buckets(self, tipo: TipoAtencion | str) -> Dict[EstadoAtencion, List[Atencion]]:
        return self._buckets.setdefault(tipo, {estado: [] for estado in ORDEN_ESTADOS})

    def _bucket(self, tipo: TipoAtencion | str, estado: EstadoAtencion) -> List[Atencion]:
        buckets = self._buckets.get(normalizar_tipo(tipo))
        if buckets is None:
            return []
        return buckets[estado]

    @property
    def tipos(self) -> List[TipoAtencion | str]:
        return list(self._buckets)

    def agregar(self, atencion: Atencion, indice: Optional[int] = None) -> None:
        """Inserta una atención nueva en el bucket de su tipo y estado."""
        atencion.validar()
        if self.localizar(atencion.id) is not None:
            raise ValidationError(f"La atención {atencion.id} ya está en el tablero.")
        destino = self._crear_buckets(atencion.tipo)[atencion.estado]
        destino.insert(_acotar(indice, len(destino)), atencion)

    # --------------------------------------------------------------
    # Operaciones
    # --------------------------------------------------------------

    def mover_atencion(
        self,
        atencion_id: int,
        desde: EstadoAtencion | str,
        hacia: EstadoAtencion | str,
        indice_destino: Optional[int] = None,
    ) -> Atencion:
        """
        Reubica la atención dentro de su tipo.

        Falla sin tocar el tablero si `hacia` no es un estado de progresión
        o si la atención no está en `desde`.
        """
        estado_hacia = parse_estado(hacia)
        if estado_hacia is None:
            raise InvalidMoveError(f"Estado destino inválido: {hacia!r}.")
        estado_desde = parse_estado(desde)
        if estado_desde is None:
            raise AttendanceNotFoundError(atencion_id, str(desde))

        ubicacion = self._localizar_en_estado(atencion_id, estado_desde)
        if ubicacion is None:
            raise AttendanceNotFoundError(atencion_id, estado_desde.value)

        tipo, indice = ubicacion
        origen = self._buckets[tipo][estado_desde]
        atencion = origen.pop(indice)
        atencion.estado = estado_hacia
        destino = self._buckets[tipo][estado_hacia]
        destino.insert(_acotar(indice_destino, len(destino)), atencion)
        return atencion

    def eliminar_atencion(self, atencion_id: int) -> Optional[Atencion]:
        """Quita la atención de donde esté; si no existe no hace nada."""
        ubicacion = self.localizar(atencion_id)
        if ubicacion is None:
            return None
        tipo, estado, indice = ubicacion
        return self._buckets[tipo][estado].pop(indice)

    # --------------------------------------------------------------
    # Consultas
    # --------------------------------------------------------------

    def localizar(self, atencion_id: int) -> Optional[Ubicacion]:
        for tipo, buckets in self._buckets.items():
            for estado, atenciones in buckets.items():
                for indice, atencion in enumerate(atenciones):
                    if atencion.id == atencion_id:
                        return tipo, estado, indice
        return None

    def _localizar_en_estado(self, atencion_id: int, estado: EstadoAtencion) -> Optional[tuple]:
        for tipo, buckets in self._buckets.items():
            for indice, atencion in enumerate(buckets[estado]):
                if atencion.id == atencion_id:
                    return tipo, indice
        return None

    def obtener(self, atencion_id: int) -> Optional[Atencion]:
        ubicacion = self.localizar(atencion_id)
        if ubicacion is None:
            return None
        tipo, estado, indice = ubicacion
        return self._buckets[tipo][estado][indice]

    def listar(self, tipo: TipoAtencion | str, estado: EstadoAtencion | str) -> List[Atencion]:
        """Columna tal como se muestra: la cola de check-in va ordenada por prioridad."""
        estado_norm = parse_estado(estado)
        if estado_norm is None:
            return []
        atenciones = list(self._bucket(tipo, estado_norm))
        if estado_norm == EstadoAtencion.CHECKED_IN:
            return ordenar_por_prioridad(atenciones)
        return atenciones

    def listar_en_orden(self, tipo: TipoAtencion | str, estado: EstadoAtencion | str) -> List[Atencion]:
        """Columna en el orden almacenado (orden de inserción/arrastre)."""
        estado_norm = parse_estado(estado)
        if estado_norm is None:
            return []
        return list(self._bucket(tipo, estado_norm))

    def atenciones_de_paciente(
        self,
        paciente_id: int,
        estado: EstadoAtencion,
        tipos: Optional[Iterable[TipoAtencion | str]] = None,
    ) -> List[Atencion]:
        claves = [normalizar_tipo(t) for t in tipos] if tipos is not None else self.tipos
        return [a for tipo in claves for a in self._bucket(tipo, estado) if a.paciente_id == paciente_id]

    def paciente_ya_agendado(self, nombre: str, tipos: Iterable[TipoAtencion | str]) -> bool:
        buscado = nombre.strip().lower()
        for tipo in tipos:
            for estado in ORDEN_ESTADOS:
                if any(a.paciente_nombre.lower() == buscado for a in self._bucket(tipo, estado)):
                    return True
        return False

    def incompletas(self) -> List[Atencion]:
        return self._recoger((EstadoAtencion.CHECKED_IN, EstadoAtencion.ON_GOING))

    def completadas(self) -> List[Atencion]:
        return self._recoger((EstadoAtencion.COMPLETED,))

    def ausencias_agendadas(self) -> List[Atencion]:
        """Atenciones que siguen en scheduled: al cerrar el día cuentan como faltas."""
        return self._recoger((EstadoAtencion.SCHEDULED,))

    def _recoger(self, estados: tuple[EstadoAtencion, ...]) -> List[Atencion]:
        return [a for tipo in TIPOS_CONOCIDOS for estado in estados for a in self._bucket(tipo, estado)]

    def snapshot(self) -> tuple:
        """Vista inmutable y comparable de todo el tablero (tipos, columnas y orden)."""
        return tuple(
            (
                getattr(tipo, "value", tipo),
                estado.value,
                tuple(tuple(sorted(a.to_dict().items())) for a in atenciones),
            )
            for tipo, buckets in self._buckets.items()
            for estado, atenciones in buckets.items()
        )

    def __iter__(self) -> Iterator[Atencion]:
        for buckets in self._buckets.values():
            for atenciones in buckets.values():
                yield from atenciones

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        fecha = self.fecha.isoformat() if self.fecha else "-"
        return f"Tablero(fecha={fecha}, atenciones={len(self)})"


def _acotar(indice: Optional[int], longitud: int) -> int:
    if indice is None or indice > longitud:
        return longitud
    return max(indice, 0)
