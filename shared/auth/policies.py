"""
Políticas de acceso por fila.

Equivalente en la aplicación de las políticas RLS de la migración 0001_initial:
cada predicado recibe (id del actor, fila objetivo, flag de admin) y se evalúa
antes de leer filas privadas o de cualquier mutación. Una combinación
(tabla, operación) sin política se deniega, igual que en RLS.
"""
from typing import Any, Callable, Dict, Optional, Tuple
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

Predicate = Callable[[Optional[UUID], Any, bool], bool]


class PolicyViolation(PermissionError):
    """El actor no cumple la política de la operación"""

    def __init__(self, table: str, operation: str, message: Optional[str] = None):
        self.table = table
        self.operation = operation
        super().__init__(message or f"Not allowed to {operation} {table}")


def as_uuid(value: Any) -> Optional[UUID]:
    """Normalizar ids (str o UUID) para comparar identidades"""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _public(actor_id: Optional[UUID], row: Any, is_admin: bool) -> bool:
    return True


def _admin_only(actor_id: Optional[UUID], row: Any, is_admin: bool) -> bool:
    return actor_id is not None and is_admin


def _own_profile(actor_id: Optional[UUID], row: Any, is_admin: bool) -> bool:
    return actor_id is not None and actor_id == as_uuid(row.id)


def _own_booking(actor_id: Optional[UUID], row: Any, is_admin: bool) -> bool:
    # Sin override de admin/moderador
    return actor_id is not None and actor_id == as_uuid(row.user_id)


POLICIES: Dict[Tuple[str, str], Predicate] = {
    ("profiles", "select"): _public,
    ("profiles", "update"): _own_profile,
    ("events", "select"): _public,
    ("events", "insert"): _admin_only,
    ("events", "update"): _admin_only,
    ("events", "delete"): _admin_only,
    ("bookings", "select"): _own_booking,
    ("bookings", "insert"): _own_booking,
    ("bookings", "update"): _own_booking,
}


def is_allowed(
    table: str,
    operation: str,
    actor_id: Any,
    row: Any = None,
    is_admin: bool = False
) -> bool:
    """Evaluar la política de (tabla, operación) para el actor sobre la fila"""
    predicate = POLICIES.get((table, operation))
    if predicate is None:
        return False
    return predicate(as_uuid(actor_id), row, bool(is_admin))


def enforce(
    table: str,
    operation: str,
    actor_id: Any,
    row: Any = None,
    is_admin: bool = False
) -> None:
    """Lanzar PolicyViolation si la política no se cumple"""
    if not is_allowed(table, operation, actor_id, row, is_admin):
        logger.info(f"Policy denied: {operation} on {table} by {actor_id}")
        raise PolicyViolation(table, operation)
