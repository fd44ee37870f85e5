"""
Serialización por entidad.

Dos liquidaciones simultáneas sobre el mismo empleado (o dos recálculos sobre
el mismo cliente) leerían el mismo conjunto de registros y asignarían dos
veces. Cada operación que muta agregados toma el candado de su entidad y lo
mantiene hasta el commit; las consultas además usan SELECT ... FOR UPDATE
donde el motor lo soporta.
"""
import threading
import weakref
from contextlib import contextmanager, ExitStack
from typing import Iterable
from uuid import UUID

_registry_lock = threading.Lock()
# Un candado vive mientras alguien lo tenga tomado o esperando
_locks: "weakref.WeakValueDictionary[tuple, threading.RLock]" = weakref.WeakValueDictionary()


def _get_lock(kind: str, entity_id) -> threading.RLock:
    key = (kind, str(entity_id))
    with _registry_lock:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


@contextmanager
def entity_lock(kind: str, entity_id: UUID):
    lock = _get_lock(kind, entity_id)
    with lock:
        yield


def employee_lock(employee_id: UUID):
    return entity_lock("employee", employee_id)


@contextmanager
def employee_locks(employee_ids: Iterable[UUID]):
    """Toma los candados de varios empleados, siempre en el mismo orden."""
    with ExitStack() as stack:
        for employee_id in sorted({str(i) for i in employee_ids}):
            stack.enter_context(employee_lock(employee_id))
        yield


def client_lock(client_id: UUID):
    return entity_lock("client", client_id)
