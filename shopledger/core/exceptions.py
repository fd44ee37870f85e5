"""
Excepciones del dominio contable.

Los servicios lanzan estas excepciones en lugar de HTTPException para que
puedan usarse fuera de la capa HTTP; main.py las traduce a respuestas JSON.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class LedgerValidationError(LedgerError, ValueError):
    status_code = 400


class PermissionDeniedError(LedgerError):
    status_code = 403


class NotFoundError(LedgerError):
    status_code = 404


class ConflictError(LedgerError):
    status_code = 409
