# backoffice/utils/errors.py
from typing import Any, Optional


class AppError(Exception):
    """Base de errores de negocio; el handler de main.py la traduce a HTTP."""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Recurso no encontrado"):
        super().__init__(message)


class ValidationError(AppError):
    status_code = 400

    def __init__(self, message: str = "Datos inválidos", errors: Any = None):
        super().__init__(message, errors=errors)


class InternalError(AppError):
    # Nunca expone detalles internos al cliente
    status_code = 500

    def __init__(self, message: str = "Error interno al procesar la operación"):
        super().__init__(message)
