"""Taxonomía de errores de la API.

Cada error conoce su código HTTP y el contenido del campo ``error`` que se
devuelve al cliente.
"""

from typing import Any, Dict, List

class AppError(Exception):
    """Error base con código HTTP y payload para la respuesta JSON."""
    status_code = 500
    message = "Internal error"

    def __init__(self, error: Any = None):
        self.error = self.message if error is None else error
        super().__init__(self.error if isinstance(self.error, str) else self.message)

class ValidationError(AppError):
    """Entrada malformada; lleva el detalle por campo.

    El payload tiene la forma ``{"formErrors": [...], "fieldErrors": {...}}``.
    """
    status_code = 400
    message = "Invalid input"

    def __init__(self, form_errors: List[str] = None, field_errors: Dict[str, List[str]] = None):
        self.form_errors = list(form_errors or [])
        self.field_errors = {k: list(v) for k, v in (field_errors or {}).items()}
        super().__init__({"formErrors": self.form_errors, "fieldErrors": self.field_errors})

class Unauthorized(AppError):
    status_code = 401
    message = "Unauthorized"

class InvalidCredentials(AppError):
    # Mismo mensaje para email inexistente y contraseña incorrecta.
    status_code = 401
    message = "Invalid email or password"

class DuplicateEmail(AppError):
    status_code = 400
    message = "Email already registered"

class ForbiddenAccount(AppError):
    status_code = 403
    message = "Account not found or not yours"

class InvalidToken(Exception):
    """Token con firma inválida, malformado o expirado."""
