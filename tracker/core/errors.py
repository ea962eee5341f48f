"""
Eccezioni di dominio del tracker.

Ogni eccezione porta lo status HTTP con cui viene restituita dagli handler
registrati in ``tracker.main``, un codice stabile e i dettagli utili al client.
"""
from __future__ import annotations
from typing import Any, Dict, Optional


class TrackerError(Exception):
    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(TrackerError):
    """Input mancante o malformato."""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(TrackerError):
    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any = None):
        message = f"{entity} not found" if identifier is None else f"{entity} not found: {identifier}"
        super().__init__(message, details={"entity": entity, "identifier": identifier})


class RoleMismatchError(TrackerError):
    status_code = 403
    default_code = "ROLE_MISMATCH"


class InvalidCredentialError(TrackerError):
    status_code = 401
    default_code = "INVALID_CREDENTIAL"


class ConflictError(TrackerError):
    """Violazione di un vincolo di unicità."""
    status_code = 409
    default_code = "CONFLICT"


class InternalError(TrackerError):
    status_code = 500
    default_code = "INTERNAL_ERROR"


def require_filters(**filters: Any) -> None:
    """Solleva ``ValidationError`` elencando i parametri mancanti o vuoti."""
    missing = [name for name, value in filters.items() if value is None or value == ""]
    if missing:
        raise ValidationError(f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
                              details={"missing": missing})
