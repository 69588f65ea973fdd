"""Custom exceptions for the Caja POS application.

Every error carries a stable ``code`` that the API returns to the POS so the
client can decide whether to retry (same idempotency key), re-query, or show
the message to the cashier.
"""


class CajaError(Exception):
    """Base exception for all application errors."""
    code = 'INTERNAL_ERROR'

    def __init__(self, message="Ocurrió un error interno", status_code=500, payload=None, code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        if code:
            self.code = code

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['code'] = self.code
        rv['status'] = 'error'
        return rv


class ValidationError(CajaError):
    """Rejected input, raised before any side effect."""
    code = 'VALIDATION_ERROR'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class NotFoundError(CajaError):
    """Exception raised when a resource is not found."""
    code = 'NOT_FOUND'

    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, 404, payload)


class ConflictError(CajaError):
    """Business rule conflict detected at the transaction boundary."""
    code = 'CONFLICT'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class InsufficientStockError(ConflictError):
    """Raised when an operation fails due to lack of stock."""
    code = 'INSUFFICIENT_STOCK'

    def __init__(self, product_name, required, available=None):
        if available is None:
            message = f"Stock insuficiente para {product_name}: se requieren {int(required)}"
        else:
            message = (
                f"Stock insuficiente para {product_name}: "
                f"se requieren {int(required)}, disponible {int(available)}"
            )
        super().__init__(message, payload={'product': product_name})


class SaleNotFoundError(NotFoundError):
    code = 'SALE_NOT_FOUND'

    def __init__(self, sale_id):
        super().__init__(f'Venta #{sale_id} no encontrada o no pertenece a su negocio')


class AlreadyVoidedError(ConflictError):
    code = 'ALREADY_VOIDED'

    def __init__(self, sale_id):
        super().__init__(f'La venta #{sale_id} ya fue anulada')


class SessionNotFoundError(NotFoundError):
    code = 'SESSION_NOT_FOUND'

    def __init__(self, session_id):
        super().__init__(f'Caja #{session_id} no encontrada')


class SessionAlreadyOpenError(ConflictError):
    code = 'SESSION_ALREADY_OPEN'

    def __init__(self, store_id, session_id=None):
        payload = {'sessionId': session_id} if session_id else None
        super().__init__('Ya hay una caja abierta para este negocio', payload)
        self.store_id = store_id


class SessionAlreadyClosedError(ConflictError):
    code = 'SESSION_ALREADY_CLOSED'

    def __init__(self, session_id):
        super().__init__(f'La caja #{session_id} ya está cerrada')


class RateLimitedError(CajaError):
    """Too many requests in the current window; never queued."""
    code = 'RATE_LIMITED'

    def __init__(self, message='Demasiadas solicitudes. Esperá unos segundos.'):
        super().__init__(message, 429)


class TransactionFailedError(CajaError):
    """Backing store failure; the whole unit of work was rolled back."""
    code = 'TRANSACTION_FAILED'

    def __init__(self, message='No se pudo completar la operación. Intentá nuevamente.'):
        super().__init__(message, 503)


class UnauthorizedError(CajaError):
    """Raised when the caller is not authenticated."""
    code = 'UNAUTHORIZED'

    def __init__(self, message="No autenticado."):
        super().__init__(message, 401)


class StoreRequiredError(CajaError):
    """Raised when there is no store context for the request."""
    code = 'STORE_REQUIRED'

    def __init__(self, message="Debes seleccionar un negocio primero."):
        super().__init__(message, 403)
