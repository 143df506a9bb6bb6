"""Custom exceptions for the point-of-sale application."""


class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PosError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(PosError):
    """Malformed input, e.g. a negative or non-numeric discount value."""
    def __init__(self, message, field=None):
        payload = {'field': field} if field else None
        super().__init__(message, 400, payload)
        self.field = field


class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, required, available, product_id=None):
        message = f"Insufficient stock for {product_name}: required {required}, available {available}"
        payload = {
            'product_id': product_id,
            'product_name': product_name,
            'required': required,
            'available': available,
        }
        super().__init__(message, status_code=409, payload=payload)
        self.product_id = product_id
        self.product_name = product_name
        self.required = required
        self.available = available


class PersistenceError(PosError):
    """Storage failure while committing; carries the raw error text."""
    def __init__(self, message):
        super().__init__(message, 500, {'error': 'persistence'})
