"""
Taxonomie des erreurs métier du checkout et de l'authentification.
- Chaque erreur porte un code stable (exposé au client) et un statut HTTP.
- retryable=True signale une panne transitoire: le client peut rejouer l'appel.
- Le rendu JSON est centralisé dans app_setup/exceptions.py.
"""


class ServiceError(Exception):
    status_code = 500
    code = "server_error"
    retryable = False

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class Unauthorized(ServiceError):
    status_code = 401
    code = "unauthorized"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"


class InvalidCart(ServiceError):
    status_code = 400
    code = "invalid_cart"


class CouponNotFound(ServiceError):
    status_code = 404
    code = "coupon_not_found"


class CouponExpired(ServiceError):
    status_code = 404
    code = "coupon_expired"


class StoreUnavailable(ServiceError):
    status_code = 503
    code = "store_unavailable"
    retryable = True


class PersistenceConflict(ServiceError):
    code = "persistence_conflict"


class DuplicateKey(PersistenceConflict):
    code = "duplicate_key"


class SessionNotFound(ServiceError):
    status_code = 404
    code = "session_not_found"


class GatewayError(ServiceError):
    status_code = 502
    code = "gateway_error"


class GatewayUnavailable(GatewayError):
    status_code = 503
    code = "gateway_unavailable"
    retryable = True
