"""Wyjatki domenowe. Kazdy niesie kod HTTP, mapowany w jednym miejscu (register_error_handlers)."""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StorefrontError):
    status_code = 400


class NotFound(StorefrontError):
    status_code = 404


class Conflict(StorefrontError):
    status_code = 409


class EmptyCart(StorefrontError):
    status_code = 400

    def __init__(self, message: str = "Koszyk jest pusty"):
        super().__init__(message)


class InsufficientStock(StorefrontError):
    status_code = 400

    def __init__(self, product_id: int, product_name: str, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        super().__init__(
            f'Brak wystarczajacej ilosci "{product_name}". Dostepne: {available}'
        )


class ProductUnavailable(StorefrontError):
    status_code = 400

    def __init__(self, product_id: int, product_name: str | None = None):
        self.product_id = product_id
        self.product_name = product_name
        super().__init__(f'Produkt "{product_name or product_id}" nie jest juz dostepny')


class InvalidTransition(StorefrontError):
    status_code = 400

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Nie mozna zmienic statusu z '{current}' na '{requested}'")


class OrderNotCancellable(StorefrontError):
    status_code = 400

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Zamowienia w statusie '{status}' nie mozna anulowac")


class Unauthorized(StorefrontError):
    status_code = 401


class Forbidden(StorefrontError):
    status_code = 403
