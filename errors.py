"""
Domain errors for the budgeting API.

Every error carries the HTTP status it maps to and a human readable message;
the HTTP layer renders them as {"message": ...}.
"""


class ApiError(Exception):
    status_code = 500
    message = "Erro interno"

    def __init__(self, message: str = None):
        if message:
            self.message = message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    message = "Dados inválidos."


class InvalidIdentifier(ValidationError):
    message = "ID inválido."


class Conflict(ApiError):
    # Material in use is reported as a client error, not 409
    status_code = 400
    message = "Não é possível deletar este material, pois ele está sendo usado em um ou mais orçamentos."


class NotFound(ApiError):
    status_code = 404
    message = "Recurso não encontrado."


class MethodNotAllowed(ApiError):
    status_code = 405
    message = "Método não permitido para este endpoint."


class StoreError(ApiError):
    status_code = 500
    message = "Erro ao acessar o banco de dados."
