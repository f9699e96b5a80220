"""Error taxonomy shared by the service modules and the HTTP layer."""


class RecipeShareError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RecipeShareError):
    status_code = 400


class UnauthenticatedError(RecipeShareError):
    status_code = 401


class ForbiddenError(RecipeShareError):
    status_code = 403


class NotFoundError(RecipeShareError):
    status_code = 404


class ConflictError(RecipeShareError):
    status_code = 409
