from fastapi.responses import JSONResponse, Response


class ApiError(Exception):
    """Raised by handlers; rendered as ``{"message": ..., "data": ...}``."""

    def __init__(self, status_code: int, message: str, data=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.data = data


def envelope(data=None, message: str = "OK", status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "data": data})


def ok(data, message: str = "OK") -> JSONResponse:
    return envelope(data, message, 200)


def created(data, message: str = "Created") -> JSONResponse:
    return envelope(data, message, 201)


def no_content() -> Response:
    return Response(status_code=204)


def bad_request(message: str = "Bad Request") -> ApiError:
    return ApiError(400, message)


def not_found(message: str = "Not Found") -> ApiError:
    return ApiError(404, message)
