from fastapi.responses import JSONResponse


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the ``{"error": ...}`` body the web client expects."""
    return JSONResponse(status_code=status_code, content={"error": message})
