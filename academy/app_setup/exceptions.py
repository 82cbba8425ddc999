from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

# module academy.app_setup.exceptions
def register_exception_handlers(app: FastAPI) -> None:
    """Toute HTTPException -> {"detail": ...} JSON (en-têtes éventuels conservés, ex: 429 Retry-After)."""
    @app.exception_handler(HTTPException)
    async def http_exception_as_json(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )
