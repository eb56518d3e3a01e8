"""Control panel API using FastAPI.

Exposes the launcher gateway over HTTP with a fixed route table and a single
control page. Application-level failures are reported in a
``{success, message}`` body with status 200; only routing failures get a
non-200 status.

Example:
    >>> app = create_app(launcher=launcher)
    >>> uvicorn.run(app, host="0.0.0.0", port=9091)
"""

import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from display_launcher import __version__
from display_launcher.gateway.launcher import AppLauncher
from display_launcher.models.app import ApiResponse, LaunchRequest

logger = logging.getLogger(__name__)

PACKAGE_NAME_REQUIRED = "Package name is required"


def json_response(success: bool, message: str) -> JSONResponse:
    """Build the standard result envelope."""
    return JSONResponse(content=ApiResponse(success=success, message=message).model_dump())


async def read_launch_request(request: Request) -> LaunchRequest:
    """Decode a JSON body leniently.

    Raises:
        ValueError: If the body is not valid JSON or not an object of strings
    """
    body: Any = await request.json()
    try:
        return LaunchRequest.model_validate(body)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in e.errors()
        )
        raise ValueError(f"Invalid request body ({problems})") from e


def create_app(launcher: AppLauncher, title: str = "Display Launcher") -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        launcher: Gateway the routes delegate to
        title: Title shown on the control page

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=f"{title} Control API",
        description="Remote listing, launching and installing of device applications",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.launcher = launcher

    templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug(f"Request: {request.method} {request.url.path}")
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and known paths with the wrong method look the same
        if exc.status_code in (404, 405):
            return PlainTextResponse("Not Found", status_code=404)
        return json_response(False, f"Error: {exc.detail}")

    @app.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Error serving request: {exc}", exc_info=exc)
        return json_response(False, f"Server error: {exc}")

    # Control page

    @app.get("/", response_class=HTMLResponse)
    async def control_panel(request: Request) -> HTMLResponse:
        """Serve the control panel page."""
        return templates.TemplateResponse(
            request, "index.html", {"title": title, "version": __version__}
        )

    # Application directory

    @app.get("/api/apps")
    async def list_apps() -> JSONResponse:
        """Get the current application directory."""
        try:
            apps = await launcher.list_applications()
            return JSONResponse(content=[app.model_dump(by_alias=True) for app in apps])
        except Exception as e:
            logger.error(f"Error getting apps: {e}", exc_info=True)
            return json_response(False, f"Error: {e}")

    # Control operations

    @app.post("/api/launch")
    async def launch_app(request: Request) -> JSONResponse:
        """Launch an app through its default entry point."""
        try:
            body = await read_launch_request(request)
            if not body.package_name:
                return json_response(False, PACKAGE_NAME_REQUIRED)

            if await launcher.launch(body.package_name):
                return json_response(True, "App launched successfully")
            return json_response(False, "Failed to launch app")
        except Exception as e:
            logger.error(f"Error launching app: {e}", exc_info=True)
            return json_response(False, f"Error: {e}")

    @app.post("/api/launch-intent")
    async def launch_app_with_intent(request: Request) -> JSONResponse:
        """Launch an app with a custom action, data URI and extras."""
        try:
            body = await read_launch_request(request)
            if not body.package_name:
                return json_response(False, PACKAGE_NAME_REQUIRED)

            success = await launcher.launch_with_intent(
                body.package_name, body.action, body.data, body.extras
            )
            if success:
                return json_response(True, "App launched successfully with intent")
            return json_response(False, "Failed to launch app with intent")
        except Exception as e:
            logger.error(f"Error launching app with intent: {e}", exc_info=True)
            return json_response(False, f"Error: {e}")

    @app.post("/api/uninstall")
    async def uninstall_app(request: Request) -> JSONResponse:
        """Open the uninstall confirmation for an app."""
        try:
            body = await read_launch_request(request)
            if not body.package_name:
                return json_response(False, PACKAGE_NAME_REQUIRED)

            if await launcher.request_uninstall(body.package_name):
                return json_response(True, "Uninstall dialog opened")
            return json_response(False, "Failed to open uninstall dialog")
        except Exception as e:
            logger.error(f"Error uninstalling app: {e}", exc_info=True)
            return json_response(False, f"Error: {e}")

    @app.post("/api/upload-apk")
    async def upload_apk(file: Optional[UploadFile] = File(None)) -> JSONResponse:
        """Stage an uploaded APK and open the install confirmation."""
        if file is None:
            return json_response(False, "No file uploaded")

        apk_path: Optional[Path] = None
        try:
            launcher.sweep_stale_artifacts()
            apk_path = launcher.stager.stage(file.file)
            await file.close()

            if await launcher.stage_and_request_install(apk_path):
                return json_response(True, "Install dialog opened for uploaded APK")
            return json_response(False, "Failed to open install dialog")
        except Exception as e:
            logger.error(f"Error uploading APK: {e}", exc_info=True)
            if apk_path is not None:
                launcher.stager.discard(apk_path)
            return json_response(False, f"Error: {e}")

    # Health

    @app.get("/api/health")
    async def health_check() -> JSONResponse:
        """Liveness check."""
        return json_response(True, "Server is running")

    return app
