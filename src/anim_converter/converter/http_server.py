"""HTTP server for video/frame upload and animation download."""

from __future__ import annotations

import argparse
import logging
import os
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse, Response
from pydantic import BaseModel, ConfigDict
from starlette.types import Receive, Scope, Send

from anim_converter.adapters.encoders import resolve_ffmpeg_binary
from anim_converter.application.requests import build_request
from anim_converter.application.results import ConversionFailure
from anim_converter.converter.core import (
    open_session,
    run_conversion,
    safe_input_filename,
    save_upload,
)
from anim_converter.errors import (
    EncodeError,
    InvalidRequestError,
    PipelineError,
    UploadTooLargeError,
)
from anim_converter.infrastructure.resources import ResourceSet
from anim_converter.settings import ServiceSettings

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health response payload."""

    model_config = ConfigDict(extra="forbid")

    status: str


class ReadyResponse(BaseModel):
    """Readiness response payload."""

    model_config = ConfigDict(extra="forbid")

    status: str


class ArtifactResponse(FileResponse):
    """File response that releases the request's temporaries once sent.

    Release also runs when sending fails, e.g. on client disconnect.
    """

    def __init__(self, path: Path, *, resources: ResourceSet, **kwargs: Any) -> None:
        super().__init__(path, **kwargs)
        self.resources = resources

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.resources.release_all()


async def _convert_uploads(
    settings: ServiceSettings,
    uploads: Sequence[UploadFile],
    *,
    as_video: bool,
    fps: int | None,
    output_format: str,
    transparent: bool,
) -> Response:
    """Validate, stage, convert and stream one request's uploads."""
    if not uploads:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="no file uploaded",
        )
    names = [safe_input_filename(upload.filename or "") for upload in uploads]
    resolved_fps = settings.default_fps if fps is None else fps

    # Reject bad parameters before anything touches the filesystem.
    try:
        if as_video:
            build_request(
                video=Path(names[0]),
                output_format=output_format,
                transparent=transparent,
                fps=resolved_fps,
            )
        else:
            build_request(
                frames=[Path(name) for name in names],
                output_format=output_format,
                transparent=transparent,
                fps=resolved_fps,
            )
    except InvalidRequestError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc

    session = open_session(settings)
    handed_off = False
    try:
        upload_dir = session.scratch.uploads_dir()
        paths = [
            await run_in_threadpool(
                save_upload,
                session,
                upload_dir,
                name,
                upload.file,
                limit=settings.max_upload_bytes,
            )
            for name, upload in zip(names, uploads, strict=True)
        ]
        if as_video:
            request = build_request(
                video=paths[0],
                output_format=output_format,
                transparent=transparent,
                fps=resolved_fps,
            )
        else:
            request = build_request(
                frames=paths,
                output_format=output_format,
                transparent=transparent,
                fps=resolved_fps,
            )
        logger.info(
            "request %s: converting %d upload(s) to %s",
            session.request_id,
            len(paths),
            request.output_format,
        )
        outcome = await run_in_threadpool(run_conversion, session, request)
        if isinstance(outcome, ConversionFailure):
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": outcome.message, "stage": outcome.stage},
            )

        headers = {
            "X-Request-Id": session.request_id,
            "X-Output-Size": str(outcome.byte_size),
        }
        if outcome.transparency_dropped:
            headers["X-Transparency-Dropped"] = "true"
        response = ArtifactResponse(
            outcome.artifact_path,
            resources=session.resources,
            media_type=outcome.media_type,
            filename=outcome.filename,
            headers=headers,
        )
        handed_off = True
        return response
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE, detail=str(exc)
        ) from exc
    except PipelineError as exc:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc), "stage": exc.stage},
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    except Exception as exc:
        logger.exception("unexpected error during conversion %s", session.request_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="internal server error",
        ) from exc
    finally:
        if not handed_off:
            session.resources.release_all()


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    """Create conversion service HTTP application."""
    resolved_settings = settings or ServiceSettings.from_env()
    app = FastAPI(
        title="Animation Converter",
        version="0.1.0",
        description="Upload a video or image frames and download an animated GIF/AVI/WebM.",
    )
    app.state.settings = resolved_settings

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/readyz", response_model=ReadyResponse)
    async def readyz() -> Response:
        try:
            binary = resolve_ffmpeg_binary(resolved_settings.ffmpeg_binary)
        except EncodeError:
            binary = None
        if binary is None or shutil.which(binary) is None:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "ffmpeg unavailable"},
            )
        return JSONResponse(content={"status": "ready"})

    @app.post("/v1/convert")
    async def convert_video(
        video: UploadFile | None = File(default=None),
        fps: int | None = Form(default=None),
        output_format: str = Form(default="gif", alias="format"),
        transparent: bool = Form(default=False),
    ) -> Response:
        """Convert an uploaded video and stream the animation back."""
        return await _convert_uploads(
            resolved_settings,
            [video] if video is not None else [],
            as_video=True,
            fps=fps,
            output_format=output_format,
            transparent=transparent,
        )

    @app.post("/v1/convert/frames")
    async def convert_frames(
        frames: list[UploadFile] | None = File(default=None),
        fps: int | None = Form(default=None),
        output_format: str = Form(default="gif", alias="format"),
        transparent: bool = Form(default=False),
    ) -> Response:
        """Convert uploaded frames, ordered by filename, into an animation."""
        return await _convert_uploads(
            resolved_settings,
            frames or [],
            as_video=False,
            fps=fps,
            output_format=output_format,
            transparent=transparent,
        )

    return app


app = create_app()


def main() -> None:
    """Run conversion service HTTP entrypoint."""
    parser = argparse.ArgumentParser(description="Animation converter HTTP server.")
    parser.add_argument(
        "--host",
        default=os.getenv("ANIM_CONVERTER_HTTP_HOST", "0.0.0.0"),
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("ANIM_CONVERTER_HTTP_PORT", os.getenv("PORT", "3000"))),
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "anim_converter.converter.http_server:app",
        host=args.host,
        port=args.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
