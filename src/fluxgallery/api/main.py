"""Flux Gallery — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, the REST API routes, the mounted Gradio gallery
UI, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Prompt enhancement** is performed by
  :class:`~fluxgallery.api.prompt_enhancer.PromptEnhancer`, built on startup
  and stored on ``app.state``.  Downstream failures are absorbed there, so the
  endpoint only ever answers 200 or 400.
- **Gallery updates** travel over a
  :class:`~fluxgallery.core.events.BroadcastChannel` owned by the
  application.  ``POST /api/gallery/notify`` publishes onto it; every open
  gallery session bound to the same user reloads.
- **The gallery UI** is a Gradio app mounted at ``/ui`` sharing the same
  channel and gallery store.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/``                         Redirect to the gallery UI
GET       ``/api/config``               Version, default style, image hosts
POST      ``/api/translate-prompt``     Enhance a rough prompt
POST      ``/api/gallery/notify``       Broadcast a gallery update
GET       ``/api/transient/{name}``      Serve a file opened from the gallery
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    fluxgallery

Direct invocation::

    python -m fluxgallery.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import gradio as gr
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse

from fluxgallery import __version__
from fluxgallery.api.models import (
    EnhancementRequest,
    EnhancementResult,
    ErrorResponse,
    GalleryNotifyRequest,
)
from fluxgallery.api.prompt_enhancer import PromptEnhancer
from fluxgallery.core.completion import OpenAICompletionClient
from fluxgallery.core.config import config
from fluxgallery.core.events import GALLERY_UPDATE, BroadcastChannel, GalleryUpdateEvent
from fluxgallery.core.gallery_store import create_gallery_store
from fluxgallery.core.messages import get_message
from fluxgallery.ui.app import create_ui
from fluxgallery.ui.state import TRANSIENT_URL_PREFIX, GalleryServices

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application-wide collaborators.  The channel and store are created here,
# not in the lifespan, because the Gradio UI is mounted at import time and
# needs them.
# ---------------------------------------------------------------------------
channel = BroadcastChannel()
gallery_store = create_gallery_store(config)


# ---------------------------------------------------------------------------
# Application lifecycle: completion client setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Builds the :class:`PromptEnhancer` (with a lazily connecting OpenAI
        client) and stores it on ``app.state``.

    On shutdown:
        Closes the completion client and, for hosted backends, the gallery
        store's HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    completion_client = OpenAICompletionClient(
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout=config.completion_timeout,
    )
    app.state.enhancer = PromptEnhancer(
        completion_client,
        model=config.completion_model,
        temperature=config.completion_temperature,
        max_tokens=config.completion_max_tokens,
        default_style=config.default_style,
    )
    logger.info(f"PromptEnhancer initialised (model={config.completion_model}).")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    await completion_client.close()
    aclose = getattr(app.state.gallery_store, "aclose", None)
    if aclose is not None:
        await aclose()
    logger.info("Clients closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Flux Gallery",
    description="Prompt enhancement API and per-user image gallery.",
    version=__version__,
    lifespan=lifespan,
)
app.state.channel = channel
app.state.gallery_store = gallery_store
app.state.transient_dir = config.transient_dir

# Allow cross-origin requests so a separately served frontend can call the
# API during development.  In production, restrict ``allow_origins``.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer malformed request bodies with ``400 {"error": ...}``."""
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": get_message("invalid_request", config.locale)},
    )


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_enhancer(request: Request) -> PromptEnhancer:
    return request.app.state.enhancer


def get_channel(request: Request) -> BroadcastChannel:
    return request.app.state.channel


def get_transient_dir(request: Request) -> Path:
    return request.app.state.transient_dir


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def index() -> RedirectResponse:
    """Send browsers to the gallery UI."""
    return RedirectResponse(url="/ui/")


@app.get("/api/config")
async def get_config() -> dict:
    """Return the public application configuration.

    Returns:
        Dictionary with keys ``version``, ``default_style``, ``image_hosts``,
        and ``locale``.
    """
    return {
        "version": __version__,
        "default_style": config.default_style,
        "image_hosts": config.image_hosts,
        "locale": config.locale,
    }


@app.post(
    "/api/translate-prompt",
    response_model=EnhancementResult,
    responses={400: {"model": ErrorResponse}},
)
async def translate_prompt(
    req: EnhancementRequest,
    enhancer: PromptEnhancer = Depends(get_enhancer),
):
    """Turn rough text (any language) into an English image prompt.

    Completion-service failures and refusals never surface here: the
    enhancer substitutes a fallback prompt and the response is still 200.

    Args:
        req: Validated :class:`EnhancementRequest` payload.

    Returns:
        :class:`EnhancementResult` serialised as
        ``{"prompt": ..., "isValidImagePrompt": true}``, or a 400
        ``{"error": ...}`` when ``text`` is missing or empty.
    """
    if not req.text:
        return JSONResponse(
            status_code=400,
            content={"error": get_message("missing_text", config.locale)},
        )

    return await enhancer.enhance(req.text, req.style)


@app.post("/api/gallery/notify")
async def notify_gallery_update(
    req: GalleryNotifyRequest,
    channel: BroadcastChannel = Depends(get_channel),
) -> dict:
    """Broadcast that a user's gallery changed.

    Open gallery sessions bound to ``userId`` reload their images; sessions
    of other users ignore the event.

    Returns:
        Dictionary with ``success`` and ``listeners`` (number of gallery
        sessions the event was delivered to).
    """
    delivered = channel.publish(GALLERY_UPDATE, GalleryUpdateEvent(user_id=req.user_id))
    logger.info(f"Gallery update for {req.user_id} delivered to {delivered} listeners")
    return {"success": True, "listeners": delivered}


@app.get(f"{TRANSIENT_URL_PREFIX}/{{name}}", include_in_schema=False)
async def get_transient_file(
    name: str,
    transient_dir: Path = Depends(get_transient_dir),
) -> FileResponse:
    """Serve a transient file written when an embedded image is opened.

    Only plain file names inside the transient directory are served; the
    file disappears once the gallery session releases it.
    """
    if Path(name).name != name or name in ("", ".", ".."):
        raise HTTPException(status_code=404, detail="Not found")
    path = transient_dir / name
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(path)


# ---------------------------------------------------------------------------
# Gradio gallery UI.
# ---------------------------------------------------------------------------
app = gr.mount_gradio_app(
    app,
    create_ui(GalleryServices(store=gallery_store, channel=channel, config=config)),
    path="/ui",
)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~fluxgallery.core.config.config` (which
    loads from ``FLUXGALLERY_SERVER_HOST`` and ``FLUXGALLERY_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``fluxgallery`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "fluxgallery.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
