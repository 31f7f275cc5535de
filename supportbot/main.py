# Entry point for the FastAPI app
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import asyncio
import logging

from . import config
from .context import ChatContext
from .errors import ValidationError
from .security import RateLimiter, install_perimeter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def _read_json(request: Request):
    """Best-effort JSON parse; anything unparseable is treated as an empty body."""
    try:
        return await request.json()
    except Exception:
        logger.warning(f"[CHAT] Could not parse request body on {request.url.path}")
        return None


def create_app(
    context: ChatContext = None,
    wait_for_embeddings: bool = None,
    rate_limiter: RateLimiter = None,
    trust_proxy: bool = None,
) -> FastAPI:
    """Build the HTTP app.

    Args:
        context: Pre-built chat context; created from config at startup if omitted.
        wait_for_embeddings: Block startup until KB embeddings are built.
            Defaults to config.WAIT_FOR_EMBEDDINGS; when False, requests are
            served right away and see an empty vector index until the build
            finishes.
        rate_limiter: Per-IP limiter; defaults to the configured window.
        trust_proxy: Key the limiter on proxy headers; defaults to config.TRUST_PROXY.
    """
    if wait_for_embeddings is None:
        wait_for_embeddings = config.WAIT_FOR_EMBEDDINGS

    app = FastAPI(title="supportbot")
    app.state.chat_context = context
    app.state.warm_up_task = None

    if rate_limiter is None:
        rate_limiter = RateLimiter()
    install_perimeter(app, rate_limiter, trust_proxy=trust_proxy)
    # Added last so CORS headers are also set on 413/429 responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event():
        if app.state.chat_context is None:
            app.state.chat_context = ChatContext.create()
        ctx = app.state.chat_context
        logger.info(f"[STARTUP] Knowledge base rows: {len(ctx.records)}, dummy mode: {ctx.dummy_mode}")

        if wait_for_embeddings:
            await ctx.warm_up()
        else:
            app.state.warm_up_task = asyncio.create_task(ctx.warm_up())
        logger.info("[STARTUP] Initialization complete")

    @app.post("/api/chat")
    async def chat(request: Request):
        ctx: ChatContext = app.state.chat_context
        data = await _read_json(request)
        try:
            response = await ctx.composer.answer(data)
        except ValidationError as e:
            return JSONResponse(status_code=400, content={"error": e.detail})
        return response.to_dict()

    @app.post("/api/lead")
    async def lead(request: Request):
        ctx: ChatContext = app.state.chat_context
        data = await _read_json(request)
        try:
            new_lead = ctx.leads.add(data)
        except ValidationError as e:
            return JSONResponse(status_code=400, content={"error": e.detail})
        return {"ok": True, "lead": new_lead.to_dict()}

    @app.get("/health")
    def health():
        ctx: ChatContext = app.state.chat_context
        return {"ok": True, "kbRows": len(ctx.records) if ctx else 0}

    return app


app = create_app()


def run():
    import uvicorn

    logger.info(f"[STARTUP] Server starting on port {config.PORT}")
    uvicorn.run("supportbot.main:app", host=config.HOST, port=config.PORT)
