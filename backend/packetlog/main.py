import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .db import init_models, make_engine, make_sessionmaker
from .hub import LiveBroadcastHub
from .ingest import IngestionPipeline, UdpListener
from .routers import live, packets
from .store import PacketStore, create_store

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    store: PacketStore | None = None,
    hub: LiveBroadcastHub | None = None,
    start_udp: bool | None = None,
) -> FastAPI:
    """Build the service. *store* and *hub* are created from *settings* unless given."""

    settings = settings or load_settings()
    hub = hub or LiveBroadcastHub()
    if start_udp is None:
        start_udp = settings.udp_enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        packet_store = store
        if packet_store is None:
            if settings.store_backend == "sql":
                engine = make_engine(settings.database_url)
                # keep serving even if the database is down; requests fail until it's back
                await init_models(engine)
                packet_store = create_store(settings, make_sessionmaker(engine))
            else:
                packet_store = create_store(settings)

        pipeline = IngestionPipeline(packet_store, hub)
        app.state.store = packet_store
        app.state.hub = hub
        app.state.pipeline = pipeline

        listener = None
        if start_udp:
            listener = UdpListener(pipeline, settings.udp_host, settings.udp_port)
            await listener.start()
        try:
            yield
        finally:
            if listener is not None:
                await listener.stop()
            if engine is not None:
                await engine.dispose()

    app = FastAPI(title="LoRa packet logger", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())[1:]) or 'request'}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": problems or "invalid request"})

    app.include_router(packets.router)
    app.include_router(live.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    logging.basicConfig(
        level=_settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=_settings.http_host, port=_settings.http_port)
