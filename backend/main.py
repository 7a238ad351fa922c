"""
Source Chat Backend - FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routers import chat, config, sources
from services.config_manager import ConfigManager
from services.session_store import SessionStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown logic"""
    print("[Backend] Starting Source Chat Backend...")
    config_manager = ConfigManager.get_instance()
    backend = config_manager.get_config()["backend"]
    print(f"[Backend] ConfigManager initialized (upstream: {backend['baseUrl']})")
    SessionStore.get_instance()

    yield
    print("[Backend] Shutting down Source Chat Backend...")
    SessionStore.get_instance().close()


app = FastAPI(
    title="Source Chat Backend",
    description="Streaming question answering over uploaded sources",
    version="1.0.0",
    lifespan=lifespan,
)

# The browser UI is served from a different origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(sources.router, prefix="/api/sources", tags=["sources"])
app.include_router(config.router, prefix="/api/config", tags=["config"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "source-chat-backend"}


if __name__ == "__main__":
    import uvicorn

    server = ConfigManager.get_instance().get_config()["server"]
    uvicorn.run(app, host=server["host"], port=server["port"])
