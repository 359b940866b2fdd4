"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Request

from .assets import AssetHost
from .config import Settings, settings
from .identity import MemoryIdentityProvider
from .remote.client import StoreClient
from .remote.identity import WebSocketIdentityProvider
from .remote.store import WebSocketDocumentStore
from .schemas import (
    Credentials,
    ExpenseCreate,
    ImportRequest,
    JournalCreate,
    MarkRequest,
    PasswordResetRequest,
    ProfileUpdate,
    SignupRequest,
    TaskCreate,
    TodoCreate,
)
from .service import LifeSync
from .sync.cache import LocalCache
from .sync.memory import MemoryDocumentStore

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def build_service(config: Settings) -> tuple[LifeSync, Optional[StoreClient]]:
    """
    Wire the service to its collaborators.

    Without a store URL everything runs in memory (local mode).

    Returns:
        Tuple of (service, client); client is None in local mode and must
        be connected before use otherwise
    """
    cache = LocalCache(config.cache_path)
    assets = AssetHost(
        config.asset_upload_url,
        config.asset_upload_preset,
        max_bytes=config.max_upload_bytes,
    )

    if config.store_url:
        client = StoreClient(config.store_url, config.store_token)
        identity = WebSocketIdentityProvider(client)
        store = WebSocketDocumentStore(client)
    else:
        logger.warning("STORE_URL not set, running with in-memory store")
        client = None
        identity = MemoryIdentityProvider()
        store = MemoryDocumentStore()

    service = LifeSync(
        identity,
        store,
        cache,
        assets=assets,
        lock_window_days=config.lock_window_days,
    )
    return service, client


def create_app(service: Optional[LifeSync] = None) -> FastAPI:
    """
    Create the API application.

    Args:
        service: Pre-built service; built from settings at startup if None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if service is None:
            app.state.service, client = build_service(settings)
            if client:
                await client.connect()
        else:
            app.state.service = service

        yield

        await app.state.service.close()
        if client:
            await client.disconnect()

    app = FastAPI(
        title="LifeSync",
        description="Habit tracker with a synchronized document store",
        version=VERSION,
        lifespan=lifespan,
    )

    def get_service(request: Request) -> LifeSync:
        return request.app.state.service

    def result(ok: bool) -> dict:
        return {"status": "success" if ok else "error"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "LifeSync",
            "version": VERSION,
            "endpoints": {
                "state": "/api/state",
                "calendar": "/api/calendar/{year}/{month}",
                "dashboard": "/api/dashboard",
                "insights": "/api/insights",
                "status": "/status",
            },
        }

    @app.get("/status")
    async def status(request: Request):
        """Server status endpoint."""
        service = get_service(request)
        return {
            "status": "running",
            "version": VERSION,
            "timestamp": datetime.utcnow().isoformat(),
            "signed_in": service.session is not None,
        }

    # --- Auth ---

    @app.post("/api/auth/login")
    async def login(body: Credentials, request: Request):
        return result(await get_service(request).login(body.email, body.password))

    @app.post("/api/auth/signup")
    async def signup(body: SignupRequest, request: Request):
        return result(await get_service(request).signup(body.email, body.password, body.name))

    @app.post("/api/auth/logout")
    async def logout(request: Request):
        return result(await get_service(request).logout())

    @app.post("/api/auth/reset")
    async def reset_password(body: PasswordResetRequest, request: Request):
        return result(await get_service(request).reset_password(body.email))

    @app.get("/api/user")
    async def user(request: Request):
        current = get_service(request).user
        if current is None:
            raise HTTPException(status_code=401, detail="Not signed in")
        return current

    @app.patch("/api/user")
    async def update_user(body: ProfileUpdate, request: Request):
        return result(await get_service(request).update_user(**body.model_dump()))

    # --- State and views ---

    @app.get("/api/state")
    async def state(request: Request):
        """The full working set."""
        return get_service(request).state.to_document()

    @app.get("/api/calendar/{year}/{month}")
    async def calendar(year: int, month: int, request: Request):
        if not 1 <= month <= 12:
            raise HTTPException(status_code=422, detail="month must be 1-12")
        return [
            {
                "date": summary.day.isoformat(),
                "status": summary.status.value,
                "active": summary.active,
                "completed": summary.completed,
                "locked": summary.locked,
            }
            for summary in get_service(request).calendar(year, month)
        ]

    @app.get("/api/dashboard")
    async def dashboard(request: Request):
        return get_service(request).dashboard()

    @app.get("/api/insights")
    async def insights(request: Request):
        return get_service(request).insights()

    @app.get("/api/toasts")
    async def toasts(request: Request):
        """Pending toasts, oldest first; reading clears them."""
        return [
            {"id": toast.id, "message": toast.message, "type": toast.kind}
            for toast in get_service(request).notifier.drain()
        ]

    # --- Habits ---

    @app.post("/api/tasks")
    async def add_task(body: TaskCreate, request: Request):
        habit = await get_service(request).add_task(**body.model_dump())
        if habit is None:
            return result(False)
        return {**result(True), "task": habit.to_document()}

    @app.get("/api/tasks/{task_id}")
    async def task_detail(task_id: str, request: Request):
        """A habit with its proofs and recently missed days."""
        detail = get_service(request).task_detail(task_id)
        if detail is None:
            raise HTTPException(status_code=404, detail="Habit not found")
        return detail

    @app.get("/api/proofs")
    async def proof_wall(
        request: Request,
        task_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ):
        """Proofs newest first, filtered by habit and day range."""
        proofs = get_service(request).proof_wall(task_id, start, end)
        return [proof.to_document() for proof in proofs]

    @app.post("/api/tasks/{task_id}/complete")
    async def mark_task(task_id: str, body: MarkRequest, request: Request):
        return result(await get_service(request).mark_task(task_id, body.remark, day=body.day))

    # --- Journal, todos, expenses ---

    @app.post("/api/journal")
    async def add_journal(body: JournalCreate, request: Request):
        return result(await get_service(request).add_journal(**body.model_dump()))

    @app.put("/api/journal/{entry_id}")
    async def update_journal(entry_id: str, body: JournalCreate, request: Request):
        service = get_service(request)
        entry = next((j for j in service.state.journal if j.id == entry_id), None)
        if entry is None:
            raise HTTPException(status_code=404, detail="Journal entry not found")
        return result(await service.update_journal(entry.model_copy(update=body.model_dump())))

    @app.delete("/api/journal/{entry_id}")
    async def delete_journal(entry_id: str, request: Request):
        return result(await get_service(request).delete_journal(entry_id))

    @app.post("/api/todos")
    async def add_todo(body: TodoCreate, request: Request):
        return result(await get_service(request).add_todo(body.text, body.due_date))

    @app.post("/api/todos/{todo_id}/toggle")
    async def toggle_todo(todo_id: str, request: Request):
        return result(await get_service(request).toggle_todo(todo_id))

    @app.delete("/api/todos/{todo_id}")
    async def delete_todo(todo_id: str, request: Request):
        return result(await get_service(request).delete_todo(todo_id))

    @app.post("/api/expenses")
    async def add_expense(body: ExpenseCreate, request: Request):
        return result(
            await get_service(request).add_expense(
                body.amount, body.category, body.description, day=body.day
            )
        )

    @app.delete("/api/expenses/{expense_id}")
    async def delete_expense(expense_id: str, request: Request):
        return result(await get_service(request).delete_expense(expense_id))

    # --- Settings and backups ---

    @app.post("/api/settings/sound")
    async def toggle_sound(request: Request):
        return result(await get_service(request).toggle_sound())

    @app.post("/api/settings/dark-mode")
    async def toggle_dark_mode(request: Request):
        return result(await get_service(request).toggle_dark_mode())

    @app.get("/api/export")
    async def export_data(request: Request):
        return {"data": get_service(request).export_data()}

    @app.post("/api/import")
    async def import_data(body: ImportRequest, request: Request):
        return result(get_service(request).import_data(body.data))

    @app.post("/api/reset")
    async def reset_data(request: Request):
        return result(get_service(request).reset_data())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
