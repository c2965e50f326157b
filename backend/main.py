from contextlib import asynccontextmanager
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import logging
import os
import uuid
from dotenv import load_dotenv

from errors import StoreFailure, TaskNotFound, TaskServiceError, ValidationError
from models import PRIORITIES, STATUSES, GenerateRequest, Task, TaskCreate, TaskUpdate
from reconcile import parse_due_date
from ingestion import ingest_text
import database
import generation

load_dotenv()

logger = logging.getLogger(__name__)

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    database.init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaskServiceError)
async def task_service_error_handler(request: Request, exc: TaskServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are a 400; 422 means the AI matched a missing task."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return JSONResponse(status_code=400, content={"detail": "; ".join(problems) or "Invalid request"})


@app.get("/tasks")
def get_tasks() -> list[Task]:
    return database.get_all_tasks()


@app.get("/tasks/{task_id}")
def get_task(task_id: str) -> Task:
    task = database.get_task_db(task_id)
    if not task:
        raise TaskNotFound()
    return task


@app.post("/tasks", status_code=201)
def create_task(task_data: TaskCreate) -> Task:
    """Create a task by hand."""
    if not task_data.title or not task_data.title.strip():
        raise ValidationError("Title is required")

    priority = (task_data.priority or "MEDIUM").upper()
    if priority not in PRIORITIES:
        raise ValidationError(f"Invalid priority: {task_data.priority}")

    return database.create_task_db(
        str(uuid.uuid4()),
        task_data.title.strip(),
        description=task_data.description,
        priority=priority,
        due_date=parse_due_date(task_data.due_date)
    )


@app.put("/tasks")
def update_task(task_data: TaskUpdate) -> Task:
    """Set a task's status. isCompleted is shorthand for DONE/TODO."""
    if not task_data.id:
        raise ValidationError("Task ID is required")

    status = task_data.status
    if task_data.is_completed is not None:
        status = "DONE" if task_data.is_completed else "TODO"
    if status is None:
        raise ValidationError("No fields to update")
    if status not in STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    result = database.update_task_db(task_data.id, status=status)
    if not result:
        raise TaskNotFound()
    return result


@app.delete("/tasks")
def delete_task(task_id: Optional[str] = Query(default=None, alias="id")) -> dict:
    if not task_id:
        raise ValidationError("Task ID is required")
    if not database.delete_task_db(task_id):
        raise TaskNotFound()
    return {"success": True}


@app.post("/tasks/generate")
async def generate_task(request: GenerateRequest) -> Task:
    """Turn free text into a new task, or fold it into a matching open one."""
    if not request.text or not request.text.strip():
        raise ValidationError("Content is required")

    return await ingest_text(request.text, timezone=request.timezone)


@app.get("/debug")
def debug() -> dict:
    """Report configuration and database connectivity without exposing secrets."""
    report = {
        "apiKeyConfigured": generation.api_key_configured(),
        "model": generation.ANTHROPIC_MODEL,
        "databasePath": database.DATABASE_PATH,
    }
    try:
        report["database"] = {"status": "connected", "taskCount": database.count_tasks()}
    except StoreFailure as e:
        report["database"] = {"status": "failed", "error": str(e)}
    return report


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
