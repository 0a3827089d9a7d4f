"""
api/routes/tasks.py -- Task CRUD routes of the tasks service.

Routes:
  GET    /tasks        -- caller's tasks, newest first
  POST   /tasks        -- create a task (status "pending"); 201
  PUT    /tasks/{id}   -- partial update; empty fields keep stored values
  DELETE /tasks/{id}   -- 204

Auth policy: every route requires a token the auth service accepts
(router-level Depends(require_user_id)). Individual handlers take the
resolved user id as a parameter; FastAPI caches the dependency per request,
so the auth service is called once per request, not twice.

Ownership: PUT and DELETE pass both task_id and user_id to the store, whose
WHERE clause requires both to match. A task owned by someone else answers 404,
exactly like a missing one -- never 403, so task ids cannot be probed.

Throttling: @router.* must be the outer decorator so the router registers
slowapi's wrapper, which runs the TASKS_LIMIT check. With the order reversed
the router holds the bare function, SlowAPIMiddleware skips it as
decorated, and no limit is ever applied.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import require_user_id
from api.limiter import TASKS_LIMIT, limiter
from api.models import TaskCreate, TaskResponse, TaskUpdate
from core.errors import NotFound
from tasks.models import Task
from tasks.store import TaskStore

router = APIRouter(dependencies=[Depends(require_user_id)])


def _not_found() -> NotFound:
    return NotFound("Task not found.")


@router.get("/tasks", response_model=list[TaskResponse])
@limiter.limit(TASKS_LIMIT)
def list_tasks(request: Request, user_id: int = Depends(require_user_id)) -> list[TaskResponse]:
    store: TaskStore = request.app.state.task_store
    return [TaskResponse.from_task(t) for t in store.list_tasks(user_id)]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
@limiter.limit(TASKS_LIMIT)
def create_task(request: Request, body: TaskCreate, user_id: int = Depends(require_user_id)) -> TaskResponse:
    store: TaskStore = request.app.state.task_store
    task = store.create_task(Task(user_id=user_id, title=body.title, description=body.description))
    return TaskResponse.from_task(task)


@router.put("/tasks/{task_id}", response_model=TaskResponse)
@limiter.limit(TASKS_LIMIT)
def update_task(
    request: Request,
    task_id: int,
    body: TaskUpdate,
    user_id: int = Depends(require_user_id),
) -> TaskResponse:
    """Apply a partial update. Missing, null and empty-string fields are left alone."""
    store: TaskStore = request.app.state.task_store
    updated = store.update_task(
        task_id,
        user_id,
        title=body.title,
        description=body.description,
        status=body.status,
    )
    if updated is None:
        raise _not_found()
    return TaskResponse.from_task(updated)


@router.delete("/tasks/{task_id}", status_code=204)
@limiter.limit(TASKS_LIMIT)
def delete_task(request: Request, task_id: int, user_id: int = Depends(require_user_id)) -> Response:
    store: TaskStore = request.app.state.task_store
    if not store.delete_task(task_id, user_id):
        raise _not_found()
    return Response(status_code=204)
