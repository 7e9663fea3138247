"""Task tracking."""

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from src.models.conversation import SystemEvent, SystemEventType, WorkspaceConversation
from src.models.drafting import AgentAction
from src.models.stage import is_valid_stage
from src.models.session import SessionContext
from src.models.task import Task, TaskCreate, TaskPriority, TaskStatus, TaskUpdate
from src.services import conversation_store
from src.services.supabase_client import delete_where, fetch_by_id, fetch_where, insert_row, update_by_id
from src.utils.errors import NotFoundError, StageOutOfRangeError, SupabaseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

PRIORITY_ORDER = {
    TaskPriority.HIGH.value: 0,
    TaskPriority.MEDIUM.value: 1,
    TaskPriority.LOW.value: 2,
}


def apply_completion_rule(
    updates: dict,
    previous_status: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Derive completed_at from status.

    Moving into Complete stamps completed_at; any other status clears it.
    Complete -> Complete keeps the original stamp. Caller-supplied
    completed_at values are always discarded.
    """
    result = dict(updates)
    result.pop("completed_at", None)
    status = result.get("status")
    if status is None:
        return result
    if status == TaskStatus.COMPLETE.value:
        if previous_status != TaskStatus.COMPLETE.value:
            result["completed_at"] = (now or datetime.now(timezone.utc)).isoformat()
    else:
        result["completed_at"] = None
    return result


async def create_task(data: TaskCreate, session: SessionContext) -> Task:
    session.require_agent("create tasks")
    row = data.model_dump(mode="json", exclude_none=True)
    row["agent_id"] = session.user_id
    row = apply_completion_rule(row)
    created = await insert_row("tasks", row)
    logger.info("Task created", task_id=created.get("id"), buyer_id=data.buyer_id)
    return Task.model_validate(created)


async def create_task_from_action(
    action: AgentAction,
    buyer_id: str,
    stage_id: int,
    session: SessionContext,
    due_date: Optional[date] = None,
) -> Task:
    """Turn a suggested action into a tracked task."""
    if not is_valid_stage(stage_id):
        raise StageOutOfRangeError(f"Stage {stage_id} is not in the stage catalog")
    data = TaskCreate(
        buyer_id=buyer_id,
        stage_id=stage_id,
        title=action.label,
        description=action.command,
        due_date=due_date,
        priority=TaskPriority.HIGH if action.type == "artifact" else TaskPriority.MEDIUM,
        source_action_id=action.id,
    )
    return await create_task(data, session)


async def get_task(task_id: str) -> Task:
    row = await fetch_by_id("tasks", task_id)
    if row is None:
        raise NotFoundError(f"Task {task_id} not found")
    return Task.model_validate(row)


async def update_task(
    task_id: str,
    updates: TaskUpdate,
    session: SessionContext,
    conversation: Optional[WorkspaceConversation] = None,
) -> Task:
    """Apply a partial update. Completing a linked task records a timeline event."""
    session.require_agent("update tasks")
    previous_status = None
    if updates.status is not None:
        previous_status = (await get_task(task_id)).status
    changes = apply_completion_rule(updates.model_dump(mode="json", exclude_unset=True), previous_status)
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    row = await update_by_id("tasks", task_id, changes)
    task = Task.model_validate(row)

    newly_completed = (
        task.status == TaskStatus.COMPLETE.value
        and previous_status is not None
        and previous_status != TaskStatus.COMPLETE.value
    )
    if newly_completed and task.buyer_id:
        await _record_completion(task, conversation)
    return task


async def _record_completion(task: Task, conversation: Optional[WorkspaceConversation]) -> None:
    """Best-effort timeline event; the task write has already happened."""
    stage_id = task.stage_id
    if stage_id is None:
        stage_id = conversation.current_stage_id if conversation else 0
    try:
        event = SystemEvent(
            buyer_id=task.buyer_id,
            stage_id=stage_id,
            event_type=SystemEventType.TASK_COMPLETED,
            title=f"Task completed: {task.title}",
            metadata={"task_id": task.id},
        )
        if conversation is not None:
            conversation.append(event)
        await conversation_store.save_item(event)
    except (SupabaseError, ValueError) as e:
        logger.warning("Failed to record task-completed event", task_id=task.id, error=str(e))


async def delete_task(task_id: str, session: SessionContext) -> None:
    session.require_agent("delete tasks")
    deleted = await delete_where("tasks", {"id": task_id})
    if not deleted:
        raise NotFoundError(f"Task {task_id} not found")


async def list_tasks(session: SessionContext, buyer_id: Optional[str] = None) -> list[Task]:
    if buyer_id:
        session.require_buyer_access(buyer_id)
        rows = await fetch_where("tasks", {"buyer_id": buyer_id}, order_by="due_date")
    else:
        session.require_agent("list all tasks")
        rows = await fetch_where("tasks", {"agent_id": session.user_id}, order_by="due_date")
    return sort_tasks(Task.model_validate(row) for row in rows)


def sort_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Priority first, then due date with undated tasks last."""
    return sorted(
        tasks,
        key=lambda t: (
            PRIORITY_ORDER.get(t.priority, len(PRIORITY_ORDER)),
            t.due_date is None,
            t.due_date or date.max,
        ),
    )


def filter_by_status(tasks: Iterable[Task], status: TaskStatus) -> list[Task]:
    return [t for t in tasks if t.status == TaskStatus(status).value]


def group_by_priority(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    groups: dict[str, list[Task]] = {p.value: [] for p in TaskPriority}
    for task in sort_tasks(tasks):
        groups[task.priority].append(task)
    return groups


def overdue_tasks(tasks: Iterable[Task], today: Optional[date] = None) -> list[Task]:
    today = today or date.today()
    return [
        t for t in sort_tasks(tasks)
        if t.due_date is not None and t.due_date < today and t.status != TaskStatus.COMPLETE.value
    ]
