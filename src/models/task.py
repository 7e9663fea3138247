"""Task models."""

from enum import Enum
from typing import Optional
from datetime import date
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.stage import is_valid_stage


def _check_stage(value: Optional[int]) -> Optional[int]:
    if value is not None and not is_valid_stage(value):
        raise ValueError(f"stage_id {value} is not in the stage catalog")
    return value


class TaskPriority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskStatus(str, Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"


class TaskAssignee(str, Enum):
    AGENT = "Agent"
    BUYER = "Buyer"
    THIRD_PARTY = "Third Party"


class Task(BaseModel):
    """Task row."""
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    agent_id: Optional[str] = None
    buyer_id: Optional[str] = Field(None, description="Linked buyer (null for general agent tasks)")
    stage_id: Optional[int] = Field(None, description="Stage catalog index")
    property_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: TaskAssignee = TaskAssignee.AGENT
    assigned_to_name: Optional[str] = Field(None, description="Free-text name when assigned to a third party")
    status: TaskStatus = TaskStatus.TODO
    completed_at: Optional[str] = None
    parent_task_id: Optional[str] = None
    source_action_id: Optional[str] = Field(None, description="Suggested action that generated this task")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("stage_id")
    @classmethod
    def _stage_in_catalog(cls, value: Optional[int]) -> Optional[int]:
        return _check_stage(value)


class TaskCreate(BaseModel):
    """Fields accepted when creating a task."""
    model_config = ConfigDict(use_enum_values=True)

    buyer_id: Optional[str] = None
    stage_id: Optional[int] = None
    property_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: TaskAssignee = TaskAssignee.AGENT
    assigned_to_name: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    parent_task_id: Optional[str] = None
    source_action_id: Optional[str] = None

    @field_validator("stage_id")
    @classmethod
    def _stage_in_catalog(cls, value: Optional[int]) -> Optional[int]:
        return _check_stage(value)

    @model_validator(mode="after")
    def _third_party_needs_name(self) -> "TaskCreate":
        if self.assigned_to == TaskAssignee.THIRD_PARTY.value and not self.assigned_to_name:
            raise ValueError("assigned_to_name is required for Third Party tasks")
        return self


class TaskUpdate(BaseModel):
    """Partial task update. completed_at is derived, never accepted from callers."""
    model_config = ConfigDict(use_enum_values=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[date] = None
    priority: Optional[TaskPriority] = None
    assigned_to: Optional[TaskAssignee] = None
    assigned_to_name: Optional[str] = None
    status: Optional[TaskStatus] = None
