"""
Request bodies for the HTTP API.

These schemas validate input at the API boundary only; the store re-normalizes
values, so the console and the API share one set of rules.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field

Priority = Literal["low", "medium", "high"]
Status = Literal["pending", "completed", "overdue"]


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, description="Task title; identical titles form one habit")
    description: Optional[str] = None
    date: Optional[dt.date] = Field(None, description="Scheduled day (default: today)")
    time: str = Field("8:00 pm", description="Time of day, free text")
    priority: Priority = "medium"
    status: Status = "pending"
    deadline: Optional[dt.date] = Field(None, description="Deadline day (default: today)")


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[Status] = None
    deadline: Optional[dt.date] = None


class NotificationRequest(BaseModel):
    type: Literal["check_overdue", "check_streaks", "manual", "overdue", "streaks"]


class NotionTaskBody(BaseModel):
    id: Optional[str] = Field(None, description="Notion page id (PATCH/DELETE)")
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[Status] = None
    deadline: Optional[str] = None


class StudyStart(BaseModel):
    task_id: str = Field(..., min_length=1)
