from __future__ import annotations

from datetime import date
from typing import Optional, List

from pydantic import BaseModel, Field


class RegisterPayload(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TaskCreate(BaseModel):
    title: Optional[str] = None
    description: str = ""
    priority: str = "medium"
    status: str = "todo"
    due_date: Optional[str] = None


class TaskPatch(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[str] = None


class NoteCreate(BaseModel):
    title: Optional[str] = None
    content: str = ""
    folder: str = "General"
    tags: List[str] = Field(default_factory=list)


class NotePatch(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    folder: Optional[str] = None
    tags: Optional[List[str]] = None


class HabitCreate(BaseModel):
    name: Optional[str] = None
    description: str = ""
    frequency: str = "daily"
    color: str = "#C9A84C"


class HabitPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    frequency: Optional[str] = None
    color: Optional[str] = None


class HabitLogPayload(BaseModel):
    log_date: Optional[date] = Field(None, alias="date")
