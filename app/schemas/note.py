"""
Notes board schemas.
"""
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.note import NoteCategory, NotePriority, NoteType
from app.schemas.common import PaginationMeta


class NoteCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    content: str = Field(..., min_length=1)
    type: NoteType = NoteType.GENERAL
    priority: NotePriority = NotePriority.NORMAL
    category: NoteCategory = NoteCategory.GENERAL
    is_pinned: bool = False
    entity_type: Optional[str] = Field(None, max_length=50)
    entity_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None
    recipient_ids: list[UUID] = []


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    priority: Optional[NotePriority] = None
    category: Optional[NoteCategory] = None
    is_pinned: Optional[bool] = None
    is_archived: Optional[bool] = None
    expires_at: Optional[datetime] = None


class NoteAuthor(BaseModel):
    id: UUID
    name: Optional[str]
    email: str

    class Config:
        from_attributes = True


class NoteResponse(BaseModel):
    id: UUID
    title: Optional[str]
    content: str
    type: NoteType
    priority: NotePriority
    category: NoteCategory
    is_pinned: bool
    is_archived: bool
    entity_type: Optional[str]
    entity_id: Optional[UUID]
    expires_at: Optional[datetime]
    author: Optional[NoteAuthor] = None
    recipient_ids: list[UUID] = []
    is_read: bool = False
    reactions_count: dict[str, int] = {}
    user_reactions: list[str] = []
    comments_count: int = 0
    created_at: datetime
    updated_at: datetime


class NoteListResponse(BaseModel):
    items: list[NoteResponse]
    pagination: PaginationMeta


class UnreadCountResponse(BaseModel):
    count: int


class ReactionRequest(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=20)


class ReactionResponse(BaseModel):
    action: Literal["added", "removed"]
    emoji: str


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: UUID
    note_id: UUID
    content: str
    author: Optional[NoteAuthor] = None
    created_at: datetime
    updated_at: datetime
