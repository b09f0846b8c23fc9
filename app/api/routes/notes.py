"""
Internal notes board: announcements, private messages, reactions and
comments.
"""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import paginate
from app.core.database import get_db
from app.core.exceptions import (
    AuthorizationException,
    InvalidReferenceException,
    NotFoundException,
    ValidationException,
)
from app.core.security import get_tenant_user
from app.models.audit_log import AuditAction
from app.models.note import (
    Note,
    NoteCategory,
    NoteComment,
    NotePriority,
    NoteRead,
    NoteReaction,
    NoteRecipient,
    NoteType,
)
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.note import (
    CommentCreate,
    CommentResponse,
    NoteAuthor,
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
    ReactionRequest,
    ReactionResponse,
    UnreadCountResponse,
)
from app.services.audit_service import get_entity_changes, log_audit, snapshot

router = APIRouter(prefix="/notes", tags=["notes"])

NOTE_NOT_FOUND = "Nie znaleziono notatki"


def _visible_to(user: User, include_archived: bool = False) -> list:
    """Conditions selecting the notes ``user`` may see."""
    received = select(NoteRecipient.note_id).where(NoteRecipient.user_id == user.id)
    conditions = [
        Note.tenant_id == user.tenant_id,
        or_(
            Note.type != NoteType.PRIVATE,
            Note.author_id == user.id,
            Note.id.in_(received),
        ),
        or_(Note.expires_at.is_(None), Note.expires_at > datetime.now(timezone.utc)),
    ]
    if not include_archived:
        conditions.append(Note.is_archived.is_(False))
    return conditions


async def _get_visible_note(db: AsyncSession, note_id: UUID, user: User) -> Note:
    result = await db.execute(
        select(Note).where(Note.id == note_id, *_visible_to(user, include_archived=True))
    )
    note = result.scalar_one_or_none()
    if note is None:
        raise NotFoundException(NOTE_NOT_FOUND)
    return note


def _check_can_modify(note: Note, user: User) -> None:
    if note.author_id != user.id and not user.is_admin:
        raise AuthorizationException("Tylko autor lub administrator moze modyfikowac notatke")


async def _authors(db: AsyncSession, user_ids: set[UUID]) -> dict[UUID, NoteAuthor]:
    if not user_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    return {u.id: NoteAuthor.model_validate(u) for u in result.scalars().all()}


async def _to_responses(db: AsyncSession, notes: list[Note], user: User) -> list[NoteResponse]:
    """Attach author, recipients, read flag, reactions and comment counts."""
    if not notes:
        return []
    ids = [n.id for n in notes]

    authors = await _authors(db, {n.author_id for n in notes})

    recipients: dict[UUID, list[UUID]] = defaultdict(list)
    for note_id, user_id in (
        await db.execute(select(NoteRecipient.note_id, NoteRecipient.user_id).where(NoteRecipient.note_id.in_(ids)))
    ).all():
        recipients[note_id].append(user_id)

    read_ids = set(
        (
            await db.execute(
                select(NoteRead.note_id).where(NoteRead.note_id.in_(ids), NoteRead.user_id == user.id)
            )
        ).scalars().all()
    )

    reaction_counts: dict[UUID, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    own_reactions: dict[UUID, list[str]] = defaultdict(list)
    for note_id, user_id, emoji in (
        await db.execute(
            select(NoteReaction.note_id, NoteReaction.user_id, NoteReaction.emoji).where(NoteReaction.note_id.in_(ids))
        )
    ).all():
        reaction_counts[note_id][emoji] += 1
        if user_id == user.id:
            own_reactions[note_id].append(emoji)

    comment_counts = dict(
        (
            await db.execute(
                select(NoteComment.note_id, func.count(NoteComment.id))
                .where(NoteComment.note_id.in_(ids))
                .group_by(NoteComment.note_id)
            )
        ).all()
    )

    return [
        NoteResponse(
            id=n.id,
            title=n.title,
            content=n.content,
            type=n.type,
            priority=n.priority,
            category=n.category,
            is_pinned=n.is_pinned,
            is_archived=n.is_archived,
            entity_type=n.entity_type,
            entity_id=n.entity_id,
            expires_at=n.expires_at,
            author=authors.get(n.author_id),
            recipient_ids=recipients.get(n.id, []),
            is_read=n.id in read_ids or n.author_id == user.id,
            reactions_count=dict(reaction_counts.get(n.id, {})),
            user_reactions=own_reactions.get(n.id, []),
            comments_count=comment_counts.get(n.id, 0),
            created_at=n.created_at,
            updated_at=n.updated_at,
        )
        for n in notes
    ]


async def _mark_read(db: AsyncSession, note: Note, user: User) -> None:
    exists = await db.scalar(
        select(NoteRead.id).where(NoteRead.note_id == note.id, NoteRead.user_id == user.id)
    )
    if exists is None:
        db.add(NoteRead(note_id=note.id, user_id=user.id))


@router.get("", response_model=NoteListResponse)
async def list_notes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    type: Optional[NoteType] = None,
    priority: Optional[NotePriority] = None,
    category: Optional[NoteCategory] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    is_pinned: Optional[bool] = None,
    include_archived: bool = False,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> NoteListResponse:
    """Notes visible to the current user, pinned first, then newest."""
    query = select(Note).where(*_visible_to(current_user, include_archived))

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Note.title.ilike(pattern), Note.content.ilike(pattern)))
    if type:
        query = query.where(Note.type == type)
    if priority:
        query = query.where(Note.priority == priority)
    if category:
        query = query.where(Note.category == category)
    if entity_type:
        query = query.where(Note.entity_type == entity_type)
    if entity_id:
        query = query.where(Note.entity_id == entity_id)
    if is_pinned is not None:
        query = query.where(Note.is_pinned == is_pinned)

    query = query.order_by(Note.is_pinned.desc(), Note.created_at.desc())
    notes, pagination = await paginate(db, query, page, limit)

    return NoteListResponse(
        items=await _to_responses(db, list(notes), current_user),
        pagination=pagination,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> UnreadCountResponse:
    """Visible notes by other users that the current user has not opened."""
    read = select(NoteRead.note_id).where(NoteRead.user_id == current_user.id)
    count = await db.scalar(
        select(func.count(Note.id)).where(
            *_visible_to(current_user),
            Note.author_id != current_user.id,
            Note.id.notin_(read),
        )
    )
    return UnreadCountResponse(count=count or 0)


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    data: NoteCreate,
    request: Request,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    """
    Create a note.

    Announcements are reserved for administrators, pinning for managers
    and above. Private notes need at least one recipient.
    """
    if data.type == NoteType.ANNOUNCEMENT and not current_user.is_admin:
        raise AuthorizationException("Tylko administrator moze tworzyc ogloszenia")
    if data.is_pinned and not current_user.is_editor:
        raise AuthorizationException("Brak uprawnien do przypinania notatek")
    if data.type == NoteType.PRIVATE and not data.recipient_ids:
        raise ValidationException("Notatka prywatna wymaga co najmniej jednego odbiorcy")
    if data.type == NoteType.ENTITY_LINKED and not (data.entity_type and data.entity_id):
        raise ValidationException("Notatka powiazana wymaga wskazania obiektu")

    recipient_ids = set(data.recipient_ids)
    if recipient_ids:
        found = await db.scalar(
            select(func.count(User.id)).where(User.id.in_(recipient_ids), User.tenant_id == current_user.tenant_id)
        )
        if found != len(recipient_ids):
            raise InvalidReferenceException("Odbiorca nie istnieje", field="recipient_ids")

    note = Note(
        tenant_id=current_user.tenant_id,
        author_id=current_user.id,
        **data.model_dump(exclude={"recipient_ids"}),
    )
    db.add(note)
    await db.flush()
    for user_id in recipient_ids:
        db.add(NoteRecipient(note_id=note.id, user_id=user_id))

    log_audit(
        db,
        user=current_user,
        action=AuditAction.CREATE,
        entity_type="Note",
        entity_id=note.id,
        changes=get_entity_changes(None, snapshot(note)),
        request=request,
    )
    await db.commit()
    await db.refresh(note)

    return (await _to_responses(db, [note], current_user))[0]


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    """Get a note and mark it read."""
    note = await _get_visible_note(db, note_id, current_user)
    await _mark_read(db, note, current_user)
    await db.commit()
    return (await _to_responses(db, [note], current_user))[0]


@router.patch("/{note_id}", response_model=NoteResponse)
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    request: Request,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> NoteResponse:
    note = await _get_visible_note(db, note_id, current_user)
    _check_can_modify(note, current_user)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("is_pinned") and not current_user.is_editor:
        raise AuthorizationException("Brak uprawnien do przypinania notatek")

    old = snapshot(note)
    for field, value in update_data.items():
        setattr(note, field, value)

    log_audit(
        db,
        user=current_user,
        action=AuditAction.UPDATE,
        entity_type="Note",
        entity_id=note.id,
        changes=get_entity_changes(old, snapshot(note)),
        request=request,
    )
    await db.commit()
    await db.refresh(note)

    return (await _to_responses(db, [note], current_user))[0]


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    request: Request,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    note = await _get_visible_note(db, note_id, current_user)
    _check_can_modify(note, current_user)

    for model in (NoteRecipient, NoteRead, NoteReaction, NoteComment):
        await db.execute(delete(model).where(model.note_id == note.id))

    log_audit(
        db,
        user=current_user,
        action=AuditAction.DELETE,
        entity_type="Note",
        entity_id=note.id,
        request=request,
    )
    await db.delete(note)
    await db.commit()


@router.post("/{note_id}/read", response_model=MessageResponse)
async def mark_note_read(
    note_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    note = await _get_visible_note(db, note_id, current_user)
    await _mark_read(db, note, current_user)
    await db.commit()
    return MessageResponse(message="Oznaczono jako przeczytane")


@router.post("/{note_id}/reactions", response_model=ReactionResponse)
async def toggle_reaction(
    note_id: UUID,
    body: ReactionRequest,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> ReactionResponse:
    """Add the reaction, or remove it when the user already gave it."""
    note = await _get_visible_note(db, note_id, current_user)

    existing = (
        await db.execute(
            select(NoteReaction).where(
                and_(
                    NoteReaction.note_id == note.id,
                    NoteReaction.user_id == current_user.id,
                    NoteReaction.emoji == body.emoji,
                )
            )
        )
    ).scalar_one_or_none()

    if existing is not None:
        await db.delete(existing)
        action = "removed"
    else:
        db.add(NoteReaction(note_id=note.id, user_id=current_user.id, emoji=body.emoji))
        action = "added"
    await db.commit()

    return ReactionResponse(action=action, emoji=body.emoji)


@router.get("/{note_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    note_id: UUID,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> list[CommentResponse]:
    note = await _get_visible_note(db, note_id, current_user)
    result = await db.execute(
        select(NoteComment).where(NoteComment.note_id == note.id).order_by(NoteComment.created_at)
    )
    comments = result.scalars().all()
    authors = await _authors(db, {c.author_id for c in comments})
    return [
        CommentResponse(
            id=c.id,
            note_id=c.note_id,
            content=c.content,
            author=authors.get(c.author_id),
            created_at=c.created_at,
            updated_at=c.updated_at,
        )
        for c in comments
    ]


@router.post("/{note_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    note_id: UUID,
    body: CommentCreate,
    current_user: User = Depends(get_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    note = await _get_visible_note(db, note_id, current_user)
    content = body.content.strip()
    if not content:
        raise ValidationException("Tresc komentarza jest wymagana")

    comment = NoteComment(note_id=note.id, author_id=current_user.id, content=content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)

    return CommentResponse(
        id=comment.id,
        note_id=comment.note_id,
        content=comment.content,
        author=NoteAuthor.model_validate(current_user),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )
