from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
import logging

from db import get_db
from models.auth.user_models import User
from models.chat.chat_models import Chat, ChatMember, MemberRole, Message
from services.auth_service import get_current_user
from services.membership import (
    add_member,
    change_role,
    remove_member,
    require_manager,
    require_member,
    require_owner,
    validate_assignable_role,
)
from services.room_generator import conference_url, generate_room_name
from services.upload_service import delete_upload
from services.ws_manager import manager, run_from_thread

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chats", tags=["Chats"])


# Pydantic Schemas
class ChatCreate(BaseModel):
    title: Optional[str] = None
    memberIds: List[int] = []
    is_group: bool = True


class ChatRename(BaseModel):
    title: Optional[str] = None


class MemberAdd(BaseModel):
    userId: Optional[int] = None
    role: Optional[str] = None


class MemberRoleUpdate(BaseModel):
    role: Optional[str] = None


class MemberOut(BaseModel):
    id: int
    name: str
    email: str
    role: str


class ChatOut(BaseModel):
    id: int
    title: str
    jitsi_room: Optional[str] = None
    is_group: bool
    owner_id: int


class ChatSummary(BaseModel):
    id: int
    title: str
    created_at: datetime
    last_message: Optional[str] = None


def get_chat_or_404(db: Session, chat_id: int) -> Chat:
    chat = db.query(Chat).filter(Chat.id == chat_id).first()
    if not chat:
        raise HTTPException(status_code=404, detail="Not found")
    return chat


def chat_to_dict(chat: Chat) -> dict:
    return {
        "id": chat.id,
        "title": chat.title,
        "jitsi_room": chat.jitsi_room,
        "is_group": chat.is_group,
        "owner_id": chat.owner_id,
    }


# Create chat; the creator becomes its owner
@router.post("", response_model=ChatOut)
def create_chat(payload: ChatCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if not payload.title:
        raise HTTPException(status_code=400, detail="Title required")
    chat = Chat(
        title=payload.title,
        is_group=payload.is_group,
        owner_id=current_user.id,
        jitsi_room=generate_room_name(),
    )
    db.add(chat)
    db.flush()
    db.add(ChatMember(chat_id=chat.id, user_id=current_user.id, role=MemberRole.owner))

    member_ids = {uid for uid in payload.memberIds if uid != current_user.id}
    if member_ids:
        existing = db.query(User.id).filter(User.id.in_(member_ids)).all()
        for (uid,) in existing:
            db.add(ChatMember(chat_id=chat.id, user_id=uid, role=MemberRole.member))

    db.commit()
    db.refresh(chat)
    logger.info("User %s created chat %s", current_user.id, chat.id)
    return chat_to_dict(chat)


# Chats the caller belongs to, newest first
@router.get("")
def list_chats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    chats = (
        db.query(Chat)
        .join(ChatMember, ChatMember.chat_id == Chat.id)
        .filter(ChatMember.user_id == current_user.id)
        .order_by(Chat.created_at.desc(), Chat.id.desc())
        .all()
    )
    result = []
    for c in chats:
        last = (
            db.query(Message)
            .filter(Message.chat_id == c.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .first()
        )
        result.append(ChatSummary(
            id=c.id,
            title=c.title,
            created_at=c.created_at,
            last_message=last.content if last else None,
        ))
    return {"chats": result}


@router.get("/{chat_id}", response_model=ChatOut)
def get_chat(chat_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_member(db, chat_id, current_user.id)
    return chat_to_dict(get_chat_or_404(db, chat_id))


# Rename chat (owner only)
@router.put("/{chat_id}")
def rename_chat(chat_id: int, payload: ChatRename, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_owner(db, chat_id, current_user.id)
    if not payload.title:
        raise HTTPException(status_code=400, detail="Title required")
    chat = get_chat_or_404(db, chat_id)
    chat.title = payload.title
    db.commit()
    return {"ok": True}


# Delete chat (owner only); members, messages, assignments and submissions go with it
@router.delete("/{chat_id}")
def delete_chat(chat_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_owner(db, chat_id, current_user.id)
    chat = get_chat_or_404(db, chat_id)
    attachments = [m.attachment_path for m in chat.messages if m.attachment_path]
    for a in chat.assignments:
        attachments.extend(s.file_path for s in a.submissions)
    db.delete(chat)
    db.commit()
    for path in attachments:
        delete_upload(path)
    run_from_thread(manager.drop_group, chat_id)
    logger.info("User %s deleted chat %s", current_user.id, chat_id)
    return {"ok": True}


# Members
@router.get("/{chat_id}/members")
def list_members(chat_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_member(db, chat_id, current_user.id)
    rows = (
        db.query(ChatMember, User)
        .join(User, User.id == ChatMember.user_id)
        .filter(ChatMember.chat_id == chat_id)
        .order_by(ChatMember.created_at.asc(), ChatMember.id.asc())
        .all()
    )
    return {"members": [MemberOut(id=u.id, name=u.name, email=u.email, role=cm.role.value) for cm, u in rows]}


@router.post("/{chat_id}/members")
def invite_member(chat_id: int, payload: MemberAdd, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_manager(db, chat_id, current_user.id)
    if not payload.userId:
        raise HTTPException(status_code=400, detail="userId required")
    role = validate_assignable_role(payload.role)
    if not db.query(User).filter(User.id == payload.userId).first():
        raise HTTPException(status_code=404, detail="User not found")
    add_member(db, chat_id, payload.userId, role)
    db.commit()
    logger.info("User %s added user %s to chat %s as %s", current_user.id, payload.userId, chat_id, role.value)
    return {"ok": True}


@router.put("/{chat_id}/members/{user_id}")
def update_member_role(
    chat_id: int,
    user_id: int,
    payload: MemberRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_manager(db, chat_id, current_user.id)
    if not payload.role:
        raise HTTPException(status_code=400, detail="role required")
    role = validate_assignable_role(payload.role)
    change_role(db, chat_id, user_id, role)
    db.commit()
    logger.info("User %s set role of user %s in chat %s to %s", current_user.id, user_id, chat_id, role.value)
    return {"ok": True}


@router.delete("/{chat_id}/members/{user_id}")
def delete_member(chat_id: int, user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_manager(db, chat_id, current_user.id)
    remove_member(db, chat_id, user_id)
    db.commit()
    run_from_thread(manager.remove_user, chat_id, user_id)
    logger.info("User %s removed user %s from chat %s", current_user.id, user_id, chat_id)
    return {"ok": True}


# Conferencing link
@router.get("/{chat_id}/jitsi")
def get_conference_link(chat_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    require_member(db, chat_id, current_user.id)
    chat = get_chat_or_404(db, chat_id)
    return {"title": chat.title, "url": conference_url(chat.jitsi_room)}
