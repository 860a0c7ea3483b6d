from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional

from db import get_db
from models.auth.user_models import User
from models.chat.chat_models import Message, MessageType
from services.auth_service import get_current_user
from services.membership import can_modify_message, require_member
from services.upload_service import delete_upload, save_upload
from services.ws_manager import manager, run_from_thread

router = APIRouter(prefix="/api/chats", tags=["Messages"])

MAX_HISTORY = 200


class MessageEdit(BaseModel):
    content: Optional[str] = None


def message_to_dict(m: Message) -> dict:
    return {
        "id": m.id,
        "chat_id": m.chat_id,
        "user_id": m.user_id,
        "user_name": m.author.name if m.author else None,
        "content": m.content,
        "type": m.type.value,
        "attachment_path": m.attachment_path,
        "attachment_name": m.attachment_name,
        "created_at": m.created_at.isoformat(),
    }


def get_message_or_404(db: Session, chat_id: int, message_id: int) -> Message:
    msg = db.query(Message).filter(Message.id == message_id, Message.chat_id == chat_id).first()
    if not msg:
        raise HTTPException(status_code=404, detail="Not found")
    return msg


# Latest messages, returned oldest first
@router.get("/{chat_id}/messages")
def list_messages(
    chat_id: int,
    limit: int = Query(50, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_member(db, chat_id, current_user.id)
    limit = min(limit, MAX_HISTORY)
    msgs = (
        db.query(Message)
        .filter(Message.chat_id == chat_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .all()
    )
    return {"messages": [message_to_dict(m) for m in reversed(msgs)]}


# Post a message with optional attachment
@router.post("/{chat_id}/messages")
def create_message(
    chat_id: int,
    content: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    require_member(db, chat_id, current_user.id)
    content = content or ""
    msg_type = MessageType.text
    attachment_path = None
    attachment_name = None
    if file is not None and file.filename:
        attachment_path, attachment_name = save_upload(file)
        if (file.content_type or "").startswith("video/"):
            msg_type = MessageType.video
        else:
            msg_type = MessageType.file
    if not content and not attachment_path:
        raise HTTPException(status_code=400, detail="Empty message")

    msg = Message(
        chat_id=chat_id,
        user_id=current_user.id,
        content=content,
        type=msg_type,
        attachment_path=attachment_path,
        attachment_name=attachment_name,
    )
    db.add(msg)
    db.commit()
    db.refresh(msg)

    out = message_to_dict(msg)
    run_from_thread(manager.broadcast, chat_id, "message", out)
    return {"message": out}


# Edit message text (author, owner or moderator)
@router.put("/{chat_id}/messages/{message_id}")
def edit_message(
    chat_id: int,
    message_id: int,
    payload: MessageEdit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    role = require_member(db, chat_id, current_user.id)
    msg = get_message_or_404(db, chat_id, message_id)
    if not can_modify_message(role, msg, current_user.id):
        raise HTTPException(status_code=403, detail="Forbidden")
    msg.content = payload.content or ""
    db.commit()
    db.refresh(msg)

    out = message_to_dict(msg)
    run_from_thread(manager.broadcast, chat_id, "message_updated", out)
    return {"message": out}


@router.delete("/{chat_id}/messages/{message_id}")
def delete_message(
    chat_id: int,
    message_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    role = require_member(db, chat_id, current_user.id)
    msg = get_message_or_404(db, chat_id, message_id)
    if not can_modify_message(role, msg, current_user.id):
        raise HTTPException(status_code=403, detail="Forbidden")
    attachment_path = msg.attachment_path
    db.delete(msg)
    db.commit()
    delete_upload(attachment_path)

    run_from_thread(manager.broadcast, chat_id, "message_deleted", {"id": message_id})
    return {"ok": True}
