"""Chat membership lookups and role checks.

Every chat-scoped route resolves the caller's role here before reading or
writing anything that belongs to the chat.
"""
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from models.chat.chat_models import ChatMember, MemberRole, Message


MANAGER_ROLES = frozenset({MemberRole.owner, MemberRole.moderator})

# roles that can be granted through invite or role change
ASSIGNABLE_ROLES = frozenset({MemberRole.member, MemberRole.moderator})


def get_membership(db: Session, chat_id: int, user_id: int) -> Optional[ChatMember]:
    return db.query(ChatMember).filter(ChatMember.chat_id == chat_id, ChatMember.user_id == user_id).first()


def get_member_role(db: Session, chat_id: int, user_id: int) -> Optional[MemberRole]:
    """Return the user's role in the chat, or None when not a member."""
    membership = get_membership(db, chat_id, user_id)
    return membership.role if membership else None


def is_member(db: Session, chat_id: int, user_id: int) -> bool:
    return get_member_role(db, chat_id, user_id) is not None


def is_manager(role: Optional[MemberRole]) -> bool:
    return role in MANAGER_ROLES


def require_member(db: Session, chat_id: int, user_id: int) -> MemberRole:
    role = get_member_role(db, chat_id, user_id)
    if role is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member")
    return role


def require_manager(db: Session, chat_id: int, user_id: int) -> MemberRole:
    role = require_member(db, chat_id, user_id)
    if not is_manager(role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
    return role


def require_owner(db: Session, chat_id: int, user_id: int) -> MemberRole:
    role = require_member(db, chat_id, user_id)
    if role is not MemberRole.owner:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return role


def can_modify_message(role: Optional[MemberRole], message: Message, user_id: int) -> bool:
    """Authors may always edit or delete their own messages; managers may touch any."""
    if role is None:
        return False
    return message.user_id == user_id or is_manager(role)


def validate_assignable_role(value: Optional[str]) -> MemberRole:
    if value is None:
        return MemberRole.member
    try:
        role = MemberRole(value)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    if role not in ASSIGNABLE_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    return role


def add_member(db: Session, chat_id: int, user_id: int, role: MemberRole) -> ChatMember:
    """Insert a membership, or change the role of an existing non-owner one.

    Does not commit.
    """
    membership = get_membership(db, chat_id, user_id)
    if membership is None:
        membership = ChatMember(chat_id=chat_id, user_id=user_id, role=role)
        db.add(membership)
        return membership
    if membership.role is MemberRole.owner:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change owner role")
    membership.role = role
    return membership


def change_role(db: Session, chat_id: int, user_id: int, role: MemberRole) -> ChatMember:
    membership = get_membership(db, chat_id, user_id)
    if membership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not in chat")
    if membership.role is MemberRole.owner:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot change owner role")
    membership.role = role
    return membership


def remove_member(db: Session, chat_id: int, user_id: int) -> None:
    membership = get_membership(db, chat_id, user_id)
    if membership is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not in chat")
    if membership.role is MemberRole.owner:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot remove owner")
    db.delete(membership)
