from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import List, Optional
from split_ledger.models.groups import Group, GroupMember, User
from split_ledger.schemas.group_schema import GroupCreate, UserCreate


def create_user(db: Session, user_data: UserCreate) -> User:
    """Create a new user; emails are unique"""
    if db.query(User).filter(User.email == user_data.email).first():
        raise HTTPException(status_code=400, detail="A user with this email already exists")

    user = User(full_name=user_data.full_name, email=user_data.email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: str) -> Optional[User]:
    """Get a user by ID"""
    return db.query(User).filter(User.id == user_id).first()


def create_group(db: Session, group_data: GroupCreate, created_by: str) -> Group:
    """Create a new group; the creator becomes its first member"""
    if not get_user(db, created_by):
        raise HTTPException(status_code=404, detail="User not found")

    group = Group(name=group_data.name, created_by=created_by)
    db.add(group)
    db.commit()
    db.refresh(group)

    add_member_to_group(db, group.id, created_by)
    return group


def get_group(db: Session, group_id: str) -> Optional[Group]:
    """Get a group by ID"""
    return db.query(Group).filter(Group.id == group_id).first()


def get_user_groups(db: Session, user_id: str) -> List[Group]:
    """Get all groups for a user"""
    return db.query(Group).join(GroupMember).filter(GroupMember.user_id == user_id).all()


def add_member_to_group(db: Session, group_id: str, user_id: str) -> GroupMember:
    """Add a user to a group"""
    if not get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    if is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=400, detail="User is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=user_id)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def get_group_members(db: Session, group_id: str) -> List[GroupMember]:
    """Get all members of a group, in joining order"""
    return db.query(GroupMember)\
        .filter(GroupMember.group_id == group_id)\
        .order_by(GroupMember.joined_at, GroupMember.id)\
        .all()


def get_group_users(db: Session, group_id: str) -> List[User]:
    """Get the user records of all group members"""
    return [member.user for member in get_group_members(db, group_id)]


def is_group_member(db: Session, group_id: str, user_id: str) -> bool:
    """Check if user is a member of the group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return member is not None


def get_member_group(db: Session, group_id: str, user_id: str) -> Group:
    """Get a group the user belongs to, or raise 404/403"""
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")

    if not is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")

    return group
