"""
Database Schemas for Thread Hive

Each Pydantic model maps to a MongoDB collection:
- users
- posts
- comments
- announcements
- tags
- warnings
- successedPayment

Documents are loosely shaped; models that front a free-form collection accept
extra fields and pass them through to the store. Identifiers are always
assigned by the store, so ``_id`` and ``id`` are dropped from incoming bodies.
"""
from typing import Optional, Union
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, EmailStr, model_validator

RESERVED_FIELDS = ("_id", "id")


class Document(BaseModel):
    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def drop_identifiers(cls, data):
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in RESERVED_FIELDS}
        return data


# Token request (identity payload signed into the JWT)
class TokenRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr = Field(..., description="Identity claim carried by the token")


class Token(BaseModel):
    token: str


# Users
class User(Document):
    email: EmailStr = Field(..., description="Natural key, unique by convention")
    name: Optional[str] = None
    photo: Optional[str] = None
    role: Optional[str] = Field(None, description="Absent or 'admin'")
    membership: bool = Field(False, description="Set by a successful payment")
    badge: Optional[str] = Field(None, description="Badge image URL")
    status: Optional[str] = None


# Posts
class Post(Document):
    userEmail: Optional[EmailStr] = Field(None, description="Owner; defaults to the token email")
    title: str
    description: Optional[str] = None
    tag: Optional[str] = None
    # ISO timestamps are stored as dates; anything else is kept as the client sent it.
    date: Optional[Union[datetime, str]] = Field(
        None, union_mode="left_to_right", description="Server time when omitted"
    )


class PostStatus(BaseModel):
    membership: bool
    postCount: int


# Comments
class Comment(BaseModel):
    postId: str = Field(..., description="String form of the post id")
    email: EmailStr
    commentText: str


class CommentReport(BaseModel):
    feedback: str = ""


# Payments
class Payment(Document):
    email: EmailStr
    transactionId: Optional[str] = None
    price: Optional[float] = None
    date: Optional[Union[datetime, str]] = Field(None, union_mode="left_to_right")


# Admin content (free-form)
class Announcement(Document):
    title: Optional[str] = None
    description: Optional[str] = None


class Tag(Document):
    name: Optional[str] = None


class WarningNote(Document):
    email: Optional[str] = None
    message: Optional[str] = None


class Stats(BaseModel):
    posts: int
    comments: int
    users: int
