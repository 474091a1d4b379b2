"""
Core data models for the Raffle Profile API

`Profile` and `Participant` are immutable API models. `CachedProfile` is the
SQLModel table the database-backed profile store writes to.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field

DEFAULT_BIO = "TikTok Creator"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    """
    TikTok profile as served to the raffle client.

    Instances are frozen; a refresh stores a new Profile under the same key.
    """

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    username: str
    display_name: str
    follower_count: int = PydanticField(default=0, ge=0)
    avatar_url: str = ""
    verified: bool = False
    bio: str = DEFAULT_BIO
    likes_count: int = PydanticField(default=0, ge=0)
    video_count: int = PydanticField(default=0, ge=0)
    bio_link: Optional[str] = None
    cached_at: datetime

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or utcnow()
        return max(now - self.cached_at, timedelta(0))

    def is_fresh(self, window: timedelta, now: Optional[datetime] = None) -> bool:
        """Advisory only; the store never evicts on age"""
        return self.age(now) <= window


class Participant(BaseModel):
    """A raffle entrant from an imported batch"""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    name: str
    username: str
    id: str
    profile_pic: Optional[str] = None


class CachedProfile(SQLModel, table=True):
    """
    Profile row keyed by the normalized username.
    """

    __tablename__ = "cached_profile"

    key: str = Field(primary_key=True, max_length=255)
    username: str = Field(max_length=255)
    display_name: str = Field(max_length=255)
    follower_count: int = Field(default=0)
    avatar_url: str = Field(default="", max_length=2048)
    verified: bool = Field(default=False)
    bio: str = Field(default=DEFAULT_BIO, max_length=4096)
    likes_count: int = Field(default=0)
    video_count: int = Field(default=0)
    bio_link: Optional[str] = Field(default=None, max_length=2048)
    cached_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))

    @classmethod
    def from_profile(cls, key: str, profile: Profile) -> "CachedProfile":
        return cls(key=key, **profile.model_dump())

    def to_profile(self) -> Profile:
        cached_at = self.cached_at
        if cached_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC
            cached_at = cached_at.replace(tzinfo=timezone.utc)
        return Profile(
            username=self.username,
            display_name=self.display_name,
            follower_count=self.follower_count,
            avatar_url=self.avatar_url,
            verified=self.verified,
            bio=self.bio,
            likes_count=self.likes_count,
            video_count=self.video_count,
            bio_link=self.bio_link,
            cached_at=cached_at,
        )
