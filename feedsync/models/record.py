"""Pydantic models for feed records and synchronization state."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """A feed item as materialized in the local store."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": 7,
                "owner_id": 1,
                "title": "magnam facilis autem",
                "body": "dolore placeat quibusdam ea quo vitae",
                "liked": False,
            }
        },
    )

    id: int = Field(default=..., description="Unique record identifier assigned remotely")
    owner_id: int = Field(default=..., description="Identifier of the authoring user")
    title: str | None = Field(default=None, description="Optional record title")
    body: str = Field(default=..., description="Record body text")
    liked: bool = Field(default=False, description="Local like flag")

    def with_liked(self, liked: bool) -> "Record":
        """Return a copy of this record with the like flag replaced."""
        return self.model_copy(update={"liked": liked})


class RemotePost(BaseModel):
    """One item of a remote page, as decoded from the wire."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(default=..., description="Remote record identifier")
    owner_id: int = Field(default=..., alias="userId", description="Authoring user id")
    title: str | None = Field(default=None, description="Post title")
    body: str = Field(default=..., description="Post body")

    def to_record(self) -> Record:
        """Build the local record for a first sighting of this post."""
        return Record(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            body=self.body,
            liked=False,
        )


class SyncStatus(str, Enum):
    """Phases of the synchronization state machine."""

    IDLE = "idle"
    REFRESH_IN_PROGRESS = "refresh_in_progress"
    LOAD_MORE_IN_PROGRESS = "load_more_in_progress"
    END_OF_DATA = "end_of_data"
    FAILED = "failed"


class SyncState(BaseModel):
    """Current state of a sync engine.

    ``reason`` and ``error`` are only set for :attr:`SyncStatus.FAILED`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    status: SyncStatus = Field(default=SyncStatus.IDLE, description="State machine phase")
    reason: str | None = Field(default=None, description="Displayable failure reason")
    error: Exception | None = Field(
        default=None, exclude=True, description="Underlying failure, kept for display"
    )

    @classmethod
    def idle(cls) -> "SyncState":
        return cls(status=SyncStatus.IDLE)

    @classmethod
    def refreshing(cls) -> "SyncState":
        return cls(status=SyncStatus.REFRESH_IN_PROGRESS)

    @classmethod
    def loading_more(cls) -> "SyncState":
        return cls(status=SyncStatus.LOAD_MORE_IN_PROGRESS)

    @classmethod
    def end_of_data(cls) -> "SyncState":
        return cls(status=SyncStatus.END_OF_DATA)

    @classmethod
    def failed(cls, reason: str, error: Exception | None = None) -> "SyncState":
        return cls(status=SyncStatus.FAILED, reason=reason, error=error)

    def __str__(self) -> str:
        if self.status is SyncStatus.FAILED:
            return f"failed({self.reason})"
        return self.status.value
