"""Data models for synchronization operations."""

from pydantic import BaseModel, Field


class MergeReport(BaseModel):
    """Outcome of merging one fetched page into the record store."""

    fetched: int = Field(default=0, ge=0, description="Records in the fetched page")
    inserted_ids: list[int] = Field(
        default_factory=list, description="Ids stored for the first time"
    )
    skipped_ids: list[int] = Field(
        default_factory=list, description="Ids already stored (or repeated in the page)"
    )

    @property
    def inserted(self) -> int:
        """Number of records inserted."""
        return len(self.inserted_ids)

    @property
    def skipped(self) -> int:
        """Number of records left untouched."""
        return len(self.skipped_ids)

    @property
    def has_changes(self) -> bool:
        """Check if the merge stored anything new."""
        return bool(self.inserted_ids)
