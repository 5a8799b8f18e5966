"""Pydantic data models for trends."""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List, Union, Literal
from datetime import datetime

from .normalizer import normalize_title


class StoreMode(str, Enum):
    """How the seen set is updated after a run."""

    ADDITIVE = "additive"
    REPLACE = "replace"


class RowOrder(str, Enum):
    SOURCE = "source"
    VOLUME = "volume"


class Layout(str, Enum):
    BLOCKS = "blocks"
    TABLE = "table"


class TrendItem(BaseModel):
    """A single trending entry from one polling cycle."""

    title: str = Field(..., min_length=1, description="Trend title as displayed by the source")
    link: Optional[str] = Field(default=None, description="Deep link to the source")
    volume_raw: Optional[Union[str, int, float]] = Field(
        default=None, description="Traffic as the upstream reports it (e.g. '200+', 5000, '2K+')"
    )
    started_minutes_ago: Optional[float] = Field(default=None, description="Minutes since the trend started")
    related_queries: List[str] = Field(default_factory=list, description="Related search queries")

    @property
    def key(self) -> str:
        return normalize_title(self.title)


class Enrichment(BaseModel):
    """Secondary-source metadata for one trend, keyed by normalized title."""

    volume: str = "—"
    volume_value: int = 0
    started_minutes_ago: Optional[float] = None
    related_queries: List[str] = Field(default_factory=list)


class EnrichedRow(BaseModel):
    """A baseline trend joined with its enrichment, ready for display."""

    title: str
    link: Optional[str] = None
    volume: str = "—"
    volume_value: int = 0
    started: str = "—"
    related_queries: List[str] = Field(default_factory=list)
    is_new: bool = False


class DiffResult(BaseModel):
    """Outcome of comparing the current batch against the seen set."""

    new_items: List[TrendItem] = Field(default_factory=list)
    new_keys: List[str] = Field(default_factory=list)
    all_keys_normalized: List[str] = Field(default_factory=list)
    should_notify: bool = False
    degraded: bool = False

    def is_new(self, item: TrendItem) -> bool:
        return item.key in self.new_keys


class StructuredPayload(BaseModel):
    """Slack webhook body: fallback text plus Block Kit blocks."""

    text: str
    blocks: List[dict] = Field(default_factory=list)


class PayloadMeta(BaseModel):
    """Everything besides the rows that the formatter needs."""

    region: str
    generated_at: datetime
    time_zone: str = "Europe/Athens"
    layout: Layout = Layout.TABLE
    order: RowOrder = RowOrder.SOURCE
    limit: Optional[int] = None


class RunSuccess(BaseModel):
    """A run that finished, whether or not it posted anything."""

    ok: Literal[True] = True
    notified: bool
    items_count: int = 0
    new_count: int = 0
    degraded: bool = False
    persisted: bool = False
    exit_code: int = 0


class RunFailure(BaseModel):
    """A run that aborted. Only delivery failures map to a non-zero exit."""

    ok: Literal[False] = False
    kind: str
    message: str
    exit_code: int = 0


RunResult = Union[RunSuccess, RunFailure]
