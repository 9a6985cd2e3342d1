from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Discriminator, Field, Tag


class Record(BaseModel):
    """One immutable version of a key. The current value is derived, never stored."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["record"] = "record"
    key: str
    value: str
    created_at: datetime
    id: str
    seq: int = 0


class Metadata(BaseModel):
    """
    Store anchor. Appended again on every write; the newest entry wins and
    every entry repeats the anchor's start_height.

    Entries written before `kind` existed carry neither `namespace` nor `seq`
    and name the timestamp `last_updated`; they still decode.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["metadata"] = "metadata"
    namespace: Optional[str] = None  # hex of the namespace id
    start_height: int = Field(ge=0)
    record_count: int = Field(default=0, ge=0)
    updated_at: datetime = Field(validation_alias=AliasChoices("updated_at", "last_updated"))
    seq: int = 0


def _item_kind(value: Any) -> Optional[str]:
    if not isinstance(value, dict):
        return getattr(value, "kind", None)
    if "kind" in value:
        return value["kind"]
    # kind-less payloads
    if "key" in value:
        return "record"
    if "start_height" in value:
        return "metadata"
    return None


LedgerItem = Annotated[
    Union[Annotated[Record, Tag("record")], Annotated[Metadata, Tag("metadata")]],
    Discriminator(_item_kind),
]
