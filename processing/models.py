from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Priority = Literal["High", "Medium", "Low"]

PRIORITIES: tuple[str, ...] = ("High", "Medium", "Low")
DEFAULT_PRIORITY = "Medium"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ActionItem(_Frozen):
    task: str
    assignee: str
    priority: Priority = DEFAULT_PRIORITY
    due_date: str = Field(default="", alias="dueDate")

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value):
        # El modelo a veces devuelve null o "" en lugar de omitir el campo
        if value is None or value == "":
            return DEFAULT_PRIORITY
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def _default_due_date(cls, value):
        return "" if value is None else value

    @field_validator("due_date")
    @classmethod
    def _check_due_date(cls, value: str) -> str:
        if value:
            # fromisoformat acepta otras variantes en 3.11+, exigir el formato exacto
            if len(value) != 10 or value[4] != "-" or value[7] != "-":
                raise ValueError(f"fecha invalida: {value!r}")
            date.fromisoformat(value)
        return value


class DiscussionPoint(_Frozen):
    speaker: str
    points: tuple[str, ...]


class SummaryResult(_Frozen):
    title: str
    short_summary: str = Field(alias="shortSummary")
    detailed_summary: tuple[str, ...] = Field(alias="detailedSummary")
    action_items: tuple[ActionItem, ...] = Field(alias="actionItems")
    discussion_breakdown: tuple[DiscussionPoint, ...] = Field(
        default=(), alias="discussionBreakdown",
    )

    @field_validator("discussion_breakdown", mode="before")
    @classmethod
    def _default_breakdown(cls, value):
        return () if value is None else value

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
