"""Models for plans generated from a planning conversation."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["high", "medium", "low"]
Complexity = Literal["simple", "medium", "complex"]


class ConversationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class PlannedDocument(BaseModel):
    """One document proposed by a plan."""

    model_config = ConfigDict(frozen=False)

    id: str
    filename: str
    title: str
    content: str
    priority: Priority = "medium"
    dependencies: list[str] = Field(default_factory=list)
    estimated_iterations: int | None = None


class GeneratedPlan(BaseModel):
    model_config = ConfigDict(frozen=False)

    title: str
    summary: str
    documents: list[PlannedDocument] = Field(default_factory=list)
    complexity: Complexity = "medium"
    suggested_order: list[int] = Field(default_factory=list)
