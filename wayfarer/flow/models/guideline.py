"""Guidelines and glossary terms included in prompts."""

from pydantic import BaseModel, Field


class Guideline(BaseModel):
    """Behavioural instruction for the model.

    ``condition`` is free text describing when the guideline applies; it is
    rendered into the prompt, not evaluated.
    """

    id: str | None = None
    condition: str | None = Field(default=None, description="When the guideline applies")
    action: str = Field(..., min_length=1, description="What the agent should do")
    enabled: bool = True
    tags: list[str] = Field(default_factory=list)


class Term(BaseModel):
    """Domain glossary entry."""

    name: str = Field(..., min_length=1)
    description: str
    synonyms: list[str] = Field(default_factory=list)
