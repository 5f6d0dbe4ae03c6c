"""Pydantic models for generation results."""

from pydantic import BaseModel, Field


class GeneratedDraft(BaseModel):
    """Raw model output for one thread, before HTML post-processing."""

    content: str = Field(description="The generated reply (HTML or plain text)")
    grounding_used: bool = Field(
        default=False,
        description="True if any part of the reply cites a knowledge document",
    )
    model_used: str = Field(description="The model ID used for generation")
    input_tokens: int = Field(default=0, description="Number of input tokens consumed")
    output_tokens: int = Field(default=0, description="Number of output tokens generated")
