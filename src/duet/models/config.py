"""Configuration models for Duet.

DuetOptions holds per-duet settings passed to :func:`duet.create_duet`.
"""

from __future__ import annotations

from typing import Callable, Optional

from pydantic import BaseModel

from duet.models.history import Source


class DuetOptions(BaseModel):
    """Per-duet configuration."""

    model_config = {"arbitrary_types_allowed": True}

    persist: Optional[str] = None  # None = in-memory only
    db_path: str = "duet.db"
    db_url: Optional[str] = None
    transform_context: Optional[Callable[[str], str]] = None
    transform_function_schema: Optional[Callable[[dict], dict]] = None
    default_source: Source = Source.LLM
