"""
db/models/module_settings.py

Per-research-module configuration (model, prompt template, schedule).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class ModuleSettings(Base, TimestampMixin):
    __tablename__ = "module_settings"

    module_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="model, prompt_template, schedule, enabled",
    )
