from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class RegistrationSpec(BaseModel):
    key: str = Field(min_length=1)
    contract: str
    provider: str
    kwargs: dict[str, Any] = Field(default_factory=dict)
    description: str = ""

    @field_validator("contract", "provider")
    @classmethod
    def check_target(cls, value: str) -> str:
        module, sep, attr = value.partition(":")
        if not sep or not module or not attr:
            raise ValueError(f"expected 'package.module:attribute', got {value!r}")
        return value


class ManifestSchema(BaseModel):
    version: int = Field(ge=1)
    updated_utc: str | None = None
    registrations: list[RegistrationSpec] = Field(default_factory=list)
