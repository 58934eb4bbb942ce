from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from fragments.model.fragment import Fragment


class FragmentOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(alias="ownerId")
    created: str
    updated: str
    type: str
    size: int = Field(ge=0)

    @classmethod
    def from_fragment(cls, fragment: Fragment) -> "FragmentOut":
        return cls.model_validate(fragment.to_dict())


class FragmentResponse(BaseModel):
    status: Literal["ok"] = "ok"
    fragment: FragmentOut
    formats: list[str] | None = None


class FragmentListResponse(BaseModel):
    status: Literal["ok"] = "ok"
    fragments: list[FragmentOut] | list[str]


class DeleteResponse(BaseModel):
    status: Literal["ok"] = "ok"


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    version: str
    storage: str | None = None


__all__ = [
    "FragmentOut",
    "FragmentResponse",
    "FragmentListResponse",
    "DeleteResponse",
    "HealthResponse",
]
