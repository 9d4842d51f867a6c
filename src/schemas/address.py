from __future__ import annotations

from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AddressComponent(BaseModel):
    """One entry of a geocoder ``address_components`` list."""

    model_config = ConfigDict(populate_by_name=True)

    long_name: str = Field(default="", validation_alias=AliasChoices("longName", "long_name"))
    short_name: str = Field(default="", validation_alias=AliasChoices("shortName", "short_name"))
    types: List[str] = Field(default_factory=list)
