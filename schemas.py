from dataclasses import dataclass
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


@dataclass(frozen=True)
class UserInput:
    """Identity data a user enters before the analysis is requested."""
    full_name: str = ""
    birth_date: str = ""  # YYYY-MM-DD
    intention: str = ""

    def to_dict(self) -> dict:
        return {
            "fullName": self.full_name,
            "birthDate": self.birth_date,
            "intention": self.intention,
        }


EMPTY_INPUT = UserInput()


# --- Pydantic Schemas for Output Parsing ---
class Indicator(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    title: str = Field(description="Name of the energy facet, e.g. 'Life Path' or 'Soul Urge'.")
    value: str = Field(description="Short value of the facet: a number, a keyword or a brief phrase.")
    description: Optional[str] = Field(default=None, description="One or two sentences explaining the facet for this person.")
    color_hex: Optional[str] = Field(default=None, alias="colorHex", pattern=HEX_COLOR_PATTERN,
                                     description="Optional accent color for the facet as #RRGGBB.")
    number: Optional[int] = Field(default=None, description="Optional numerological number attached to the facet.")


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    introduction: str = Field(description="A short poetic headline addressing the person.")
    main_color_description: str = Field(alias="mainColorDescription",
                                        description="One or two sentences describing the person's dominant color energy.")
    main_color_hex: str = Field(alias="mainColorHex", pattern=HEX_COLOR_PATTERN,
                                description="The dominant color as a 6-digit hex code, e.g. #7FA7C9.")
    indicators: List[Indicator] = Field(default_factory=list,
                                        description="The ordered list of energy indicators.")
    full_reading: str = Field(alias="fullReading",
                              description="The long reading. Separate blocks with a blank line; start a section heading block with '## '.")
    blessing: str = Field(description="A short closing blessing.")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)
