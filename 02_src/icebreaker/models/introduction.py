"""Introduction data and extraction outcomes."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

REQUIRED_FIELDS = ["firstName", "lastName", "age", "interests"]


class IntroductionData(BaseModel):
    """A complete, validated introduction. Immutable once stored."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    age: int = Field(gt=0, lt=150)
    interests: list[str] = Field(
        min_length=1, description="Interests/Hobbies of the user"
    )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclass
class ExtractionSuccess:
    """All required fields were found."""

    introduction: IntroductionData

    @property
    def success(self) -> bool:
        return True


@dataclass
class ExtractionFailure:
    """Some fields are missing or invalid; used to steer the next prompt."""

    missing_fields: list[str] = field(default_factory=lambda: list(REQUIRED_FIELDS))

    @property
    def success(self) -> bool:
        return False


ExtractionResult = ExtractionSuccess | ExtractionFailure
