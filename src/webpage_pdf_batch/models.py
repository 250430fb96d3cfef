from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator

OutcomeStatus = Literal["Requires Sign-in", "Error"]

STATUS_REQUIRES_SIGN_IN: OutcomeStatus = "Requires Sign-in"
STATUS_ERROR: OutcomeStatus = "Error"


class UrlEntry(BaseModel):
    url: str = Field(description="Page URL taken from the input file's URL column.")

    @field_validator("url")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url must be a non-empty string")
        return value


@dataclass(frozen=True)
class Saved:
    file_name: str


@dataclass(frozen=True)
class RequiresSignIn:
    pass


@dataclass(frozen=True)
class Errored:
    message: str


ProcessingOutcome = Union[Saved, RequiresSignIn, Errored]


class OutcomeRecord(BaseModel):
    url: str = Field(description="The URL that was not converted to PDF.")
    status: OutcomeStatus = Field(description="Why the URL needs attention.")
    notes: str = Field(default="", description="Error detail, or empty for the user's own notes.")

    @classmethod
    def from_outcome(cls, url: str, outcome: ProcessingOutcome) -> OutcomeRecord | None:
        """Build the ledger row for an outcome; `Saved` outcomes have none."""
        if isinstance(outcome, RequiresSignIn):
            return cls(url=url, status=STATUS_REQUIRES_SIGN_IN, notes="")
        if isinstance(outcome, Errored):
            return cls(url=url, status=STATUS_ERROR, notes=outcome.message)
        return None


class RunSummary(BaseModel):
    saved: int = 0
    requires_sign_in: int = 0
    errored: int = 0
    ledger_path: str | None = Field(
        default=None, description="Ledger file written during the run, if any records were produced."
    )

    @property
    def total(self) -> int:
        return self.saved + self.requires_sign_in + self.errored

    def count(self, outcome: ProcessingOutcome) -> None:
        if isinstance(outcome, Saved):
            self.saved += 1
        elif isinstance(outcome, RequiresSignIn):
            self.requires_sign_in += 1
        else:
            self.errored += 1
