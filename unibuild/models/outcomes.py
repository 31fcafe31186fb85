"""Extraction and build outcome variants.

Both are pydantic discriminated unions on ``kind`` so that they can be
stored as JSON and read back through a ``TypeAdapter``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from unibuild.models.artifacts import BuildArtifactsOut
from unibuild.models.project import ProjectConfigAndExtracted


class ExtractionOK(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ok"] = "ok"
    project: str
    pces: list[ProjectConfigAndExtracted] = Field(min_length=1)


class ExtractionFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    project: str
    cause: str


class BuildGood(BaseModel):
    """A successful build, annotated with the uuid that produced it."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["good"] = "good"
    project: str
    uuid: str
    artifacts: BuildArtifactsOut


class BuildBad(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["bad"] = "bad"
    project: str
    status: str
    uuid: str = ""


ExtractionOutcome = Annotated[
    Union[ExtractionOK, ExtractionFailed], Field(discriminator="kind")
]
BuildOutcome = Annotated[Union[BuildGood, BuildBad], Field(discriminator="kind")]

extraction_outcome_adapter: TypeAdapter[ExtractionOutcome] = TypeAdapter(ExtractionOutcome)
build_outcome_adapter: TypeAdapter[BuildOutcome] = TypeAdapter(BuildOutcome)


class BuildReport(BaseModel):
    """Top-level result: one outcome per requested project."""

    model_config = ConfigDict(frozen=True)

    outcomes: list[BuildOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(isinstance(o, BuildGood) for o in self.outcomes)

    @property
    def failures(self) -> list[BuildBad]:
        return [o for o in self.outcomes if isinstance(o, BuildBad)]
