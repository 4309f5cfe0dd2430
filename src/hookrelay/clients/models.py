"""Downstream API models for TaaS and Akkeris.

These models describe only the fields the relay reads or sends. Extra
fields in downstream responses are ignored.
"""

from pydantic import BaseModel, ConfigDict, Field


class DiagnosticRecord(BaseModel):
    """Last-known state of a TaaS diagnostic (automated test).

    Attributes:
        app: Name of the app the test targets.
        space: Space the targeted app runs in.
        id: TaaS identifier of the targeted app.
        action: Action of the last release hook, e.g. "release".
        result: Result of the last release, e.g. "succeeded".
    """

    model_config = ConfigDict(extra="ignore")

    app: str
    space: str
    id: str
    action: str
    result: str

    @property
    def app_space(self) -> str:
        """Akkeris app key in format "{app}-{space}"."""
        return f"{self.app}-{self.space}"


class Release(BaseModel):
    """One Akkeris release of an app."""

    model_config = ConfigDict(extra="ignore")

    id: str


class TriggerApp(BaseModel):
    id: str
    name: str


class TriggerSpace(BaseModel):
    name: str


class TriggerRelease(BaseModel):
    result: str
    id: str


class TriggerBuild(BaseModel):
    id: str = ""


class TriggerPayload(BaseModel):
    """Body of the TaaS release hook that starts a test run.

    Mirrors the shape of an Akkeris release webhook so TaaS treats the
    trigger like a normal release. The build id is never tracked and is
    always sent as an empty string.
    """

    action: str
    app: TriggerApp
    space: TriggerSpace
    release: TriggerRelease
    build: TriggerBuild = Field(default_factory=TriggerBuild)
