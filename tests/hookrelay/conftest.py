"""Shared fixtures for hook relay tests."""

import pytest

from src.hookrelay.clients.models import DiagnosticRecord, Release
from src.hookrelay.config import RelaySettings


@pytest.fixture
def settings() -> RelaySettings:
    return RelaySettings(
        akkeris_api_token="test-token",
        akkeris_api_url="https://akkeris.test",
        taas_url="https://taas.test",
        ui_image_repo="akkeris/ui",
        ui_image_tag_prefix="release-",
        taas_test_name="ui-tests-taas",
    )


@pytest.fixture
def diagnostic() -> DiagnosticRecord:
    return DiagnosticRecord(
        app="foo",
        space="prod",
        id="x",
        action="create",
        result="succeeded",
    )


@pytest.fixture
def releases():
    return [Release(id="r1"), Release(id="r2")]
