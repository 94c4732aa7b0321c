from __future__ import annotations

import os

# Keep test runs from writing the service log file.
os.environ.setdefault("LOG_FILE", "")

import pytest

from schemas import AnalysisResult, Indicator, UserInput

READING = (
    "## **Your Life Path**\n\n"
    "You walk the path of the **guide**.\n\n"
    "## Shadows\n\n"
    "Rest is part of the work."
)


def make_result(indicator_count: int = 3, **overrides) -> AnalysisResult:
    payload = {
        "introduction": "A calm river finds its way",
        "mainColorDescription": "Soft blue carries your steady heart.",
        "mainColorHex": "#7FA7C9",
        "indicators": [
            {"title": f"Indicator {i + 1}", "value": str(i + 1), "description": f"Facet {i + 1}"}
            for i in range(indicator_count)
        ],
        "fullReading": READING,
        "blessing": "May your light stay gentle.",
    }
    payload.update(overrides)
    return AnalysisResult.model_validate(payload)


class FakeAnalyzer:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result if result is not None else make_result()
        self.error = error
        self.calls: list[UserInput] = []

    async def analyze(self, user_input: UserInput):
        self.calls.append(user_input)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def sample_result() -> AnalysisResult:
    return make_result()


@pytest.fixture
def sample_input() -> UserInput:
    return UserInput(full_name="Nguyen Van A", birth_date="1990-05-01", intention="")
