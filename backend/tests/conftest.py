"""Shared test configuration, pytest markers and a scripted oracle."""

import copy

import pytest

from api.router import limiter
from exceptions import OracleUnavailable
from services.pipeline.base import ExtractionOracle

JANE_ROE_TEXT = """Jane Roe
jane@x.com | +1 555 010 2000

Experience
Software Engineer at Acme 2019-01 to 2022-01
- Built billing services in Python and SQL

Skills
Python, SQL
"""


def _wrap(value, confidence):
    return {"value": value, "confidence": confidence, "standardization": None}


def jane_roe_payload() -> dict:
    return {
        "personalInfo": {
            "name": _wrap("Jane Roe", 0.95),
            "email": _wrap("jane@x.com", 0.95),
            "phone": _wrap("+1 555 010 2000", 0.9),
        },
        "skills": [
            {"name": _wrap("Python", 0.9), "category": _wrap("Programming Languages", 0.7)},
            {"name": _wrap("SQL", 0.85)},
        ],
        "workExperience": [
            {
                "company": _wrap("Acme", 0.9),
                "title": _wrap("Software Engineer", 0.9),
                "dates": {
                    "startDate": _wrap("2019-01", 0.9),
                    "endDate": _wrap("2022-01", 0.9),
                    "current": _wrap(False, 0.9),
                },
                "responsibilities": _wrap(["Built billing services in Python and SQL"], 0.8),
            }
        ],
        "education": [],
        "projects": [],
        "certifications": [],
        "languages": [],
        "overallConfidence": 0.9,
        "missingFields": [],
        "detectedSections": ["personal_information", "experience", "skills"],
    }


class FakeOracle(ExtractionOracle):
    """Returns scripted responses in order; scripted exceptions are raised."""

    name = "fake"

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def generate(self, *, system_instruction, prompt, schema):
        self.calls.append(
            {"system_instruction": system_instruction, "prompt": prompt, "schema": schema}
        )
        if not self.responses:
            raise OracleUnavailable("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: calls the real Gemini API (needs GEMINI_API_KEY)"
    )


@pytest.fixture
def jane_payload():
    return jane_roe_payload()


@pytest.fixture
def jane_text():
    return JANE_ROE_TEXT


@pytest.fixture
def fake_oracle():
    """Factory: ``fake_oracle(resp1, resp2, ...)``."""

    def _make(*responses):
        return FakeOracle(responses)

    return _make


@pytest.fixture(autouse=True)
def _no_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True
