"""
Shared fixtures for the seo_machine test suite.

Provides sample articles, fake HTTP responses and fake Google credentials
so that every test runs WITHOUT network access or real API keys.
"""

from unittest.mock import MagicMock

import pytest


ENV_VARS = (
    "GA4_PROPERTY_ID",
    "GA4_CREDENTIALS_PATH",
    "GSC_SITE_URL",
    "GSC_CREDENTIALS_PATH",
    "DATAFORSEO_LOGIN",
    "DATAFORSEO_PASSWORD",
    "DATAFORSEO_BASE_URL",
    "AHREFS_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Strip data-source credentials so a developer's shell never leaks into tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Content fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_good_content():
    """A well-structured article about podcast hosting."""
    intro = (
        "Choosing podcast hosting is one of the first decisions a new show makes. "
        "However, the options can feel overwhelming at first. "
        "This guide compares storage, analytics and pricing so you can decide quickly. "
        "Therefore you will know exactly what to look for."
    )
    paragraph = (
        "Choosing a host is one of the first decisions a new show makes. "
        "However, the options can feel overwhelming at first. "
        "This guide compares storage, analytics and pricing so you can decide quickly. "
        "Therefore you will know exactly what to look for."
    )
    sections = []
    for title in (
        "What Is Podcast Hosting",
        "Podcast Hosting Features to Compare",
        "Pricing Plans Explained",
        "Analytics and Growth Tools",
        "Best Podcast Hosting for Beginners",
        "Migrating Your Show",
    ):
        sections.append(f"## {title}\n\n{paragraph}\n\n{paragraph}\n")

    return (
        "# The Complete Guide to Podcast Hosting\n\n"
        f"{intro}\n\n"
        + "\n".join(sections)
        + "\n- Reliable storage\n- Detailed analytics\n- Easy distribution\n\n"
        "Read our [launch checklist](/blog/launch-checklist) and "
        "[equipment guide](/blog/equipment) before you start. "
        "See [Apple Podcasts](https://podcasters.apple.com) and "
        "[Spotify](https://podcasters.spotify.com) for directory rules.\n\n"
        "In short, good podcast hosting saves you time every week.\n"
    )


@pytest.fixture
def sample_short_content():
    return "# Short Post\n\nThis post is short. It has few words.\n"


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------

def make_response(status_code=200, json_data=None, text=""):
    """Build a requests.Response look-alike."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 400
    resp.text = text
    if json_data is None:
        resp.json.side_effect = ValueError("No JSON")
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def mock_session():
    """Session stand-in whose headers behave like a real dict."""
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def fake_credentials():
    """Google credentials that are always valid and never hit the network."""
    creds = MagicMock()
    creds.valid = True
    creds.token = "test-token"
    return creds
