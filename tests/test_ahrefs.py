"""Tests for the Ahrefs v3 client."""

from datetime import date

import pytest
import requests

from seo_machine.ahrefs import Ahrefs


@pytest.fixture
def ahrefs(mock_session, response_factory):
    mock_session.get.return_value = response_factory(200, {"domain_rating": {"domain_rating": 71.0}})
    return Ahrefs(api_key="ahrefs-key", session=mock_session)


class TestInit:
    def test_requires_key(self):
        with pytest.raises(EnvironmentError, match="AHREFS_API_KEY"):
            Ahrefs()

    def test_bearer_header(self, ahrefs, mock_session):
        assert mock_session.headers["Authorization"] == "Bearer ahrefs-key"

    def test_key_from_settings(self, mock_session):
        Ahrefs(app_settings={"ahrefs": {"api_key": "from-settings"}}, session=mock_session)
        assert mock_session.headers["Authorization"] == "Bearer from-settings"


class TestSiteExplorer:
    def test_domain_rating_defaults_to_today(self, ahrefs, mock_session):
        data = ahrefs.get_domain_rating("example.com")

        assert data == {"domain_rating": {"domain_rating": 71.0}}
        args, kwargs = mock_session.get.call_args
        assert args[0] == "https://api.ahrefs.com/v3/site-explorer/domain-rating"
        assert kwargs["params"] == {"target": "example.com", "date": date.today().isoformat()}

    def test_backlinks_stats_date_and_mode(self, ahrefs, mock_session):
        ahrefs.get_backlinks_stats("example.com", date_str="2024-05-01", mode="domain")
        assert mock_session.get.call_args.kwargs["params"] == {
            "target": "example.com", "date": "2024-05-01", "mode": "domain",
        }

    @pytest.mark.parametrize("method,endpoint", [
        ("get_organic_keywords", "site-explorer/organic-keywords"),
        ("get_top_pages", "site-explorer/top-pages"),
        ("get_referring_domains", "site-explorer/refdomains"),
        ("get_organic_competitors", "site-explorer/organic-competitors"),
    ])
    def test_listing_endpoints(self, ahrefs, mock_session, method, endpoint):
        getattr(ahrefs, method)("example.com", limit=5)
        args, kwargs = mock_session.get.call_args
        assert args[0].endswith(endpoint)
        assert kwargs["params"]["limit"] == 5
        assert kwargs["params"]["target"] == "example.com"
        assert "select" in kwargs["params"]


class TestKeywordsExplorer:
    def test_keywords_joined(self, ahrefs, mock_session):
        ahrefs.get_keyword_metrics(["podcast hosting", "podcast mic"], country="gb")
        params = mock_session.get.call_args.kwargs["params"]
        assert params["keywords"] == "podcast hosting,podcast mic"
        assert params["country"] == "gb"

    def test_related_keywords_accepts_string(self, ahrefs, mock_session):
        ahrefs.get_related_keywords("podcast", limit=10)
        params = mock_session.get.call_args.kwargs["params"]
        assert params["keywords"] == "podcast"
        assert params["limit"] == 10


class TestErrors:
    def test_non_2xx_raises(self, ahrefs, mock_session, response_factory):
        mock_session.get.return_value = response_factory(403, text="forbidden")
        with pytest.raises(requests.HTTPError, match="403"):
            ahrefs.get_domain_rating("example.com")

    def test_network_error_raises_http_error(self, ahrefs, mock_session):
        mock_session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(requests.HTTPError, match="network error"):
            ahrefs.get_domain_rating("example.com")

    def test_invalid_json(self, ahrefs, mock_session, response_factory):
        mock_session.get.return_value = response_factory(200, text="not json")
        with pytest.raises(requests.HTTPError, match="invalid JSON"):
            ahrefs.get_domain_rating("example.com")
