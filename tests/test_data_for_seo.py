"""
Tests for the DataForSEO client.

Responses follow the v3 envelope: a top-level status_code plus a tasks
list whose entries carry their own status_code and result.
"""

import base64
from datetime import date, timedelta

import pytest
import requests

from seo_machine.data_for_seo import DataForSEO, _dig


def envelope(*results, status=20000, task_status=20000, data=None):
    tasks = [
        {"status_code": task_status, "data": data[i] if data else {}, "result": [result]}
        for i, result in enumerate(results)
    ]
    return {"status_code": status, "tasks": tasks}


def serp_result(domains, **keyword_info):
    return {
        "items_count": 1000,
        "keyword_data": {"keyword_info": keyword_info},
        "items": [
            {"type": "organic", "rank_absolute": i + 1, "domain": d, "url": f"https://{d}/post", "title": d}
            for i, d in enumerate(domains)
        ],
    }


@pytest.fixture
def dfs(mock_session):
    return DataForSEO(login="user", password="secret", session=mock_session)


class TestInit:
    def test_requires_credentials(self):
        with pytest.raises(EnvironmentError, match="DATAFORSEO_LOGIN"):
            DataForSEO(login="user")

    def test_basic_auth_header(self, dfs, mock_session):
        expected = base64.b64encode(b"user:secret").decode("ascii")
        assert mock_session.headers["Authorization"] == f"Basic {expected}"

    def test_env_and_base_url(self, monkeypatch, mock_session):
        monkeypatch.setenv("DATAFORSEO_LOGIN", "env-user")
        monkeypatch.setenv("DATAFORSEO_PASSWORD", "env-pass")
        monkeypatch.setenv("DATAFORSEO_BASE_URL", "https://sandbox.dataforseo.com/")
        client = DataForSEO(session=mock_session)
        assert client.base_url == "https://sandbox.dataforseo.com"


class TestSerp:
    def test_serp_data(self, dfs, mock_session, response_factory):
        result = serp_result(["a.com", "b.com"], search_volume=1200, cpc=2.5, competition=0.4)
        result["items"].insert(1, {"type": "people_also_ask"})
        result["items"].append({"type": "video"})
        result["items"].append({"type": "people_also_ask"})
        mock_session.post.return_value = response_factory(200, envelope(result))

        serp = dfs.get_serp_data("podcast hosting", limit=10)

        assert serp["search_volume"] == 1200
        assert serp["total_results"] == 1000
        assert [r["domain"] for r in serp["organic_results"]] == ["a.com", "b.com"]
        assert serp["features"] == ["people_also_ask", "video"]
        args, kwargs = mock_session.post.call_args
        assert args[0] == "https://api.dataforseo.com/v3/serp/google/organic/live/advanced"
        assert kwargs["json"][0]["depth"] == 10

    def test_request_failure(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, {"status_code": 40100})
        assert dfs.get_serp_data("kw") == {"error": "API request failed"}

    def test_task_failure(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, envelope({}, task_status=40501))
        assert dfs.get_serp_data("kw") == {"error": "Task failed"}

    def test_rankings(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, envelope(
            serp_result(["other.com", "blog.mysite.com"], search_volume=500, cpc=1.1),
            serp_result(["other.com"]),
            data=[{"keyword": "found"}, {"keyword": "missing"}],
        ))

        rankings = dfs.get_rankings("mysite.com", ["found", "missing"])

        assert rankings[0]["position"] == 2
        assert rankings[0]["url"] == "https://blog.mysite.com/post"
        assert rankings[0]["ranking"] is True
        assert rankings[0]["search_volume"] == 500
        assert rankings[1]["position"] is None
        assert rankings[1]["ranking"] is False
        assert len(mock_session.post.call_args.kwargs["json"]) == 2

    def test_analyze_competitor(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, envelope(
            serp_result(["rival.com", "x.com"]),
            serp_result(["rival.com"] + [f"s{i}.com" for i in range(11)] + ["me.com"]),
            serp_result(["x.com"]),
        ))

        result = dfs.analyze_competitor("rival.com", ["a", "b", "c"], your_domain="me.com")

        first, second, third = result["comparison"]
        assert first["gap"] == "Not ranking"
        assert first["opportunity"] == "high"
        assert second["gap"] == 12
        assert second["opportunity"] == "medium"
        assert third["competitor_position"] is None
        assert third["opportunity"] == "low"


class TestKeywords:
    def related(self, *keywords):
        return {"items": [
            {"keyword_data": {"keyword": kw, "keyword_info": {"search_volume": vol, "cpc": 1.0}}}
            for kw, vol in keywords
        ]}

    def test_keyword_ideas_sorted_by_volume(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, envelope(
            self.related(("podcast tips", 100), ("podcast mic", None), ("podcast hosting", 900))
        ))
        ideas = dfs.get_keyword_ideas("podcast")
        assert [i["keyword"] for i in ideas] == ["podcast hosting", "podcast tips", "podcast mic"]
        assert mock_session.post.call_args.args[0].endswith("/related_keywords/live")

    def test_questions_only(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, envelope(
            self.related(("how to start a podcast", 300), ("podcast mic", 800), ("Is podcasting dead", 50))
        ))
        questions = dfs.get_questions("podcast")
        assert [q["question"] for q in questions] == ["how to start a podcast", "Is podcasting dead"]

    def test_http_error_gives_empty(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(500, text="<html>oops</html>")
        assert dfs.get_keyword_ideas("podcast") == []


class TestDomains:
    def test_domain_metrics(self, dfs, mock_session, response_factory):
        metrics = {"organic": {"count": 1200, "etv": 5400.5, "rank": 310}, "backlinks": 870}
        mock_session.post.return_value = response_factory(200, envelope({"items": [{"metrics": metrics}]}))
        assert dfs.get_domain_metrics("example.com") == {
            "domain": "example.com",
            "organic_keywords": 1200,
            "organic_traffic": 5400.5,
            "domain_rank": 310,
            "backlinks": 870,
        }

    def test_domain_metrics_failure(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, {"status_code": 50000})
        assert dfs.get_domain_metrics("example.com") == {}

    def test_network_error_propagates(self, dfs, mock_session):
        mock_session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(requests.ConnectionError):
            dfs.get_domain_metrics("example.com")

    def test_ranking_history_swallows_network_errors(self, dfs, mock_session):
        mock_session.post.side_effect = requests.Timeout("slow")
        assert dfs.check_ranking_history("example.com", "podcast") == []

    def test_ranking_history_items(self, dfs, mock_session, response_factory):
        items = [{"date": "2024-01-01", "position": 4}]
        mock_session.post.return_value = response_factory(200, envelope({"items": items}))
        assert dfs.check_ranking_history("example.com", "podcast") == items

    def test_ranking_history_window_follows_months_back(self, dfs, mock_session, response_factory):
        mock_session.post.return_value = response_factory(200, envelope({"items": []}))
        dfs.check_ranking_history("example.com", "podcast", months_back=6)
        task = mock_session.post.call_args.kwargs["json"][0]
        today = date.today()
        assert task["date_to"] == today.isoformat()
        assert task["date_from"] == (today - timedelta(days=180)).isoformat()
        assert mock_session.post.call_args.args[0].endswith("/ranking_history/live")


class TestDig:
    @pytest.mark.parametrize("path,expected", [
        (("a", 0, "b"), 1),
        (("a", 5, "b"), None),
        (("missing", "b"), None),
        (("a", "b"), None),
    ])
    def test_paths(self, path, expected):
        assert _dig({"a": [{"b": 1}]}, *path) == expected
