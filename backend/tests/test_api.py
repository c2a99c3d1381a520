from backend.clubhub.api.routes.chat import get_orchestrator
from backend.clubhub.api.routes.quiz import get_quiz_service
from backend.clubhub.chat import ChatOrchestrator, ToolRegistry
from backend.clubhub.main import app
from backend.clubhub.quiz import QuizService, QuizUnavailable
from backend.clubhub.storage import DB


def test_health_reports_database(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["club_count"] == 8
    assert body["checks"]["gemini"]["status"] == "disabled"


def test_request_id_is_echoed(client):
    resp = client.get("/v1/categories", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


def test_metrics_endpoint(client):
    client.get("/v1/clubs")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "clubhub_club_rankings_total" in resp.text


class TestClubs:
    def test_default_ranking_uses_user_preferences(self, client):
        client.put("/v1/users/alex/preferences", json={"tags": ["outdoor"]})
        resp = client.get("/v1/clubs", params={"user_id": "alex"})
        assert resp.status_code == 200
        clubs = resp.json()
        assert len(clubs) == 8
        top = [club["name"] for club in clubs[:3]]
        assert top == ["Environmental Alliance", "Photography Society", "Varsity Soccer"]
        assert all(club["is_match_for_user"] for club in clubs[:3])
        assert not clubs[3]["is_match_for_user"]

    def test_filters_and_selected_tags(self, client):
        resp = client.get(
            "/v1/clubs",
            params=[("tag", "creative"), ("tag", "food"), ("hidden", "8"), ("category", "arts")],
        )
        names = [club["name"] for club in resp.json()]
        assert names == ["Photography Society"]

        resp = client.get("/v1/clubs", params=[("tag", "creative"), ("tag", "food")])
        ranked = resp.json()
        assert ranked[0]["name"] == "Cooking Club"
        assert ranked[0]["selected_tags_score"] == 2

    def test_search_and_alphabetical_sort(self, client):
        resp = client.get("/v1/clubs", params={"q": "CLUB", "sort": "name"})
        assert [club["name"] for club in resp.json()] == ["Chess Club", "Cooking Club", "Debate Club"]

    def test_unknown_sort_mode_is_rejected(self, client):
        assert client.get("/v1/clubs", params={"sort": "popularity"}).status_code == 422

    def test_club_detail_and_events(self, client):
        assert client.get("/v1/clubs/4").json()["name"] == "Varsity Soccer"
        assert client.get("/v1/clubs/nope").status_code == 404
        events = client.get("/v1/clubs/4/events").json()
        assert events[0]["location"] == "IM Sports West Field 1"
        assert client.get("/v1/clubs/nope/events").status_code == 404

    def test_tag_and_category_indexes(self, client):
        tags = client.get("/v1/tags").json()
        assert "music" in tags
        assert tags == sorted(tags, key=str.casefold)
        categories = client.get("/v1/categories").json()
        assert categories[:2] == ["Academic", "Arts"]


class TestQuiz:
    def test_quiz_submission_and_edit_prefill(self, client):
        quiz = client.get("/v1/quiz").json()
        assert [question["id"] for question in quiz["questions"]] == [
            "q-activities",
            "q-setting",
            "q-people",
        ]
        selections = {
            "q-activities": ["q-activities-create"],
            "q-setting": ["q-setting-indoor"],
            "q-people": ["q-people-talk"],
        }
        resp = client.post("/v1/quiz", json={"user_id": "sam", "selections": selections})
        assert resp.status_code == 200
        profile = resp.json()
        assert profile["completed_onboarding"] is True
        assert "music" in profile["preference_tags"]

        prefill = client.get("/v1/quiz", params={"user_id": "sam", "edit": "true"}).json()
        assert prefill["selections"]["q-people"] == ["q-people-talk"]

    def test_incomplete_quiz_is_422(self, client):
        resp = client.post(
            "/v1/quiz",
            json={"user_id": "sam", "selections": {"q-setting": ["q-setting-indoor"]}},
        )
        assert resp.status_code == 422
        assert resp.json()["unanswered"] == ["q-activities", "q-people"]

    def test_store_outage_is_503(self, client):
        class DownQuizService(QuizService):
            async def load_quiz(self, user_id=None, *, edit=False):
                raise QuizUnavailable("Failed to load quiz questions")

        app.dependency_overrides[get_quiz_service] = lambda: DownQuizService(DB)
        resp = client.get("/v1/quiz")
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Failed to load quiz questions"

    def test_preference_editor_round_trip(self, client):
        client.put("/v1/users/kim/preferences", json={"tags": ["coding", "music"]})
        resp = client.put("/v1/users/kim/preferences", json={"tags": ["coding", "sports"]})
        assert resp.json()["preference_tags"] == ["coding", "sports"]
        editor = client.get("/v1/users/kim/preferences").json()
        assert editor["selected"] == ["coding", "sports"]
        assert "Sports" in editor["interests"]


class TestMemberships:
    def test_follow_and_unfollow(self, client):
        assert client.put("/v1/users/jo/follows/2").json() == {"active": True}
        assert client.put("/v1/users/jo/follows/2").status_code == 200
        assert [club["id"] for club in client.get("/v1/users/jo/follows").json()] == ["2"]
        assert client.put("/v1/users/jo/follows/404").status_code == 404
        assert client.delete("/v1/users/jo/follows/2").json() == {"active": False}
        assert client.get("/v1/users/jo/follows").json() == []

    def test_event_signup(self, client):
        assert client.put("/v1/users/jo/events/6-weekly").status_code == 200
        assert client.put("/v1/users/jo/events/missing").status_code == 404
        events = client.get("/v1/users/jo/events").json()
        assert [event["title"] for event in events] == ["Blitz Night"]
        client.delete("/v1/users/jo/events/6-weekly")
        assert client.get("/v1/users/jo/events").json() == []


class TestChat:
    def test_chat_returns_reply_and_outcome(self, client):
        async def transport(payload):
            return {"candidates": [{"content": {"parts": [{"text": "Try Chess Club!"}]}}]}

        orchestrator = ChatOrchestrator(ToolRegistry(DB), transport=transport, timeout_seconds=5)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        resp = client.post(
            "/v1/chat",
            json={
                "message": "strategy games?",
                "history": [{"text": "Hi there!", "is_user": False}],
                "user_id": "jo",
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"reply": "Try Chess Club!", "outcome": "direct", "tools": []}

    def test_chat_without_api_key_explains_configuration(self, client):
        resp = client.post("/v1/chat", json={"message": "hello"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"] == "error"
        assert "configuration" in body["reply"]

    def test_blank_message_is_rejected(self, client):
        assert client.post("/v1/chat", json={"message": ""}).status_code == 422
