"""
餐单API集成测试
测试餐单链接创建、餐单计算与分享链接
"""

import pytest

PLAN_BODY = {
    "price_range": [10, 60],
    "selected_canteens": [],
    "filters": {},
    "with_beverage": True,
    "total_planned_budgets": 100,
    "meals_planning_amount": 2,
    "meals": [{"date": "2025-03-03", "time": "12:00"}],
}


@pytest.fixture
def plan_link(client):
    response = client.post("/api/v1/plans", json=PLAN_BODY)
    assert response.status_code == 200
    return response.json()


class TestCreatePlan:
    """餐单链接创建测试"""

    def test_create_plan_link(self, plan_link):
        assert plan_link["token"]
        assert len(plan_link["plan_id"]) == 32
        assert plan_link["path"] == f"/plan/{plan_link['token']}/{plan_link['plan_id']}"

    def test_new_plan_id_each_time(self, client):
        first = client.post("/api/v1/plans", json=PLAN_BODY).json()
        second = client.post("/api/v1/plans", json=PLAN_BODY).json()
        assert first["token"] == second["token"]
        assert first["plan_id"] != second["plan_id"]

    @pytest.mark.parametrize("override", [
        {"price_range": [60, 20]},
        {"price_range": [20]},
        {"meals_planning_amount": 6},
        {"meals_planning_amount": 0},
        {"total_planned_budgets": -1},
        {"selected_canteens": ["north,south"]},
        {"meals_planning_amount": 1, "meals": [{"time": "12:00"}, {"time": "18:00"}]},
        {"meals": [{"time": "25:00"}]},
    ])
    def test_invalid_body(self, client, override):
        response = client.post("/api/v1/plans", json={**PLAN_BODY, **override})
        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "VALIDATION_ERROR"

    def test_budget_required(self, client):
        body = {k: v for k, v in PLAN_BODY.items() if k != "total_planned_budgets"}
        assert client.post("/api/v1/plans", json=body).status_code == 422


class TestGetPlan:
    """餐单计算测试"""

    def test_get_plan(self, client, plan_link):
        response = client.get(f"/api/v1/plans/{plan_link['token']}/{plan_link['plan_id']}")
        assert response.status_code == 200
        data = response.json()

        assert data["plan_id"] == plan_link["plan_id"]
        assert data["token"] == plan_link["token"]
        assert data["total_planned_budgets"] == 100
        assert len(data["selected_menu"]) == 2
        assert data["budget_used"] <= 100 or data["used_fallback"] is True

        monday = data["selected_menu"][0]
        assert monday["meal"] == {"meal_number": 0, "date": "2025-03-03", "time": "12:00", "dayOfWeek": "MONDAY"}
        assert monday["store"]["id"] in ("north-noodles", "north-rice")
        assert monday["store"]["canteenId"] == "north"
        assert "menu" not in monday["store"]
        assert monday["canteen_name"] == "North Canteen"
        assert 10 <= monday["picked_meal"]["price"] <= 60
        assert monday["drink_store"]["id"] == "north-drinks"
        assert monday["drink_menu"]["name"] in ("Lemon Tea", "Iced Coffee")
        assert data["has_any_meal"] is True

    def test_same_link_same_plan(self, client, plan_link):
        url = f"/api/v1/plans/{plan_link['token']}/{plan_link['plan_id']}"
        assert client.get(url).json() == client.get(url).json()

    def test_invalid_token(self, client):
        response = client.get("/api/v1/plans/not-a-token/abc")
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "INVALID_CONSTRAINT_TOKEN"


class TestSharedPlan:
    """分享链接测试"""

    def test_shared_plan(self, client, plan_link):
        response = client.get(plan_link["path"])
        assert response.status_code == 200
        api = client.get(f"/api/v1/plans/{plan_link['token']}/{plan_link['plan_id']}")
        assert response.json() == api.json()

    def test_invalid_token_redirects_home(self, client):
        response = client.get("/plan/not-a-token/abc", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/"
