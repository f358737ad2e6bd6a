"""
食堂浏览API集成测试
"""

import pytest

from ..core.security import SecurityManager, get_security_manager


def store_ids(data):
    return [store["id"] for canteen in data["items"] for store in canteen["stores"]]


class TestCanteensAPI:
    """食堂浏览API测试"""

    def test_list_all(self, client):
        response = client.get("/api/v1/canteens")
        assert response.status_code == 200
        data = response.json()

        assert data["total"] == 2
        assert data["page"] == 1
        assert data["pages"] == 1
        assert [c["id"] for c in data["items"]] == ["north", "south"]
        assert store_ids(data) == ["north-drinks", "north-noodles", "north-rice", "south-juice", "south-steak"]

    def test_store_shape(self, client):
        data = client.get("/api/v1/canteens").json()
        north = data["items"][0]
        assert north["with_air_conditioning"] is True

        noodles = north["stores"][1]
        assert noodles["canteenId"] == "north"
        assert noodles["openingHours"][0]["dayOfWeek"] in (
            "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY")
        assert [item["name"] for item in noodles["menu"]] == ["Pork Noodles", "Beef Noodles"]
        assert noodles["average_rating"] == 0
        assert noodles["rating_count"] == 0
        assert noodles["user_rating"] is None

    def test_filter_by_canteen_ids(self, client):
        data = client.get("/api/v1/canteens", params={"canteen_ids": "south, missing"}).json()
        assert [c["id"] for c in data["items"]] == ["south"]

    @pytest.mark.parametrize("params,expected", [
        ({"with_aircon": True}, ["north"]),
        ({"no_aircon": True}, ["south"]),
        ({"with_aircon": True, "no_aircon": True}, ["north", "south"]),
    ])
    def test_filter_aircon(self, client, params, expected):
        data = client.get("/api/v1/canteens", params=params).json()
        assert [c["id"] for c in data["items"]] == expected

    def test_filter_price(self, client):
        """价格区间外的菜单被隐藏，没有菜单的店铺和食堂不返回"""
        data = client.get("/api/v1/canteens", params={"min_price": 50, "max_price": 100}).json()
        assert data["total"] == 1
        assert store_ids(data) == ["south-steak"]

    def test_filter_sub_category(self, client):
        data = client.get("/api/v1/canteens", params={"noodles": True}).json()
        assert store_ids(data) == ["north-noodles"]

    def test_filter_beverage(self, client):
        data = client.get("/api/v1/canteens", params={"beverage": True}).json()
        assert store_ids(data) == ["north-drinks", "south-juice"]
        assert [i["name"] for i in data["items"][0]["stores"][0]["menu"]] == ["Lemon Tea", "Iced Coffee", "Pearls"]

    def test_filter_others(self, client):
        data = client.get("/api/v1/canteens", params={"others": True}).json()
        assert store_ids(data) == ["north-rice"]
        assert [i["name"] for i in data["items"][0]["stores"][0]["menu"]] == ["Omelette Rice"]

    def test_pagination(self, client):
        data = client.get("/api/v1/canteens", params={"page": 2, "size": 1}).json()
        assert data["total"] == 2
        assert data["pages"] == 2
        assert [c["id"] for c in data["items"]] == ["south"]

    def test_page_out_of_range(self, client):
        data = client.get("/api/v1/canteens", params={"page": 5}).json()
        assert data["items"] == []
        assert data["total"] == 2

    def test_invalid_price_range(self, client):
        response = client.get("/api/v1/canteens", params={"min_price": 100, "max_price": 10})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_ratings_attached(self, client):
        first = client.post("/api/v1/fingerprint", json={"fingerprint": "browser-1"}).json()["token"]
        second = client.post("/api/v1/fingerprint", json={"fingerprint": "browser-2"}).json()["token"]
        client.put("/api/v1/stores/north-rice/rating", json={"rating": 4}, headers={"X-Client-Token": first})
        client.put("/api/v1/stores/north-rice/rating", json={"rating": 3}, headers={"X-Client-Token": second})

        data = client.get("/api/v1/canteens", headers={"X-Client-Token": first}).json()
        [rice] = [s for s in data["items"][0]["stores"] if s["id"] == "north-rice"]
        assert rice["average_rating"] == 3.5
        assert rice["rating_count"] == 2
        assert rice["user_rating"] == 4

        anonymous = client.get("/api/v1/canteens").json()
        [rice] = [s for s in anonymous["items"][0]["stores"] if s["id"] == "north-rice"]
        assert rice["user_rating"] is None

    def test_invalid_client_token_ignored(self, client):
        response = client.get("/api/v1/canteens", headers={"X-Client-Token": "garbage"})
        assert response.status_code == 200

    def test_fingerprint_uses_security_dependency(self, app, client):
        """浏览接口通过 get_security_manager 依赖校验令牌"""
        override = SecurityManager(secret="another-secret", algorithm="HS256", expire_days=1)
        app.dependency_overrides[get_security_manager] = lambda: override

        token = client.post("/api/v1/fingerprint", json={"fingerprint": "browser-9"}).json()["token"]
        assert override.verify_client_token(token) == "browser-9"
        rated = client.put("/api/v1/stores/south-juice/rating", json={"rating": 2}, headers={"X-Client-Token": token})
        assert rated.status_code == 200

        data = client.get("/api/v1/canteens", headers={"X-Client-Token": token}).json()
        [juice] = [s for c in data["items"] for s in c["stores"] if s["id"] == "south-juice"]
        assert juice["user_rating"] == 2
