"""
API tests for the storefront: public deals, line items and checkout
"""
import pytest

from tests.helpers import auth_headers, make_deal, make_user


class TestPublicDealsAPI:
    @pytest.mark.asyncio
    async def test_only_live_deals_are_listed(self, client, db_session):
        live = await make_deal(db_session, title="Wine tasting", published=True)
        draft = await make_deal(db_session, title="Wine cellar tour")

        resp = await client.get("/deals")
        assert [d["id"] for d in resp.json()] == [live.id]

        resp = await client.get("/deals", params={"q": "WINE"})
        assert [d["id"] for d in resp.json()] == [live.id]

        resp = await client.get(f"/deals/{draft.id}")
        assert resp.status_code == 404


class TestCartAPI:
    @pytest.mark.asyncio
    async def test_add_increment_and_checkout(self, client, customer, db_session):
        deal = await make_deal(db_session, published=True)

        first = await client.post(f"/line-items?deal_id={deal.id}")
        assert first.status_code == 201
        second = await client.post(f"/line-items?deal_id={deal.id}")
        assert second.json()["id"] == first.json()["id"]
        assert second.json()["quantity"] == 2

        cart = await client.get("/cart")
        assert cart.json()["state"] == "in_progress"
        assert len(cart.json()["line_items"]) == 1

        resp = await client.post("/cart/checkout", headers=auth_headers(customer))
        assert resp.status_code == 200
        order = resp.json()
        assert order["state"] == "completed"
        assert order["user_id"] == customer.id

        # a fresh cart after checkout
        cart = await client.get("/cart")
        assert cart.json()["id"] != order["id"]
        assert cart.json()["line_items"] == []

        resp = await client.get("/line-items", headers=auth_headers(customer))
        assert [li["quantity"] for li in resp.json()] == [2]

    @pytest.mark.asyncio
    async def test_decrement_destroys_at_zero(self, client, db_session):
        deal = await make_deal(db_session, published=True)
        li = (await client.post(f"/line-items?deal_id={deal.id}")).json()

        resp = await client.post(f"/line-items/{li['id']}/decrement")
        assert resp.status_code == 200
        assert resp.json() == {"destroyed": True, "line_item": None}

        cart = await client.get("/cart")
        assert cart.json()["line_items"] == []

    @pytest.mark.asyncio
    async def test_unpublished_deal_rejected(self, client, db_session):
        deal = await make_deal(db_session)

        resp = await client.post(f"/line-items?deal_id={deal.id}")
        assert resp.status_code == 422
        assert resp.json()["errors"]["base"] == ["Deal is not available for purchase"]

    @pytest.mark.asyncio
    async def test_checkout_needs_login(self, client, db_session):
        deal = await make_deal(db_session, published=True)
        await client.post(f"/line-items?deal_id={deal.id}")

        resp = await client.post("/cart/checkout")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_empty_cart_checkout(self, client, customer):
        resp = await client.post("/cart/checkout", headers=auth_headers(customer))
        assert resp.status_code == 422
        assert resp.json()["errors"]["base"] == ["Cart is empty"]

    @pytest.mark.asyncio
    async def test_customer_manages_items_in_own_cart(self, client, customer, db_session):
        deal = await make_deal(db_session, published=True, per_customer=3)
        li = (await client.post(f"/line-items?deal_id={deal.id}")).json()
        headers = auth_headers(customer)

        resp = await client.get("/line-items", headers=headers)
        assert [item["id"] for item in resp.json()] == [li["id"]]

        resp = await client.get(f"/line-items/{li['id']}", headers=headers)
        assert resp.status_code == 200

        resp = await client.patch(f"/line-items/{li['id']}", json={"quantity": 3}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["quantity"] == 3

        resp = await client.delete(f"/line-items/{li['id']}", headers=headers)
        assert resp.json() == {"deleted": True, "detail": "Line item deleted"}

        cart = await client.get("/cart")
        assert cart.json()["line_items"] == []

    @pytest.mark.asyncio
    async def test_placed_items_are_read_only(self, client, customer, db_session):
        deal = await make_deal(db_session, published=True, per_customer=3)
        li = (await client.post(f"/line-items?deal_id={deal.id}")).json()
        headers = auth_headers(customer)
        await client.post("/cart/checkout", headers=headers)

        resp = await client.get(f"/line-items/{li['id']}", headers=headers)
        assert resp.status_code == 200

        resp = await client.patch(f"/line-items/{li['id']}", json={"quantity": 3}, headers=headers)
        assert resp.status_code == 422

        resp = await client.delete(f"/line-items/{li['id']}", headers=headers)
        assert resp.json() == {
            "deleted": False,
            "detail": "Line item belongs to a placed order",
        }

    @pytest.mark.asyncio
    async def test_other_customers_item_is_hidden(self, client, customer, db_session):
        deal = await make_deal(db_session, published=True)
        li = (await client.post(f"/line-items?deal_id={deal.id}")).json()

        other = await make_user(db_session, email="other@example.com")
        # a different browser: no session cookie
        client.cookies.clear()
        resp = await client.get(f"/line-items/{li['id']}", headers=auth_headers(other))
        assert resp.status_code == 404
