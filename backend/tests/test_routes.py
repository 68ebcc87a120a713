"""
HTTP surface tests.

Verifies:
- Unauthenticated requests return 401
- Staff act on their manager's ledgers; refunds and quota overrides are manager/admin only (403)
- Service errors map to 400 / 404 / 409
"""

import pytest

from posledger.models import User


def _order(product, qty=2, **extra):
    body = {
        "items": [{
            "product_id": product.id,
            "name": product.name,
            "category": product.category,
            "price": product.price,
            "qty": qty,
        }],
        "total": product.price * qty,
        "paid": product.price * qty,
        "change": 0,
        "payment_method": "cash",
    }
    body.update(extra)
    return body


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/orders"),
            ("GET", "/api/transactions"),
            ("GET", "/api/transactions/ORD-1"),
            ("POST", "/api/transactions/ORD-1/refund"),
            ("POST", "/api/transactions/ORD-1/mark-paid"),
            ("GET", "/api/stock"),
            ("POST", "/api/stock/adjust"),
            ("GET", "/api/stock/1/history"),
            ("GET", "/api/membership"),
            ("PUT", "/api/membership"),
            ("GET", "/api/membership/topups"),
            ("POST", "/api/membership/topups"),
        ],
    )
    def test_requires_token(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401

    def test_unknown_token(self, client, db_session):
        response = client.get("/api/transactions", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_staff_without_employee_row(self, client, db_session, auth):
        loner = User(name="Loner", email="loner@salon.test", role="staff")
        db_session.add(loner)
        db_session.commit()

        response = client.get("/api/transactions", headers=auth(loner))
        assert response.status_code == 400
        assert response.get_json()["error"] == "employee not found"


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"


# =============================================================================
# ORDERS & TRANSACTIONS
# =============================================================================


class TestOrders:

    def test_staff_order_lands_in_owner_ledger(self, client, db_session, auth, owner, staff, stock, tracked_product):
        response = client.post("/api/orders", json=_order(tracked_product), headers=auth(staff))
        assert response.status_code == 201
        sale = response.get_json()["sale"]
        assert sale["code"].startswith("ORD-")
        assert sale["total"] == 50000
        assert sale["operator_name"] == "Staff A"
        assert sale["currency"] == "IDR"

        response = client.get(f"/api/transactions/{sale['code']}", headers=auth(owner))
        assert response.status_code == 200
        assert response.get_json()["transaction"]["items"][0]["qty"] == 2

        stocks = client.get("/api/stock", headers=auth(owner)).get_json()["stocks"]
        assert stocks[0]["stock"] == 3

        membership = client.get("/api/membership", headers=auth(owner)).get_json()["membership"]
        assert membership["free_used"] == 2
        assert membership["free_quota"] == 1000

    @pytest.mark.parametrize(
        "patch",
        [
            {"items": []},
            {"items": [{"name": "Tip", "price": 1000, "qty": 0}]},
            {"items": [{"name": "Tip", "price": 1000, "qty": -1}]},
            {"items": [{"name": "Tip", "price": 10.5, "qty": 1}]},
            {"items": [{"name": "", "price": 1000, "qty": 1}]},
            {"total": "1e5"},
        ],
    )
    def test_invalid_orders_rejected(self, client, db_session, auth, owner, tracked_product, patch):
        body = _order(tracked_product)
        body.update(patch)

        response = client.post("/api/orders", json=body, headers=auth(owner))
        assert response.status_code == 400

        listed = client.get("/api/transactions", headers=auth(owner)).get_json()["transactions"]
        assert listed == []

    def test_customer_name_string(self, client, db_session, auth, owner, tracked_product):
        body = _order(tracked_product, customer="Budi")
        response = client.post("/api/orders", json=body, headers=auth(owner))
        assert response.get_json()["sale"]["customer"]["name"] == "Budi"

    def test_foreign_code_is_not_found(self, client, db_session, auth, owner, other_owner, tracked_product):
        code = client.post("/api/orders", json=_order(tracked_product), headers=auth(owner)).get_json()["sale"]["code"]

        response = client.get(f"/api/transactions/{code}", headers=auth(other_owner))
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "query",
        ["start_date=2026-13-01", "start_date=2026-03-10&end_date=2026-03-01"],
    )
    def test_bad_date_range(self, client, db_session, auth, owner, query):
        response = client.get(f"/api/transactions?{query}", headers=auth(owner))
        assert response.status_code == 400


class TestRefundRoutes:

    def _sell(self, client, auth, user, product):
        response = client.post("/api/orders", json=_order(product), headers=auth(user))
        return response.get_json()["sale"]["code"]

    def test_staff_cannot_refund(self, client, db_session, auth, staff, stock, tracked_product):
        code = self._sell(client, auth, staff, tracked_product)

        response = client.post(f"/api/transactions/{code}/refund", json={}, headers=auth(staff))
        assert response.status_code == 403

    def test_refund_then_mark_paid(self, client, db_session, auth, owner, stock, tracked_product):
        code = self._sell(client, auth, owner, tracked_product)

        response = client.post(f"/api/transactions/{code}/refund", json={"note": "rash"}, headers=auth(owner))
        assert response.status_code == 200
        body = response.get_json()["transaction"]
        assert body["status"] == "refunded"
        assert body["refund_note"] == "rash"
        assert body["refunded_by"] == owner.id

        # hidden by default
        assert client.get(f"/api/transactions/{code}", headers=auth(owner)).status_code == 404

        response = client.post(f"/api/transactions/{code}/refund", json={}, headers=auth(owner))
        assert response.status_code == 409

        response = client.post(f"/api/transactions/{code}/mark-paid", headers=auth(owner))
        assert response.status_code == 200
        assert response.get_json()["transaction"]["status"] == "paid"

        response = client.post(f"/api/transactions/{code}/mark-paid", headers=auth(owner))
        assert response.status_code == 409

    def test_refund_without_hiding(self, client, db_session, auth, owner, stock, tracked_product):
        code = self._sell(client, auth, owner, tracked_product)

        client.post(f"/api/transactions/{code}/refund", json={"delete": False}, headers=auth(owner))

        response = client.get(f"/api/transactions/{code}", headers=auth(owner))
        assert response.status_code == 200
        assert response.get_json()["transaction"]["status"] == "refunded"

    @pytest.mark.parametrize("flag", ["false", 0, "no"])
    def test_refund_delete_flag_must_be_boolean(self, client, db_session, auth, owner, stock, tracked_product, flag):
        code = self._sell(client, auth, owner, tracked_product)

        response = client.post(f"/api/transactions/{code}/refund", json={"delete": flag}, headers=auth(owner))
        assert response.status_code == 400

        response = client.get(f"/api/transactions/{code}", headers=auth(owner))
        assert response.get_json()["transaction"]["status"] == "paid"

    def test_refund_unknown_code(self, client, db_session, auth, owner):
        response = client.post("/api/transactions/ORD-1/refund", json={}, headers=auth(owner))
        assert response.status_code == 404


# =============================================================================
# STOCK
# =============================================================================


class TestStockRoutes:

    def test_adjust_and_history(self, client, db_session, auth, staff, stock):
        response = client.post(
            "/api/stock/adjust",
            json={"stock_id": stock.id, "change": 8, "type": "recount", "note": "count"},
            headers=auth(staff),
        )
        assert response.status_code == 200
        assert response.get_json()["stock"]["stock"] == 8

        history = client.get(f"/api/stock/{stock.id}/history", headers=auth(staff)).get_json()["history"]
        assert history[0]["type"] == "recount"
        assert history[0]["change"] == 3
        assert history[0]["remaining"] == 8

    def test_adjust_foreign_stock(self, client, db_session, auth, other_owner, stock):
        response = client.post(
            "/api/stock/adjust",
            json={"stock_id": stock.id, "change": 1},
            headers=auth(other_owner),
        )
        assert response.status_code == 404

    def test_adjust_requires_integer_change(self, client, db_session, auth, owner, stock):
        response = client.post(
            "/api/stock/adjust",
            json={"stock_id": stock.id, "change": "1.5"},
            headers=auth(owner),
        )
        assert response.status_code == 400

    def test_history_of_foreign_stock(self, client, db_session, auth, other_owner, stock):
        response = client.get(f"/api/stock/{stock.id}/history", headers=auth(other_owner))
        assert response.status_code == 404


# =============================================================================
# MEMBERSHIP
# =============================================================================


class TestMembershipRoutes:

    def test_staff_cannot_override_or_top_up(self, client, db_session, auth, staff):
        assert client.put("/api/membership", json={"used_quota": 5}, headers=auth(staff)).status_code == 403
        assert client.post("/api/membership/topups", json={"amount": 5}, headers=auth(staff)).status_code == 403
        assert client.get("/api/membership/topups", headers=auth(staff)).status_code == 403

    def test_topup_and_override(self, client, db_session, auth, owner):
        response = client.post(
            "/api/membership/topups",
            json={"amount": 500, "note": "transfer"},
            headers=auth(owner),
        )
        assert response.status_code == 201
        topup = response.get_json()["topup"]
        assert topup["amount"] == 500
        assert topup["manager"] == "Owner A"

        response = client.put("/api/membership", json={"used_quota": 1200}, headers=auth(owner))
        assert response.status_code == 200
        membership = response.get_json()["membership"]
        assert membership["free_used"] == 1000
        assert membership["topup_balance"] == 300
        assert membership["used_quota"] == 1200

        topups = client.get("/api/membership/topups", headers=auth(owner)).get_json()["topups"]
        assert [t["amount"] for t in topups] == [500]

    @pytest.mark.parametrize("body", [{"used_quota": -1}, {"used_quota": None}, {}])
    def test_override_rejects_bad_values(self, client, db_session, auth, owner, body):
        response = client.put("/api/membership", json=body, headers=auth(owner))
        assert response.status_code == 400

    def test_topup_rejects_non_positive_amount(self, client, db_session, auth, owner):
        response = client.post("/api/membership/topups", json={"amount": 0}, headers=auth(owner))
        assert response.status_code == 400
