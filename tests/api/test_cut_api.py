import logging

from sqlalchemy.exc import OperationalError

from services.consumption_service import ConsumptionService
from services.exceptions import InternalError
from services.lot_store import LotStore
from tests.factories import LotFactory

CUT = "/api/v1/parts/cut"


def test_cut_missing_fields(client, user_headers):
    response = client.post(CUT, json={"inventoryId": 1}, headers=user_headers)
    assert response.status_code == 400
    assert response.json["error"] == "Inventory ID and use amount are required"


def test_cut_without_body(client, user_headers):
    response = client.post(CUT, headers=user_headers)
    assert response.status_code == 400


def test_cut_unknown_lot(client, user_headers):
    response = client.post(CUT, json={"inventoryId": 999999, "useAmount": 1},
                           headers=user_headers)
    assert response.status_code == 404
    assert response.json == {"error": "Inventory item not found"}


def test_cut_exceeding_spec(client, user_headers, db_session, read_lots):
    lot = LotFactory(part__sku="C-1", part__default_spec=2.0)

    response = client.post(CUT, json={"inventoryId": lot.id, "useAmount": 2.5},
                           headers=user_headers)

    assert response.status_code == 400
    assert response.json["error"] == "Use amount exceeds current spec"
    assert [l["quantity"] for l in read_lots("C-1")] == [1]


def test_cut_empty_lot(client, user_headers, db_session):
    lot = LotFactory(quantity=0)

    response = client.post(CUT, json={"inventoryId": lot.id, "useAmount": 1},
                           headers=user_headers)

    assert response.status_code == 400
    assert response.json["error"] == "Insufficient quantity"


def test_cut_full_consumption_reports_zero(client, user_headers, db_session, read_lots):
    lot = LotFactory(part__sku="C-2", part__default_spec=4.0)

    response = client.post(CUT, json={"inventoryId": lot.id, "useAmount": 4},
                           headers=user_headers)

    assert response.status_code == 200
    assert response.json["remaining_spec"] == 0
    assert response.json["scrap_id"] is None
    assert len(read_lots("C-2")) == 1


def test_cut_store_failure_is_500_and_rolled_back(client, user_headers, db_session,
                                                  read_lots, monkeypatch):
    lot = LotFactory(part__sku="C-3", part__default_spec=10.0)

    def broken_insert(session, **kwargs):
        raise OperationalError("INSERT INTO inventory", {}, Exception("database is locked"))

    monkeypatch.setattr(LotStore, "insert_lot", staticmethod(broken_insert))

    response = client.post(CUT, json={"inventoryId": lot.id, "useAmount": 1},
                           headers=user_headers)

    assert response.status_code == 500
    assert response.json == {"error": "Internal Server Error"}
    assert [l["quantity"] for l in read_lots("C-3")] == [1]


def test_store_failure_detail_shown_in_development(app, client, user_headers,
                                                   db_session, monkeypatch):
    app.config["DEV_MODE"] = True
    lot = LotFactory(part__default_spec=10.0)

    def broken_insert(session, **kwargs):
        raise OperationalError("INSERT INTO inventory", {}, Exception("database is locked"))

    monkeypatch.setattr(LotStore, "insert_lot", staticmethod(broken_insert))

    response = client.post(CUT, json={"inventoryId": lot.id, "useAmount": 1},
                           headers=user_headers)

    assert response.status_code == 500
    assert "database is locked" in response.json["message"]


def test_cut_non_object_body(client, user_headers):
    response = client.post(CUT, json=[1, 2], headers=user_headers)
    assert response.status_code == 400


def test_service_internal_error_is_logged(client, user_headers, db_session,
                                          monkeypatch, caplog):
    lot = LotFactory(part__default_spec=10.0)

    def failing_cut(session, lot_id, use_amount):
        raise InternalError("scrap bin unavailable")

    monkeypatch.setattr(ConsumptionService, "cut", staticmethod(failing_cut))

    with caplog.at_level(logging.ERROR, logger="api.errors"):
        response = client.post(CUT, json={"inventoryId": lot.id, "useAmount": 1},
                               headers=user_headers)

    assert response.status_code == 500
    assert response.json == {"error": "Internal Server Error"}
    assert any("scrap bin unavailable" in r.getMessage() for r in caplog.records)
