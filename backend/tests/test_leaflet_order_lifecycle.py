"""
Leaflet order lifecycle tests.

Verifies:
- Creating an order takes exactly `quantity` out of stock
- A failed create leaves stock and orders untouched
- Partial completion credits exactly `returned` back
- Cancellation credits exactly `quantity` back
- Full success and decline leave stock alone
- Completion is only allowed from IN_PROCESS
- Every transition writes one audit row
- A stale stock version replays the create; repeated conflicts give up
- Failed commits on edit and payment roll back and leave no proof file
"""

import io
import json
import os

import pytest
from sqlalchemy.orm.exc import StaleDataError

from backoffice.models import Leaflet, LeafletOrder, LogEntry
from backoffice.models.distribution import STATE_DECLINED, STATE_DONE, STATE_IN_PROCESS
from backoffice.services import leaflet_order_service
from backoffice.services.leaflet_order_service import InsufficientStock, InvalidTransition
from backoffice.validation import NotFoundError, ValidationError


def _create(leaflet, city, distributor, quantity=30, profit_type="MKD"):
    return leaflet_order_service.create_leaflet_order(
        profit_type=profit_type,
        quantity=quantity,
        leaflet_id=leaflet.id,
        city_id=city.id,
        distributor_id=distributor.id,
        square_number="12",
        who_did="Тест",
    )


# =============================================================================
# CREATE
# =============================================================================


class TestCreate:

    def test_create_decrements_stock(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        assert leaflet.value == 70
        assert order.state == STATE_IN_PROCESS
        assert order.quantity == 30
        assert order.distributor_profit == 0.0

    def test_create_writes_audit_row(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        entry = db_session.query(LogEntry).filter_by(event_type="LEAFLET_ORDER_CREATED").one()
        assert entry.type == "advertising"
        assert entry.who_did == "Тест"
        payload = json.loads(entry.payload)
        assert payload["order_id"] == order.id
        assert payload["stock_after"] == 70

    def test_insufficient_stock_leaves_everything_unchanged(self, db_session, leaflet, city, distributor):
        with pytest.raises(InsufficientStock) as exc:
            _create(leaflet, city, distributor, quantity=101)

        assert str(exc.value) == "Недостаточно листовок на складе"
        assert leaflet.value == 100
        assert db_session.query(LeafletOrder).count() == 0
        assert db_session.query(LogEntry).count() == 0

    def test_whole_stock_can_be_taken(self, db_session, leaflet, city, distributor):
        _create(leaflet, city, distributor, quantity=100)
        assert leaflet.value == 0

    def test_missing_leaflet(self, db_session, city, distributor):
        with pytest.raises(NotFoundError) as exc:
            leaflet_order_service.create_leaflet_order(
                profit_type="MKD", quantity=1, leaflet_id=999, city_id=city.id, distributor_id=distributor.id
            )
        assert str(exc.value) == "Листовка не найдена"

    def test_missing_distributor_does_not_touch_stock(self, db_session, leaflet, city):
        with pytest.raises(NotFoundError):
            leaflet_order_service.create_leaflet_order(
                profit_type="MKD", quantity=10, leaflet_id=leaflet.id, city_id=city.id, distributor_id=999
            )
        assert leaflet.value == 100

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_non_positive_quantity(self, db_session, leaflet, city, distributor, quantity):
        with pytest.raises(ValidationError):
            _create(leaflet, city, distributor, quantity=quantity)
        assert leaflet.value == 100

    def test_unknown_profit_type(self, db_session, leaflet, city, distributor):
        with pytest.raises(ValidationError):
            _create(leaflet, city, distributor, profit_type="XYZ")


# =============================================================================
# COMPLETE
# =============================================================================


class TestComplete:

    def test_full_success(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30, profit_type="MKD")

        order = leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="success")

        assert order.state == STATE_DONE
        assert order.given == 30
        assert order.returned == 0
        assert order.distributor_profit == pytest.approx(15.0)
        assert order.done_at is not None
        assert leaflet.value == 70

    def test_partial_credits_returned(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30, profit_type="CHS")

        order = leaflet_order_service.complete_leaflet_order(
            order_id=order.id, outcome="partial", distributed=20, returned=10
        )

        assert order.state == STATE_DONE
        assert order.given == 20
        assert order.returned == 10
        assert order.distributor_profit == pytest.approx(30.0)
        assert leaflet.value == 80

    def test_partial_with_missing_leaflets(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        order = leaflet_order_service.complete_leaflet_order(
            order_id=order.id, outcome="partial", distributed=20, returned=5
        )

        assert leaflet.value == 75
        assert order.distributor_profit == pytest.approx(10.0)

    def test_partial_over_quantity_rejected(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        with pytest.raises(ValidationError):
            leaflet_order_service.complete_leaflet_order(
                order_id=order.id, outcome="partial", distributed=25, returned=10
            )

        db_session.refresh(order)
        assert order.state == STATE_IN_PROCESS
        assert leaflet.value == 70

    def test_partial_requires_counts(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        with pytest.raises(ValidationError):
            leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="partial", distributed=5)

    def test_cancel_credits_full_quantity(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        order = leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="cancel")

        assert order.state == STATE_DONE
        assert order.given == 0
        assert order.returned == 30
        assert order.distributor_profit == 0.0
        assert leaflet.value == 100

    def test_decline_keeps_stock(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        order = leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="decline")

        assert order.state == STATE_DECLINED
        assert order.given == 0
        assert order.returned == 0
        assert leaflet.value == 70

    def test_cannot_complete_twice(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="cancel")

        with pytest.raises(InvalidTransition):
            leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="cancel")

        assert leaflet.value == 100

    def test_each_transition_logs_once(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        leaflet_order_service.complete_leaflet_order(
            order_id=order.id, outcome="partial", distributed=20, returned=10
        )

        events = [e.event_type for e in db_session.query(LogEntry).order_by(LogEntry.id).all()]
        assert events == ["LEAFLET_ORDER_CREATED", "LEAFLET_ORDER_PARTIAL"]

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            leaflet_order_service.complete_leaflet_order(order_id=12345, outcome="success")


# =============================================================================
# EDIT / PAY
# =============================================================================


class TestEditAndPay:

    def test_edit_quantity_does_not_touch_stock(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)

        order = leaflet_order_service.edit_leaflet_order_quantity(order_id=order.id, quantity=40)

        assert order.quantity == 40
        assert leaflet.value == 70
        entry = db_session.query(LogEntry).filter_by(event_type="LEAFLET_ORDER_QUANTITY_EDITED").one()
        assert entry.what_happened == f"Изменен заказ {order.id}: выдали 40"

    def test_edit_negative_quantity(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        with pytest.raises(ValidationError):
            leaflet_order_service.edit_leaflet_order_quantity(order_id=order.id, quantity=-1)

    def test_payment_proof_marks_done(self, app, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="success")

        from werkzeug.datastructures import FileStorage
        file = FileStorage(stream=io.BytesIO(b"fake-image"), filename="check.png")
        order = leaflet_order_service.upload_payment_proof(order_id=order.id, file=file)

        assert order.state == STATE_DONE
        assert order.paid_at is not None
        assert order.payment_photo.startswith(f"/uploads/distribution/{order.id}_")
        assert order.payment_photo.endswith("_check.png")

    def test_payment_proof_rejected_for_declined(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        leaflet_order_service.complete_leaflet_order(order_id=order.id, outcome="decline")

        from werkzeug.datastructures import FileStorage
        file = FileStorage(stream=io.BytesIO(b"x"), filename="check.png")
        with pytest.raises(InvalidTransition):
            leaflet_order_service.upload_payment_proof(order_id=order.id, file=file)

    def test_payment_proof_requires_file(self, db_session, leaflet, city, distributor):
        order = _create(leaflet, city, distributor, quantity=30)
        with pytest.raises(ValidationError):
            leaflet_order_service.upload_payment_proof(order_id=order.id, file=None)

    def test_failed_chat_notification_keeps_payment(self, app, db_session, leaflet, city, distributor, monkeypatch):
        from werkzeug.datastructures import FileStorage
        from backoffice.services import notification_service

        def broken_send(path, caption):
            raise notification_service.NotificationError("chat down")

        monkeypatch.setattr(notification_service, "send_admin_photo", broken_send)
        order = _create(leaflet, city, distributor, quantity=30)

        file = FileStorage(stream=io.BytesIO(b"x"), filename="check.jpg")
        order = leaflet_order_service.upload_payment_proof(order_id=order.id, file=file)

        assert order.state == STATE_DONE
        assert db_session.query(LogEntry).filter_by(event_type="LEAFLET_ORDER_PAID").count() == 1

    def test_failed_edit_commit_keeps_quantity(self, db_session, leaflet, city, distributor, monkeypatch):
        order = _create(leaflet, city, distributor, quantity=30)
        order_id = order.id

        def broken_commit():
            raise RuntimeError("database went away")

        monkeypatch.setattr(db_session(), "commit", broken_commit)
        with pytest.raises(RuntimeError):
            leaflet_order_service.edit_leaflet_order_quantity(order_id=order_id, quantity=40)

        assert db_session.get(LeafletOrder, order_id).quantity == 30
        assert db_session.query(LogEntry).filter_by(event_type="LEAFLET_ORDER_QUANTITY_EDITED").count() == 0

    def test_failed_payment_commit_removes_proof(self, app, db_session, leaflet, city, distributor, monkeypatch):
        from werkzeug.datastructures import FileStorage

        order = _create(leaflet, city, distributor, quantity=30)
        order_id = order.id
        folder = os.path.join(app.config["UPLOAD_FOLDER"], "distribution")
        os.makedirs(folder, exist_ok=True)
        before = set(os.listdir(folder))

        def broken_commit():
            raise RuntimeError("database went away")

        monkeypatch.setattr(db_session(), "commit", broken_commit)
        file = FileStorage(stream=io.BytesIO(b"x"), filename="check.png")
        with pytest.raises(RuntimeError):
            leaflet_order_service.upload_payment_proof(order_id=order_id, file=file)

        assert set(os.listdir(folder)) == before
        order = db_session.get(LeafletOrder, order_id)
        assert order.state == STATE_IN_PROCESS
        assert order.payment_photo is None


# =============================================================================
# CONCURRENT WRITES
# =============================================================================


class TestStaleStock:

    @pytest.fixture(autouse=True)
    def no_backoff(self, monkeypatch):
        monkeypatch.setattr("backoffice.services.concurrency.time.sleep", lambda seconds: None)

    def test_create_replays_after_stale_version(self, db_session, leaflet, city, distributor, monkeypatch):
        session = db_session()
        real_commit = session.commit
        calls = []

        def commit_stale_once():
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("leaflets row changed underneath")
            real_commit()

        monkeypatch.setattr(session, "commit", commit_stale_once)
        _create(leaflet, city, distributor, quantity=30)

        assert len(calls) == 2
        db_session.expire_all()
        assert db_session.get(Leaflet, leaflet.id).value == 70
        assert db_session.query(LeafletOrder).count() == 1
        assert db_session.query(LogEntry).filter_by(event_type="LEAFLET_ORDER_CREATED").count() == 1

    def test_create_gives_up_when_every_attempt_is_stale(self, db_session, leaflet, city, distributor, monkeypatch):
        session = db_session()
        calls = []

        def always_stale():
            calls.append(1)
            raise StaleDataError("leaflets row changed underneath")

        monkeypatch.setattr(session, "commit", always_stale)
        with pytest.raises(StaleDataError):
            _create(leaflet, city, distributor, quantity=30)

        assert len(calls) == 3
        db_session.expire_all()
        assert db_session.get(Leaflet, leaflet.id).value == 100
        assert db_session.query(LeafletOrder).count() == 0

    def test_domain_errors_are_not_replayed(self, db_session, leaflet, city, distributor, monkeypatch):
        session = db_session()
        real_commit = session.commit
        calls = []

        def counting_commit():
            calls.append(1)
            real_commit()

        monkeypatch.setattr(session, "commit", counting_commit)
        with pytest.raises(InsufficientStock):
            _create(leaflet, city, distributor, quantity=500)

        assert calls == []
        assert db_session.get(Leaflet, leaflet.id).value == 100
