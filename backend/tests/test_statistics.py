"""
Dashboard statistics tests.
"""

from datetime import datetime

import pytest

from backoffice.models import LeafletOrder, Order
from backoffice.models.distribution import STATE_DONE, STATE_FORPAYMENT, STATE_IN_PROCESS
from backoffice.services import statistics_service
from backoffice.validation import ValidationError


NOW = datetime(2026, 10, 19, 12, 0)


def _order(db_session, city, *, status="DONE", date_done=None, date_created=None, received=0, outlay=0,
           received_worker=0, payment_type="CASH", visit_type="FIRST", time_changed_count=0):
    date_created = date_created or date_done or NOW
    order = Order(
        full_name="Клиент",
        phone="+7900",
        address="ул. Пушкина",
        city_id=city.id,
        arrive_date=date_created,
        status=status,
        received=received,
        outlay=outlay,
        received_worker=received_worker,
        payment_type=payment_type,
        visit_type=visit_type,
        time_changed_count=time_changed_count,
        date_created=date_created,
        date_done=date_done,
    )
    db_session.add(order)
    db_session.commit()
    return order


@pytest.fixture
def history(db_session, city):
    _order(db_session, city, date_done=datetime(2026, 10, 3, 10), received=5000, outlay=1000,
           received_worker=1500, payment_type="CARD")
    _order(db_session, city, date_done=datetime(2026, 10, 3, 18), received=3000, outlay=0,
           received_worker=1000, time_changed_count=2)
    _order(db_session, city, date_done=datetime(2026, 10, 12, 9), received=2000, outlay=500,
           received_worker=500, visit_type="GARAGE")
    _order(db_session, city, date_done=datetime(2026, 8, 1, 9), received=1000, outlay=0,
           received_worker=0)
    _order(db_session, city, date_done=datetime(2025, 12, 31, 9), received=700, outlay=0,
           received_worker=200)
    _order(db_session, city, status="PENDING", date_created=datetime(2026, 1, 1))
    _order(db_session, city, status="CANCEL_CC", date_created=datetime(2026, 10, 5))
    _order(db_session, city, status="CANCEL_CC", date_created=datetime(2026, 9, 5))


class TestOverview:

    def test_status_counts(self, history):
        counts = statistics_service.status_counts(now=NOW)

        assert counts["PENDING"] == 1
        assert counts["CANCEL_CC"] == 1
        assert counts["ON_THE_WAY"] == 0
        # final statuses only count orders created this month
        assert counts["DONE"] == 3

    def test_month_stats(self, history):
        stats = statistics_service.month_stats(now=NOW)
        assert stats == {
            "count": 3,
            "received": 10000,
            "outlay": 1500,
            "received_worker": 3000,
            "profit": 5500,
        }

    def test_profit_stats(self, history):
        stats = statistics_service.profit_stats()
        assert stats["count"] == 5
        assert stats["total_profit"] == 5500 + 1000 + 500
        assert "profit" not in stats

    def test_available_periods(self, history):
        assert statistics_service.available_periods() == [
            {"year": 2026, "months": [7, 9]},
            {"year": 2025, "months": [11]},
        ]


class TestMonthly:

    def test_year_groups_by_month(self, history):
        data = statistics_service.monthly_statistics(year=2026)

        labels = [row["month"] for row in data["monthly_stats"]]
        assert labels == ["Август", "Октябрь"]
        october = data["monthly_stats"][1]
        assert october["count"] == 3
        assert october["profit"] == 5500
        assert october["time_changed"] == 1

    def test_month_groups_by_day(self, history):
        data = statistics_service.monthly_statistics(year=2026, month=9)

        assert [row["month"] for row in data["monthly_stats"]] == ["3 окт", "12 окт"]
        assert data["monthly_stats"][0]["count"] == 2
        assert {r["type"]: r["count"] for r in data["payment_types_summary"]} == {"CARD": 1, "CASH": 2}
        assert {r["type"]: r["count"] for r in data["visit_type_summary"]} == {"FIRST": 2, "GARAGE": 1}

    def test_empty_month(self, history):
        data = statistics_service.monthly_statistics(year=2026, month=0)
        assert data["monthly_stats"] == []

    @pytest.mark.parametrize("month", [-1, 12])
    def test_month_out_of_range(self, db_session, month):
        with pytest.raises(ValidationError):
            statistics_service.monthly_statistics(year=2026, month=month)


class TestLeafletOrderStats:

    def test_counts_and_payouts(self, db_session, leaflet, city, distributor):
        for state, profit in [(STATE_IN_PROCESS, 0.0), (STATE_FORPAYMENT, 12.5), (STATE_DONE, 30.0), (STATE_DONE, 5.0)]:
            db_session.add(LeafletOrder(
                profit_type="MKD", quantity=10, state=state, distributor_profit=profit,
                leaflet_id=leaflet.id, city_id=city.id, distributor_id=distributor.id,
            ))
        db_session.commit()

        stats = statistics_service.leaflet_order_stats()

        assert stats[STATE_IN_PROCESS] == 1
        assert stats[STATE_FORPAYMENT] == 1
        assert stats[STATE_DONE] == 2
        assert stats["total_distributor_profit_to_pay"] == pytest.approx(12.5)
        assert stats["total_distributor_profit_paid"] == pytest.approx(35.0)
