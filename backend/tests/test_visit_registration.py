"""
Visit registration tests (service layer).

Verifies:
- Authorization completes before any photo or row is written
- Orders are priced from the catalog and unknown products are dropped
- Failures after the photo is written leave no file and no visit behind
- Deleting a visit removes its orders
"""

import json
import uuid

import pytest
from sqlalchemy.exc import OperationalError

from conftest import make_product, make_store
from fieldvisits.models import Order, Visit
from fieldvisits.services import visit_service
from fieldvisits.services.evidence_service import EvidenceStorageError
from fieldvisits.services.visit_service import VisitNotFoundError, VisitOutcomeKind
from fieldvisits.time_utils import today


def _files(folder):
    return sorted(folder.iterdir()) if folder.exists() else []


def _register(user, store, orders, **overrides):
    kwargs = {
        "user_uuid": user.uuid,
        "store_uuid": store.uuid,
        "validation": True,
        "orders_payload": orders if isinstance(orders, str) else json.dumps(orders),
        "photo_content": b"jpeg-bytes",
        "photo_filename": "shelf.jpg",
    }
    kwargs.update(overrides)
    return visit_service.register_visit(**kwargs)


class TestRegisterVisitSuccess:

    def test_end_to_end(self, db_session, evidence_root, routed_agent, store, product):
        outcome = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 2}])

        assert outcome.ok
        assert outcome.kind is VisitOutcomeKind.CREATED
        visit = outcome.visit
        assert visit.date == today()
        assert visit.validation is True
        assert visit.user.uuid == routed_agent.uuid
        assert visit.store.uuid == store.uuid

        assert len(visit.orders) == 1
        order = visit.orders[0]
        assert order.product.uuid == product.uuid
        assert order.quantity == 2
        assert order.unit_price_cents == 1000
        assert order.total_cents == 2000
        assert visit.total_cents == 2000

        files = _files(evidence_root)
        assert len(files) == 1
        assert str(files[0]) == visit.photo
        assert files[0].name.startswith("store_Main_Street_Market_Ana_Agent_")
        assert files[0].read_bytes() == b"jpeg-bytes"

    def test_unknown_product_is_dropped(self, db_session, evidence_root, routed_agent, store, product):
        ghost = uuid.uuid4()
        outcome = _register(routed_agent, store, [
            {"productId": str(product.uuid), "quantity": 1},
            {"productId": str(ghost), "quantity": 4},
        ])

        assert outcome.ok
        assert [o.product.uuid for o in outcome.visit.orders] == [product.uuid]
        assert [r.product_uuid for r in outcome.dropped] == [ghost]

    def test_all_unknown_products_still_creates_visit(self, db_session, evidence_root, routed_agent, store):
        outcome = _register(routed_agent, store, [{"productId": str(uuid.uuid4()), "quantity": 1}])
        assert outcome.ok
        assert outcome.visit.orders == []
        assert len(_files(evidence_root)) == 1

    def test_null_payload_means_no_orders(self, db_session, evidence_root, routed_agent, store):
        outcome = _register(routed_agent, store, "null")
        assert outcome.ok
        assert outcome.visit.orders == []

    def test_each_line_uses_its_own_product_price(self, db_session, evidence_root, routed_agent, store, product):
        tea = make_product(db_session, name="Tea 100g", base_price_cents=350)
        outcome = _register(routed_agent, store, [
            {"productId": str(product.uuid), "quantity": 1},
            {"productId": str(tea.uuid), "quantity": 3},
        ])
        assert [o.total_cents for o in outcome.visit.orders] == [1000, 1050]
        assert outcome.visit.total_cents == 2050

    def test_later_price_change_does_not_touch_orders(self, db_session, evidence_root, routed_agent, store, product):
        outcome = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 2}])
        visit_uuid = outcome.visit.uuid

        product.base_price_cents = 9999
        db_session.commit()

        orders = visit_service.list_visit_orders(visit_uuid)
        assert [o.unit_price_cents for o in orders] == [1000]
        assert [o.total_cents for o in orders] == [2000]

    def test_validation_flag_is_stored(self, db_session, evidence_root, routed_agent, store):
        outcome = _register(routed_agent, store, [], validation=False)
        assert outcome.visit.validation is False

    def test_store_name_with_slash(self, db_session, evidence_root, agent):
        shop = make_store(db_session, name="Abarrotes 24/7")
        agent.stores.append(shop)
        db_session.commit()

        outcome = _register(agent, shop, [])

        assert outcome.ok
        files = _files(evidence_root)
        assert len(files) == 1
        assert files[0].name.startswith("store_Abarrotes_24_7_Ana_Agent_")
        assert str(files[0]) == outcome.visit.photo


class TestRegisterVisitRejections:

    def test_store_off_route_is_forbidden(self, db_session, evidence_root, agent, store, product):
        outcome = _register(agent, store, [{"productId": str(product.uuid), "quantity": 1}])

        assert outcome.kind is VisitOutcomeKind.FORBIDDEN
        assert not outcome.ok
        assert outcome.visit is None
        assert _files(evidence_root) == []
        assert db_session.query(Visit).count() == 0
        assert db_session.query(Order).count() == 0

    def test_other_store_is_forbidden(self, db_session, evidence_root, routed_agent, other_store):
        outcome = _register(routed_agent, other_store, [])
        assert outcome.kind is VisitOutcomeKind.FORBIDDEN
        assert _files(evidence_root) == []

    def test_unknown_user(self, db_session, evidence_root, store):
        outcome = visit_service.register_visit(
            user_uuid=uuid.uuid4(),
            store_uuid=store.uuid,
            validation=True,
            orders_payload="[]",
            photo_content=b"x",
            photo_filename="a.jpg",
        )
        assert outcome.kind is VisitOutcomeKind.USER_NOT_FOUND
        assert _files(evidence_root) == []

    def test_unknown_store(self, db_session, evidence_root, routed_agent):
        outcome = visit_service.register_visit(
            user_uuid=routed_agent.uuid,
            store_uuid=uuid.uuid4(),
            validation=True,
            orders_payload="[]",
            photo_content=b"x",
            photo_filename="a.jpg",
        )
        assert outcome.kind is VisitOutcomeKind.STORE_NOT_FOUND
        assert _files(evidence_root) == []

    @pytest.mark.parametrize("payload", ["not json", '{"productId": 1}', '[{"productId": "x", "quantity": 1}]'])
    def test_malformed_payload_has_no_side_effects(self, db_session, evidence_root, routed_agent, store, payload):
        outcome = _register(routed_agent, store, payload)

        assert outcome.kind is VisitOutcomeKind.DECODE_FAILURE
        assert _files(evidence_root) == []
        assert db_session.query(Visit).count() == 0


class TestRegisterVisitFailureCleanup:

    def test_persist_failure_removes_photo(self, db_session, evidence_root, routed_agent, store, product, monkeypatch):
        def boom(visit, lines):
            raise OperationalError("INSERT INTO visits", {}, Exception("disk full"))

        monkeypatch.setattr(visit_service, "replace_visit_orders", boom)

        outcome = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 1}])

        assert outcome.kind is VisitOutcomeKind.PERSIST_FAILURE
        assert _files(evidence_root) == []
        assert db_session.query(Visit).count() == 0
        assert db_session.query(Order).count() == 0

    def test_unexpected_error_removes_photo(self, db_session, evidence_root, routed_agent, store, product, monkeypatch):
        def boom(visit, lines):
            raise OverflowError("Python int too large to convert to SQLite INTEGER")

        monkeypatch.setattr(visit_service, "replace_visit_orders", boom)

        outcome = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 1}])

        assert outcome.kind is VisitOutcomeKind.PERSIST_FAILURE
        assert _files(evidence_root) == []
        assert db_session.query(Visit).count() == 0

    def test_huge_quantity_is_rejected_before_photo(self, db_session, evidence_root, routed_agent, store, product):
        outcome = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 10**20}])

        assert outcome.kind is VisitOutcomeKind.DECODE_FAILURE
        assert _files(evidence_root) == []
        assert db_session.query(Visit).count() == 0

    def test_line_total_overflow_removes_photo(self, db_session, evidence_root, routed_agent, store):
        pricey = make_product(db_session, name="Generator", base_price_cents=50_000_000)

        outcome = _register(routed_agent, store, [{"productId": str(pricey.uuid), "quantity": 100}])

        assert outcome.kind is VisitOutcomeKind.DECODE_FAILURE
        assert _files(evidence_root) == []
        assert db_session.query(Visit).count() == 0
        assert db_session.query(Order).count() == 0

    def test_evidence_failure_writes_nothing(self, db_session, evidence_root, routed_agent, store, monkeypatch):
        def fail(*args, **kwargs):
            raise EvidenceStorageError("read-only filesystem")

        monkeypatch.setattr(visit_service, "save_visit_photo", fail)

        outcome = _register(routed_agent, store, [])

        assert outcome.kind is VisitOutcomeKind.EVIDENCE_FAILURE
        assert db_session.query(Visit).count() == 0


class TestVisitQueries:

    def test_list_and_get(self, db_session, evidence_root, routed_agent, store):
        created = _register(routed_agent, store, []).visit
        assert [v.uuid for v in visit_service.list_visits()] == [created.uuid]
        assert visit_service.get_visit(created.uuid).uuid == created.uuid
        assert visit_service.get_visit(uuid.uuid4()) is None

    def test_list_orders_of_unknown_visit(self, db_session):
        assert visit_service.list_visit_orders(uuid.uuid4()) == []


class TestDeleteVisit:

    def test_delete_removes_orders(self, db_session, evidence_root, routed_agent, store, product):
        outcome = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 2}])
        visit_id = outcome.visit.id
        photo = outcome.visit.photo

        visit_service.delete_visit(outcome.visit.uuid)

        assert db_session.query(Visit).filter_by(id=visit_id).count() == 0
        assert db_session.query(Order).filter_by(visit_id=visit_id).count() == 0
        # Evidence is kept on disk
        assert _files(evidence_root) != []
        assert str(_files(evidence_root)[0]) == photo

    def test_delete_with_unloaded_orders(self, db_session, evidence_root, routed_agent, store, product):
        tea = make_product(db_session, name="Tea 100g", base_price_cents=350)
        outcome = _register(routed_agent, store, [
            {"productId": str(product.uuid), "quantity": 1},
            {"productId": str(tea.uuid), "quantity": 2},
        ])
        visit_uuid, visit_id = outcome.visit.uuid, outcome.visit.id
        assert db_session.query(Order).filter_by(visit_id=visit_id).count() == 2

        # Fresh identity map: the order collection is not loaded before the delete
        db_session.expunge_all()
        visit_service.delete_visit(visit_uuid)

        assert db_session.query(Order).filter_by(visit_id=visit_id).count() == 0
        assert visit_service.list_visit_orders(visit_uuid) == []
        assert db_session.query(Order).count() == 0

    def test_delete_unknown_visit(self, db_session):
        with pytest.raises(VisitNotFoundError):
            visit_service.delete_visit(uuid.uuid4())

    def test_replace_orders_removes_previous_lines(self, db_session, evidence_root, routed_agent, store, product):
        visit = _register(routed_agent, store, [{"productId": str(product.uuid), "quantity": 2}]).visit
        visit_id = visit.id

        visit_service.replace_visit_orders(visit, [])
        db_session.commit()

        assert db_session.query(Order).filter_by(visit_id=visit_id).count() == 0
