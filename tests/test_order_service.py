# tests/test_order_service.py
import pytest
from sqlmodel import Session, select

from app.core.errors import InvalidStateError, NotFoundError, ValidationError
from app.models.address import Address
from app.models.cart import CartItem
from app.models.order import Order, OrderItem
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderCreate
from app.services.order_service import OrderService


@pytest.fixture
def service():
    return OrderService(OrderRepository(), CartRepository(), AddressRepository())


def add_user(session: Session, n: int, role: str = "user") -> User:
    user = User(
        full_name=f"Customer {n}",
        email=f"customer{n}@example.com",
        phone_number=f"+21260000020{n}",
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def customer(session):
    return add_user(session, 1)


@pytest.fixture
def other_customer(session):
    return add_user(session, 2)


@pytest.fixture
def admin(session):
    return add_user(session, 3, role="admin")


def fill_cart(session: Session, user_id: int, n: int) -> None:
    for i in range(n):
        session.add(
            CartItem(user_id=user_id, product_id=100 + i, quantity=1, snapshot_price=10.0)
        )
    session.commit()


def order_payload(**overrides) -> OrderCreate:
    fields = dict(
        items=[
            {"product_id": 100, "product_name": "Cake", "price": 20.0, "quantity": 2,
             "discount_amount": 2.5},
            {"product_id": 101, "product_name": "Tart", "price": 7.3, "quantity": 3},
        ],
        total_amount=56.9,
        address="12 Rue Atlas, Rabat",
        phone_number="+212600000201",
    )
    fields.update(overrides)
    return OrderCreate.model_validate(fields)


def counts(session: Session, user_id: int) -> tuple[int, int, int]:
    orders = session.exec(select(Order).where(Order.user_id == user_id)).all()
    items = session.exec(select(OrderItem)).all()
    cart = session.exec(select(CartItem).where(CartItem.user_id == user_id)).all()
    return len(orders), len(items), len(cart)


# -------- Creation --------


def test_create_order_inserts_items_and_clears_cart(service, session, customer):
    fill_cart(session, customer.id, 3)

    order = service.create_order(session, customer.id, order_payload())

    assert order.status == "pending"
    assert order.total_amount == pytest.approx(56.9)
    assert order.address == "12 Rue Atlas, Rabat"
    assert [it.line_total for it in order.items] == [35.0, 21.9]
    assert counts(session, customer.id) == (1, 2, 0)


def test_create_order_only_clears_own_cart(service, session, customer, other_customer):
    fill_cart(session, customer.id, 1)
    fill_cart(session, other_customer.id, 2)

    service.create_order(session, customer.id, order_payload())

    assert counts(session, other_customer.id)[2] == 2


def test_failure_mid_transaction_leaves_nothing_behind(service, session, customer, monkeypatch):
    fill_cart(session, customer.id, 3)

    def explode(session, user_id):
        raise RuntimeError("cart store unavailable")

    monkeypatch.setattr(service.cart_repo, "clear_for_user", explode)

    with pytest.raises(RuntimeError):
        service.create_order(session, customer.id, order_payload())

    assert counts(session, customer.id) == (0, 0, 3)


def test_total_mismatch_is_rejected(service, session, customer):
    fill_cart(session, customer.id, 1)

    with pytest.raises(ValidationError):
        service.create_order(session, customer.id, order_payload(total_amount=60.0))

    assert counts(session, customer.id) == (0, 0, 1)


def test_total_within_a_cent_is_accepted(service, session, customer):
    order = service.create_order(session, customer.id, order_payload(total_amount=56.904))
    assert order.total_amount == pytest.approx(56.9)


@pytest.mark.parametrize(
    "item",
    [
        {"product_id": 1, "product_name": "Cake", "price": 10.0, "quantity": 0},
        {"product_id": 1, "product_name": "Cake", "price": -1.0, "quantity": 1},
        {"product_id": 1, "product_name": "Cake", "price": 10.0, "quantity": 1,
         "discount_amount": 11.0},
    ],
)
def test_invalid_items_are_rejected_by_schema(item):
    with pytest.raises(ValueError):
        order_payload(items=[item], total_amount=10.0)


def test_empty_items_rejected_by_schema():
    with pytest.raises(ValueError):
        order_payload(items=[], total_amount=0)


def test_address_id_resolves_to_snapshot(service, session, customer):
    address = Address(
        user_id=customer.id,
        street="5 Avenue Hassan II",
        city="Casablanca",
        additional_details="Apt 4",
    )
    session.add(address)
    session.commit()
    session.refresh(address)

    order = service.create_order(
        session, customer.id, order_payload(address=None, address_id=address.id)
    )

    assert order.address == "5 Avenue Hassan II, Casablanca, Apt 4"


def test_foreign_address_id_is_not_found(service, session, customer, other_customer):
    address = Address(user_id=other_customer.id, street="Elsewhere", city="Fes")
    session.add(address)
    session.commit()
    session.refresh(address)
    fill_cart(session, customer.id, 1)

    with pytest.raises(NotFoundError):
        service.create_order(
            session, customer.id, order_payload(address=None, address_id=address.id)
        )

    assert counts(session, customer.id) == (0, 0, 1)


# -------- Reads --------


def test_list_user_orders_newest_first_with_items(service, session, customer, other_customer):
    first = service.create_order(session, customer.id, order_payload())
    second = service.create_order(session, customer.id, order_payload())
    service.create_order(session, other_customer.id, order_payload())

    orders = service.list_user_orders(session, customer.id)

    assert [o.id for o in orders] == [second.id, first.id]
    assert all(len(o.items) == 2 for o in orders)


def test_get_order_owner_or_admin(service, session, customer, other_customer, admin):
    order = service.create_order(session, customer.id, order_payload())

    assert service.get_order(session, order.id, customer).id == order.id
    assert service.get_order(session, order.id, admin).id == order.id
    with pytest.raises(NotFoundError):
        service.get_order(session, order.id, other_customer)


def test_list_all_orders_paginates(service, session, customer):
    for _ in range(3):
        service.create_order(session, customer.id, order_payload())

    assert len(service.list_all_orders(session, skip=0, limit=2)) == 2
    assert len(service.list_all_orders(session, skip=2, limit=2)) == 1


# -------- Status changes --------


def test_status_walks_forward(service, session, customer):
    order = service.create_order(session, customer.id, order_payload())

    for status in ("processing", "shipped", "delivered"):
        assert service.update_status(session, order.id, status).status == status


@pytest.mark.parametrize(
    "path, target",
    [
        ([], "shipped"),
        ([], "delivered"),
        (["processing"], "pending"),
        (["processing", "shipped"], "cancelled"),
        (["processing", "shipped", "delivered"], "processing"),
        (["cancelled"], "processing"),
    ],
)
def test_admin_may_set_any_status(service, session, customer, path, target):
    order = service.create_order(session, customer.id, order_payload())
    for status in path:
        service.update_status(session, order.id, status)

    assert service.update_status(session, order.id, target).status == target
    session.expire_all()
    assert session.get(Order, order.id).status == target


def test_same_status_is_noop(service, session, customer):
    order = service.create_order(session, customer.id, order_payload())

    assert service.update_status(session, order.id, "pending").status == "pending"


def test_update_status_unknown_order(service, session):
    with pytest.raises(NotFoundError):
        service.update_status(session, 999, "processing")


@pytest.mark.parametrize("path", [[], ["processing"]])
def test_owner_can_cancel_early(service, session, customer, path):
    order = service.create_order(session, customer.id, order_payload())
    for status in path:
        service.update_status(session, order.id, status)

    assert service.cancel_order(session, order.id, customer).status == "cancelled"


@pytest.mark.parametrize("path", [["processing", "shipped"], ["cancelled"]])
def test_cannot_cancel_late(service, session, customer, path):
    order = service.create_order(session, customer.id, order_payload())
    for status in path:
        service.update_status(session, order.id, status)

    with pytest.raises(InvalidStateError):
        service.cancel_order(session, order.id, customer)


def test_stranger_cannot_cancel(service, session, customer, other_customer):
    order = service.create_order(session, customer.id, order_payload())

    with pytest.raises(NotFoundError):
        service.cancel_order(session, order.id, other_customer)
