"""
Оформление заказов: покупка и аренда книг.

Чтение книги, проверка доступности, расчет цены, вставка заказа и
снятие книги с витрины при аренде выполняются одной транзакцией.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from errors import Conflict, InvalidArgument, NotFound
from models import Book, DurationTier, Order, OrderStatus, OrderType, db, utcnow

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderKind:
    """Покупка либо аренда на конкретный срок."""

    type: OrderType
    duration: Optional[DurationTier] = None

    @classmethod
    def purchase(cls):
        return cls(OrderType.PURCHASE)

    @classmethod
    def rent(cls, duration: DurationTier):
        return cls(OrderType.RENT, duration)

    @classmethod
    def parse(cls, order_type, duration=None):
        if order_type == OrderType.PURCHASE.value:
            # срок для покупки игнорируется
            return cls.purchase()
        if order_type == OrderType.RENT.value:
            try:
                return cls.rent(DurationTier(duration))
            except ValueError:
                raise InvalidArgument("Неверный срок аренды")
        raise InvalidArgument("Неверный тип заказа")


def price_and_expiry(book: Book, kind: OrderKind, now):
    if kind.type is OrderType.PURCHASE:
        return book.price, None
    return book.rent_price(kind.duration), now + timedelta(days=kind.duration.days)


def _claim_book(book_id, kind):
    """
    Условный UPDATE строки книги, только пока она доступна.

    Аренда снимает книгу с витрины, покупка оставляет флаг как есть, но
    тоже пишет в строку: из конкурирующих заказов пройдет только тот,
    кто успел до снятия книги.
    """
    res = db.session.execute(
        db.update(Book)
        .where(Book.id == book_id, Book.available == True)  # noqa: E712
        .values(available=kind.type is not OrderType.RENT)
    )
    return res.rowcount == 1


def create_order(user_id: int, book_id: int, kind: OrderKind) -> Order:
    try:
        # на PostgreSQL строка книги блокируется до конца транзакции
        book = db.session.execute(
            db.select(Book)
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if book is None:
            raise NotFound("Книга не найдена")
        if not book.available:
            raise Conflict("Книга недоступна")

        now = utcnow()
        total_price, expires_at = price_and_expiry(book, kind, now)

        if not _claim_book(book.id, kind):
            raise Conflict("Книга недоступна")

        o = Order(
            user_id=user_id,
            book_id=book.id,
            type=kind.type.value,
            duration=kind.duration.value if kind.duration else None,
            total_price=total_price,
            status=OrderStatus.ACTIVE.value,
            created_at=now,
            expires_at=expires_at,
        )
        db.session.add(o)
        db.session.commit()
    except Conflict:
        db.session.rollback()
        log.info("Book %s is unavailable, order rejected for user %s", book_id, user_id)
        raise
    except Exception:
        db.session.rollback()
        raise

    log.info(
        "Created order %s: book=%s type=%s duration=%s total=%s",
        o.id, book_id, o.type, o.duration, o.total_price,
    )
    return o
