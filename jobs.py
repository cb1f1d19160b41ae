import logging

from apscheduler.schedulers.background import BackgroundScheduler

from models import Book, Order, OrderStatus, OrderType, db, utcnow

log = logging.getLogger(__name__)


# --- Завершение просроченных аренд ---
def expire_rentals(now=None):
    """
    1) Находит активные аренды с истекшим сроком и переводит их в completed.
    2) Возвращает книгу на витрину, если ее не держит другая активная аренда
       и админ не менял книгу после начала аренды.

    Возвращает число завершенных аренд.
    """
    now = now or utcnow()

    expired = Order.query.filter(
        Order.type == OrderType.RENT.value,
        Order.status == OrderStatus.ACTIVE.value,
        Order.expires_at.isnot(None),
        Order.expires_at <= now,
    ).all()

    # книга -> время самой поздней из истекших аренд
    rented_at = {}
    for r in expired:
        r.status = OrderStatus.COMPLETED.value
        rented_at[r.book_id] = max(r.created_at, rented_at.get(r.book_id, r.created_at))
    db.session.flush()

    for book_id, since in rented_at.items():
        still_rented = Order.query.filter(
            Order.book_id == book_id,
            Order.type == OrderType.RENT.value,
            Order.status == OrderStatus.ACTIVE.value,
        ).first()
        if still_rented is None:
            # если админ правил книгу после аренды, ее доступность решает он
            db.session.execute(
                db.update(Book)
                .where(Book.id == book_id, Book.updated_at <= since)
                .values(available=True)
            )

    db.session.commit()
    if expired:
        log.info("Completed %d expired rentals for books %s", len(expired), sorted(rented_at))
    return len(expired)


def start_scheduler(app):
    def rental_sweep_job():
        # ошибки job'а логирует сам APScheduler
        with app.app_context():
            expire_rentals()

    scheduler = BackgroundScheduler(daemon=True)
    scheduler.add_job(
        rental_sweep_job, "interval",
        minutes=app.config["RENTAL_SWEEP_MINUTES"],
        id="rental-sweep", replace_existing=True,
    )
    scheduler.start()
    log.info("Rental sweep scheduled every %s min", app.config["RENTAL_SWEEP_MINUTES"])
    return scheduler
