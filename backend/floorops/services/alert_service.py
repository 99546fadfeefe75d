"""Alert Service - derives notifications from stock and order state.

Conditions checked on every refresh:
- stock-critical:<id>  stock item classified critical (error, high, action required)
- stock-expiring:<id>  expires within ``expiry_warning_days`` (warning, medium)
- stock-expired:<id>   expiry date already passed (error, high)
- order-sla:<id>       open order older than ``order_sla_minutes``, dine-in or takeaway
                       (warning, high, action required)

Each condition maps to one ``subject_key``. A refresh never creates a second
unresolved notification for a key, and resolves the notification once the
condition is gone.

Usage:
    from floorops.services.alert_service import AlertService

    AlertService(db).list_notifications(unread_only=True)
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from floorops.core.config import settings
from floorops.core.errors import NotFoundError
from floorops.db.base import as_naive_utc, local_today, utcnow
from floorops.db.session import atomic
from floorops.models.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from floorops.models.restaurant import TERMINAL_ORDER_STATUSES, Order
from floorops.models.stock import StockItem, StockStatus
from floorops.services.stock_service import classify, days_until_expiry

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {
    NotificationPriority.HIGH.value: 0,
    NotificationPriority.MEDIUM.value: 1,
    NotificationPriority.LOW.value: 2,
}

# Key prefixes this service owns; unresolved rows under them are reconciled on refresh
MANAGED_PREFIXES = ("stock-critical:", "stock-expiring:", "stock-expired:", "order-sla:")


class AlertService:
    """Generates and maintains derived notifications."""

    def __init__(self, db: Session):
        self.db = db

    def _current_conditions(self, now: datetime, today: date) -> Dict[str, Dict[str, Any]]:
        conditions: Dict[str, Dict[str, Any]] = {}

        for item in self.db.query(StockItem).all():
            if classify(item) == StockStatus.CRITICAL:
                conditions[f"stock-critical:{item.id}"] = {
                    "category": NotificationCategory.STOCK.value,
                    "type": NotificationType.ERROR.value,
                    "priority": NotificationPriority.HIGH.value,
                    "action_required": True,
                    "title": "Critical stock level",
                    "message": (
                        f"{item.name} is at {item.current_stock} {item.unit} "
                        f"(minimum {item.min_stock} {item.unit})"
                    ),
                }

            days = days_until_expiry(item, today)
            if days is None:
                continue
            if days < 0:
                conditions[f"stock-expired:{item.id}"] = {
                    "category": NotificationCategory.STOCK.value,
                    "type": NotificationType.ERROR.value,
                    "priority": NotificationPriority.HIGH.value,
                    "action_required": True,
                    "title": "Stock expired",
                    "message": f"{item.name} expired {-days} day(s) ago",
                }
            elif days <= settings.expiry_warning_days:
                conditions[f"stock-expiring:{item.id}"] = {
                    "category": NotificationCategory.STOCK.value,
                    "type": NotificationType.WARNING.value,
                    "priority": NotificationPriority.MEDIUM.value,
                    "action_required": False,
                    "title": "Stock expiring soon",
                    "message": (
                        f"{item.name} expires today" if days == 0
                        else f"{item.name} expires in {days} day(s)"
                    ),
                }

        sla_cutoff = now - timedelta(minutes=settings.order_sla_minutes)
        open_orders = (
            self.db.query(Order)
            .filter(Order.status.not_in(TERMINAL_ORDER_STATUSES))
            .all()
        )
        for order in open_orders:
            created = as_naive_utc(order.created_at)
            if created is None or created >= sla_cutoff:
                continue
            age_minutes = int((now - created).total_seconds() // 60)
            conditions[f"order-sla:{order.id}"] = {
                "category": NotificationCategory.ORDERS.value,
                "type": NotificationType.WARNING.value,
                "priority": NotificationPriority.HIGH.value,
                "action_required": True,
                "title": "Order delayed",
                "message": (
                    f"Order {order.order_number} has been {order.status} for {age_minutes} min "
                    f"(limit {settings.order_sla_minutes} min)"
                ),
            }

        return conditions

    def refresh(self, now: Optional[datetime] = None, today: Optional[date] = None) -> Dict[str, int]:
        """Recompute every condition and reconcile notifications with it."""
        now = as_naive_utc(now) or utcnow()
        today = today or local_today(now)
        created = resolved = 0

        with atomic(self.db):
            conditions = self._current_conditions(now, today)
            unresolved = {
                n.subject_key: n
                for n in self.db.query(Notification).filter(Notification.resolved_at.is_(None)).all()
            }

            for key, fields in conditions.items():
                if key in unresolved:
                    continue
                self.db.add(Notification(subject_key=key, created_at=now, **fields))
                created += 1

            for key, notification in unresolved.items():
                if key.startswith(MANAGED_PREFIXES) and key not in conditions:
                    notification.resolved_at = now
                    resolved += 1

        if created or resolved:
            logger.info(f"Alerts refreshed: {created} raised, {resolved} resolved, {len(conditions)} active")
        return {"created": created, "resolved": resolved, "active": len(conditions)}

    def list_notifications(
        self,
        unread_only: bool = False,
        category: Optional[str] = None,
        include_resolved: bool = False,
        limit: int = 100,
        now: Optional[datetime] = None,
    ) -> List[Notification]:
        """Refresh, then list notifications by priority and newest first."""
        self.refresh(now=now)

        query = self.db.query(Notification)
        if not include_resolved:
            query = query.filter(Notification.resolved_at.is_(None))
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        if category:
            query = query.filter(Notification.category == category)

        notifications = query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
        notifications.sort(key=lambda n: PRIORITY_ORDER.get(n.priority, 99))
        return notifications[:limit]

    def mark_read(self, notification_id: int) -> Notification:
        with atomic(self.db):
            notification = self._get(notification_id)
            notification.is_read = True
        return notification

    def mark_all_read(self) -> int:
        with atomic(self.db):
            count = (
                self.db.query(Notification)
                .filter(Notification.is_read.is_(False))
                .update({Notification.is_read: True}, synchronize_session="fetch")
            )
        logger.info(f"Marked {count} notification(s) as read")
        return count

    def dismiss(self, notification_id: int) -> None:
        """Delete a notification. An ongoing condition is raised again on the next refresh."""
        with atomic(self.db):
            self.db.delete(self._get(notification_id))

    def _get(self, notification_id: int) -> Notification:
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        return notification
