from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders import signals  # noqa: F401
        from modules.orders.events import OrderPaid, OrderPlaced
        from modules.orders.handlers import order_placed_notification_handler
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderPlaced, order_placed_notification_handler)
        event_bus.subscribe(OrderPaid, order_placed_notification_handler)
