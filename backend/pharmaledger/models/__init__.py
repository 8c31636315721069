from pharmaledger.models.tenant import Tenant, TenantRole, Connection, ConnectionStatus
from pharmaledger.models.inventory import Product, Batch, Seasonality
from pharmaledger.models.order import Order, OrderItem, OrderEvent, OrderStatus, TimelineEvent
from pharmaledger.models.sale import Sale, SaleItem
from pharmaledger.models.trend import Trend
from pharmaledger.models.notification import Notification, NotificationType

__all__ = [
    "Tenant", "TenantRole", "Connection", "ConnectionStatus",
    "Product", "Batch", "Seasonality",
    "Order", "OrderItem", "OrderEvent", "OrderStatus", "TimelineEvent",
    "Sale", "SaleItem", "Trend", "Notification", "NotificationType",
]
