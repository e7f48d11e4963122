from .auth import User, UserPreference
from .inventory import Product, InventoryLog
from .sales import Cart, CartItem, Order, OrderItem, OrderTracking, Delivery, Payment
from .reviews import Review
from .communications import Notification, ContactSubmission
from .finance import Expense, Budget

__all__ = [
    'User', 'UserPreference',
    'Product', 'InventoryLog',
    'Cart', 'CartItem', 'Order', 'OrderItem', 'OrderTracking', 'Delivery', 'Payment',
    'Review',
    'Notification', 'ContactSubmission',
    'Expense', 'Budget',
]
