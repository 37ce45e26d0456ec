from .auth import Role, User, SessionToken, user_routes
from .stores import Store, store_products
from .catalog import Product
from .visits import Visit, Order

__all__ = [
    'Role', 'User', 'SessionToken', 'user_routes',
    'Store', 'store_products',
    'Product',
    'Visit', 'Order',
]
