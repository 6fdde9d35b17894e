from .auth import User, SessionToken
from .catalog import City, Leaflet
from .distribution import Distributor, DistributorDocument, LeafletOrder
from .orders import Worker, Order, OrderDocument
from .admin import Goal, LogEntry

__all__ = [
    'User', 'SessionToken',
    'City', 'Leaflet',
    'Distributor', 'DistributorDocument', 'LeafletOrder',
    'Worker', 'Order', 'OrderDocument',
    'Goal', 'LogEntry',
]
