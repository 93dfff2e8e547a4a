from .auth import User, SessionToken
from .catalog import Category, Product
from .orders import Order, OrderLine, OrderStatus, PaymentMethod
from .cashflow import CashFlowTransaction
from .hr import Employee, PerformanceReview, EmployeeDocument

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product',
    'Order', 'OrderLine', 'OrderStatus', 'PaymentMethod',
    'CashFlowTransaction',
    'Employee', 'PerformanceReview', 'EmployeeDocument',
]
