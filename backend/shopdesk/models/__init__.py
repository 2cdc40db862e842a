from .shops import Shop, SessionToken
from .inventory import StockItem
from .receipts import Receipt
from .staff import Employee, AttendanceRecord, SalaryPayment
from .expenses import ExpenseCategory, Expense

__all__ = [
    'Shop', 'SessionToken',
    'StockItem',
    'Receipt',
    'Employee', 'AttendanceRecord', 'SalaryPayment',
    'ExpenseCategory', 'Expense',
]
